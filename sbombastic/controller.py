"""Reconcilers that drive registry discovery, SBOM generation and scanning."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, TypeVar, Union

from sbombastic.scheme import FieldSelectorError, image_metadata_field_selector_conversion
from sbombastic.storage_types import SBOM, Image
from sbombastic.v1alpha1 import (
    REGISTRY_DISCOVERING_CONDITION,
    REGISTRY_DISCOVERY_REQUESTED_REASON,
    REGISTRY_FAILED_TO_REQUEST_DISCOVERY_REASON,
    REGISTRY_LAST_DISCOVERED_AT_ANNOTATION,
    Condition,
    ConditionStatus,
    Registry,
    set_status_condition,
)

T = TypeVar("T")

REGISTRY_FIELD = "spec.imageMetadata.registry"

_IMAGE_METADATA_ATTRS = {
    "registry": "registry",
    "registryURI": "registry_uri",
    "repository": "repository",
    "tag": "tag",
    "platform": "platform",
    "digest": "digest",
}


class NotFoundError(LookupError):
    """The requested object does not exist."""


class ReconcileError(RuntimeError):
    """A reconciliation step failed."""


@dataclass(frozen=True)
class NamespacedName:
    """The name and namespace that identify an object."""

    name: str
    namespace: str = ""

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}" if self.namespace else self.name


@dataclass(frozen=True)
class Request:
    """A request to reconcile one object."""

    namespaced_name: NamespacedName

    @property
    def name(self) -> str:
        return self.namespaced_name.name

    @property
    def namespace(self) -> str:
        return self.namespaced_name.namespace


@dataclass(frozen=True)
class Result:
    """The outcome of a successful reconciliation."""

    requeue: bool = False
    requeue_after: float = 0.0


@dataclass(frozen=True)
class GenerateSBOM:
    """Ask a worker to generate the SBOM of an image."""

    image_name: str
    image_namespace: str


@dataclass(frozen=True)
class CreateCatalog:
    """Ask a worker to discover the images of a registry."""

    registry_name: str
    registry_namespace: str


@dataclass(frozen=True)
class ScanSBOM:
    """Ask a worker to scan an SBOM for vulnerabilities."""

    sbom_name: str
    sbom_namespace: str


Message = Union[GenerateSBOM, CreateCatalog, ScanSBOM]


class Publisher:
    """Sends messages to the workers and keeps those that were sent.

    Without a send function the messages are only recorded. Errors raised by
    the send function propagate and the message is not recorded.
    """

    def __init__(self, send: Callable[[Message], None] | None = None) -> None:
        self._send = send
        self.published: list[Message] = []

    def publish(self, message: Message) -> None:
        if self._send is not None:
            self._send(message)
        self.published.append(message)


def _field_value(obj: object, label: str) -> str:
    if label == "metadata.name":
        return obj.metadata.name  # type: ignore[attr-defined]
    if label == "metadata.namespace":
        return obj.metadata.namespace  # type: ignore[attr-defined]
    attr = _IMAGE_METADATA_ATTRS[label.removeprefix("spec.imageMetadata.")]
    return getattr(obj.get_image_metadata(), attr)  # type: ignore[attr-defined]


def _check_field(kind: type, label: str, value: str) -> None:
    if hasattr(kind, "get_image_metadata"):
        image_metadata_field_selector_conversion(label, value)
    elif label not in ("metadata.name", "metadata.namespace"):
        raise FieldSelectorError(
            f'"{label}" is not a known field selector: only "metadata.name", "metadata.namespace"'
        )


class InMemoryClient:
    """An object store with the get, list, create, update and delete of an API client.

    Objects handed in and out are copies, so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._objects: dict[tuple[type, str, str], object] = {}
        self._revision = 0

    @staticmethod
    def _key_of(obj: object) -> tuple[type, str, str]:
        meta = obj.metadata  # type: ignore[attr-defined]
        return (type(obj), meta.namespace, meta.name)

    def _next_revision(self, obj: object) -> None:
        self._revision += 1
        obj.metadata.resource_version = str(self._revision)  # type: ignore[attr-defined]

    def get(self, kind: type[T], key: NamespacedName) -> T:
        """Return a copy of the object of the given type and key."""
        try:
            stored = self._objects[(kind, key.namespace, key.name)]
        except KeyError:
            raise NotFoundError(f'{kind.__name__} "{key}" not found') from None
        return copy.deepcopy(stored)  # type: ignore[return-value]

    def list(
        self,
        kind: type[T],
        namespace: str | None = None,
        fields: dict[str, str] | None = None,
    ) -> list[T]:
        """Return copies of the objects of a type, filtered by namespace and field values."""
        selector = dict(fields or {})
        for label, value in selector.items():
            _check_field(kind, label, value)
        matches = [
            obj
            for (obj_type, obj_ns, _), obj in self._objects.items()
            if obj_type is kind
            and (not namespace or obj_ns == namespace)
            and all(_field_value(obj, label) == value for label, value in selector.items())
        ]
        matches.sort(key=lambda o: (o.metadata.namespace, o.metadata.name))  # type: ignore[attr-defined]
        return [copy.deepcopy(obj) for obj in matches]  # type: ignore[misc]

    def create(self, obj: object) -> None:
        key = self._key_of(obj)
        if not key[2]:
            raise ValueError(f"{key[0].__name__} must have a name")
        if key in self._objects:
            raise ValueError(f'{key[0].__name__} "{key[1]}/{key[2]}" already exists')
        self._next_revision(obj)
        self._objects[key] = copy.deepcopy(obj)

    def update(self, obj: object) -> None:
        """Replace an object; its status, if it has one, is left as stored."""
        key = self._key_of(obj)
        existing = self._objects.get(key)
        if existing is None:
            raise NotFoundError(f'{key[0].__name__} "{key[1]}/{key[2]}" not found')
        self._next_revision(obj)
        stored = copy.deepcopy(obj)
        if hasattr(existing, "status"):
            stored.status = copy.deepcopy(existing.status)  # type: ignore[attr-defined]
        self._objects[key] = stored

    def update_status(self, obj: object) -> None:
        """Replace only the status of a stored object."""
        key = self._key_of(obj)
        existing = self._objects.get(key)
        if existing is None:
            raise NotFoundError(f'{key[0].__name__} "{key[1]}/{key[2]}" not found')
        if not hasattr(existing, "status"):
            raise ValueError(f"{key[0].__name__} has no status")
        self._next_revision(obj)
        stored = copy.deepcopy(existing)
        stored.status = copy.deepcopy(obj.status)  # type: ignore[attr-defined]
        stored.metadata.resource_version = obj.metadata.resource_version  # type: ignore[attr-defined]
        self._objects[key] = stored

    def delete(self, obj: object) -> None:
        key = self._key_of(obj)
        if self._objects.pop(key, None) is None:
            raise NotFoundError(f'{key[0].__name__} "{key[1]}/{key[2]}" not found')


def _default_logger() -> logging.Logger:
    return logging.getLogger(__name__)


def _local_now() -> datetime:
    return datetime.now().astimezone().replace(microsecond=0)


def _fetch(client: InMemoryClient, kind: type[T], key: NamespacedName) -> T | None:
    try:
        return client.get(kind, key)
    except NotFoundError:
        return None
    except Exception as exc:
        raise ReconcileError(f"unable to fetch {kind.__name__}: {exc}") from exc


@dataclass
class ImageReconciler:
    """Requests an SBOM for every image that does not have one yet."""

    client: InMemoryClient
    publisher: Publisher = field(default_factory=Publisher)
    logger: logging.Logger = field(default_factory=_default_logger)

    def reconcile(self, request: Request) -> Result:
        image = _fetch(self.client, Image, request.namespaced_name)
        if image is None:
            return Result()

        if _fetch(self.client, SBOM, request.namespaced_name) is None:
            self.logger.info(
                "Creating SBOM of Image",
                extra={"object_name": image.name, "namespace": image.namespace},
            )
            message = GenerateSBOM(image_name=image.name, image_namespace=image.namespace)
            try:
                self.publisher.publish(message)
            except Exception as exc:
                raise ReconcileError(f"unable to publish CreateSBOM message: {exc}") from exc
        return Result()


@dataclass
class RegistryReconciler:
    """Starts discovery of new registries and prunes images of dropped repositories."""

    client: InMemoryClient
    publisher: Publisher = field(default_factory=Publisher)
    logger: logging.Logger = field(default_factory=_default_logger)

    def _set_discovering(self, registry: Registry, condition: Condition) -> None:
        set_status_condition(registry.status.conditions, condition)
        try:
            self.client.update_status(registry)
        except Exception as exc:
            raise ReconcileError(f"unable to set status condition: {exc}") from exc

    def reconcile(self, request: Request) -> Result:
        registry = _fetch(self.client, Registry, request.namespaced_name)
        if registry is None:
            return Result()

        if not registry.annotations.get(REGISTRY_LAST_DISCOVERED_AT_ANNOTATION):
            self.logger.info(
                "Registry needs to be discovered, sending the request.",
                extra={"object_name": registry.name, "namespace": registry.namespace},
            )
            message = CreateCatalog(
                registry_name=registry.name, registry_namespace=registry.namespace
            )
            try:
                self.publisher.publish(message)
            except Exception as exc:
                self._set_discovering(
                    registry,
                    Condition(
                        type=REGISTRY_DISCOVERING_CONDITION,
                        status=ConditionStatus.UNKNOWN,
                        reason=REGISTRY_FAILED_TO_REQUEST_DISCOVERY_REASON,
                        message="Failed to communicate with the workers",
                    ),
                )
                raise ReconcileError(f"failed to publish CreateCatalog message: {exc}") from exc

            self._set_discovering(
                registry,
                Condition(
                    type=REGISTRY_DISCOVERING_CONDITION,
                    status=ConditionStatus.TRUE,
                    reason=REGISTRY_DISCOVERY_REQUESTED_REASON,
                    message="Registry discovery in progress",
                ),
            )

        if registry.spec.repositories:
            self._prune_images(request.namespace, registry)
        return Result()

    def _prune_images(self, namespace: str, registry: Registry) -> None:
        self.logger.debug(
            "Deleting Images that are not in the current list of repositories",
            extra={
                "object_name": registry.name,
                "namespace": registry.namespace,
                "repositories": list(registry.spec.repositories),
            },
        )
        try:
            images: Iterable[Image] = self.client.list(
                Image, namespace, {REGISTRY_FIELD: registry.name}
            )
        except Exception as exc:
            raise ReconcileError(f"unable to list Images: {exc}") from exc

        allowed = set(registry.spec.repositories)
        for image in images:
            repository = image.get_image_metadata().repository
            if repository in allowed:
                continue
            try:
                self.client.delete(image)
            except Exception as exc:
                raise ReconcileError(f"unable to delete Image {image.name}: {exc}") from exc
            self.logger.debug(
                "Deleted Image",
                extra={"object_name": image.name, "repository": repository},
            )


@dataclass
class SBOMReconciler:
    """Requests a scan of each SBOM and marks a registry discovered once all its images have SBOMs."""

    client: InMemoryClient
    publisher: Publisher = field(default_factory=Publisher)
    logger: logging.Logger = field(default_factory=_default_logger)
    clock: Callable[[], datetime] = _local_now

    def reconcile(self, request: Request) -> Result:
        sbom = _fetch(self.client, SBOM, request.namespaced_name)
        if sbom is None:
            return Result()

        try:
            self.publisher.publish(ScanSBOM(sbom_name=sbom.name, sbom_namespace=sbom.namespace))
        except Exception as exc:
            raise ReconcileError(f"unable to publish ScanSBOM message: {exc}") from exc

        registry_name = sbom.get_image_metadata().registry
        selector = {REGISTRY_FIELD: registry_name}
        try:
            sboms = self.client.list(SBOM, request.namespace, selector)
        except Exception as exc:
            raise ReconcileError(f"unable to list SBOMs: {exc}") from exc
        try:
            images = self.client.list(Image, request.namespace, selector)
        except Exception as exc:
            raise ReconcileError(f"unable to list Images: {exc}") from exc

        if len(sboms) != len(images):
            return Result()

        self.logger.info(
            "Registry discovery is completed.",
            extra={"object_name": registry_name, "namespace": request.namespace},
        )
        key = NamespacedName(name=registry_name, namespace=request.namespace)
        try:
            registry = self.client.get(Registry, key)
        except Exception as exc:
            raise ReconcileError(f"unable to fetch Registry: {exc}") from exc

        if REGISTRY_LAST_DISCOVERED_AT_ANNOTATION in registry.annotations:
            self.logger.debug(
                "Registry already has a last discovered timestamp",
                extra={"object_name": registry.name, "namespace": registry.namespace},
            )
            return Result()

        self.logger.debug(
            "Updating Registry last discovered timestamp",
            extra={"object_name": registry.name, "namespace": registry.namespace},
        )
        registry.annotations[REGISTRY_LAST_DISCOVERED_AT_ANNOTATION] = self.clock().isoformat()
        try:
            self.client.update(registry)
        except Exception as exc:
            raise ReconcileError(f"unable to update Registry LastScannedAt: {exc}") from exc
        return Result()
"""Type registry for the storage API group and its field selectors."""

from __future__ import annotations

import json
from typing import Callable

from sbombastic.storage_types import (
    GROUP_NAME,
    SBOM,
    SCHEME_GROUP_VERSION,
    Image,
    VulnerabilityReport,
)
from sbombastic.v1alpha1 import GroupKind, GroupResource, GroupVersion, GroupVersionKind

INTERNAL_VERSION = "__internal"
INTERNAL_GROUP_VERSION = GroupVersion(GROUP_NAME, INTERNAL_VERSION)

FieldLabelConversionFunc = Callable[[str, str], "tuple[str, str]"]

_IMAGE_METADATA_FIELDS = frozenset(
    {
        "metadata.name",
        "metadata.namespace",
        "spec.imageMetadata.registry",
        "spec.imageMetadata.registryURI",
        "spec.imageMetadata.repository",
        "spec.imageMetadata.tag",
        "spec.imageMetadata.platform",
        "spec.imageMetadata.digest",
    }
)


class FieldSelectorError(ValueError):
    """A field selector names a field that cannot be selected on."""


def _quote(text: str) -> str:
    return json.dumps(text)


class Scheme:
    """Maps kinds to Python types and holds field selector conversions."""

    def __init__(self) -> None:
        self._types_by_gvk: dict[GroupVersionKind, type] = {}
        self._gvks_by_type: dict[type, list[GroupVersionKind]] = {}
        self._field_label_funcs: dict[GroupVersionKind, FieldLabelConversionFunc] = {}
        self._version_priority: dict[str, list[str]] = {}
        self._observed_versions: list[GroupVersion] = []

    def _observe(self, group_version: GroupVersion) -> None:
        if group_version.version == INTERNAL_VERSION:
            return
        if group_version not in self._observed_versions:
            self._observed_versions.append(group_version)

    def add_known_types(self, group_version: GroupVersion, *args: type) -> None:
        """Register each type under its class name as kind."""
        self._observe(group_version)
        for obj_type in args:
            gvk = group_version.with_kind(obj_type.__name__)
            registered = self._types_by_gvk.get(gvk)
            if registered is not None and registered is not obj_type:
                raise ValueError(
                    f"double registration of different types for {gvk}: "
                    f"old={registered.__qualname__}, new={obj_type.__qualname__}"
                )
            self._types_by_gvk[gvk] = obj_type
            kinds = self._gvks_by_type.setdefault(obj_type, [])
            if gvk not in kinds:
                kinds.append(gvk)

    def recognizes(self, gvk: GroupVersionKind) -> bool:
        return gvk in self._types_by_gvk

    def kind_for(self, obj_type: object) -> list[GroupVersionKind]:
        """Return every kind a type (or an instance's type) is registered as."""
        if not isinstance(obj_type, type):
            obj_type = type(obj_type)
        try:
            return list(self._gvks_by_type[obj_type])
        except KeyError:
            raise KeyError(f"no kind is registered for the type {obj_type.__qualname__}") from None

    def add_field_label_conversion_func(
        self, gvk: GroupVersionKind, func: FieldLabelConversionFunc
    ) -> None:
        self._field_label_funcs[gvk] = func

    def convert_field_label(self, gvk: GroupVersionKind, label: str, value: str) -> tuple[str, str]:
        """Convert a field selector label for a kind, raising FieldSelectorError if unknown."""
        func = self._field_label_funcs.get(gvk)
        if func is not None:
            return func(label, value)
        if label in ("metadata.name", "metadata.namespace"):
            return label, value
        raise FieldSelectorError(
            f"{_quote(label)} is not a known field selector: only "
            f"{_quote('metadata.name')}, {_quote('metadata.namespace')}"
        )

    def set_version_priority(self, *args: GroupVersion) -> None:
        """Set the preferred version order of one group."""
        if not args:
            raise ValueError("must specify at least one version")
        groups = {gv.group for gv in args}
        if len(groups) != 1:
            raise ValueError(
                "must register versions for exactly one group: "
                + ", ".join(str(gv) for gv in args)
            )
        (group,) = groups
        self._version_priority[group] = [gv.version for gv in args]

    def prioritized_versions_for_group(self, group: str) -> list[GroupVersion]:
        """Prioritised versions first, then other observed versions of the group."""
        result = [GroupVersion(group, v) for v in self._version_priority.get(group, [])]
        result.extend(
            gv for gv in self._observed_versions if gv.group == group and gv not in result
        )
        return result


def kind(kind: str) -> GroupKind:
    """Qualify a kind with the storage group."""
    return SCHEME_GROUP_VERSION.with_kind(kind).group_kind()


def resource(resource: str) -> GroupResource:
    """Qualify a resource with the storage group."""
    return SCHEME_GROUP_VERSION.with_resource(resource).group_resource()


def image_metadata_field_selector_conversion(label: str, value: str) -> tuple[str, str]:
    """Accept object name, namespace and any image metadata field."""
    if label in _IMAGE_METADATA_FIELDS:
        return label, value
    raise FieldSelectorError(
        f"{_quote(label)} is not a known field selector: only "
        f"{_quote('metadata.name')}, {_quote('metadata.namespace')}, "
        f"{_quote('spec.imageMetadata.*')}"
    )


_STORED_TYPES = (Image, SBOM, VulnerabilityReport)


def add_known_types(scheme: Scheme) -> None:
    """Register the v1alpha1 storage types and their field selectors."""
    scheme.add_known_types(SCHEME_GROUP_VERSION, *_STORED_TYPES)
    for obj_type in _STORED_TYPES:
        scheme.add_field_label_conversion_func(
            SCHEME_GROUP_VERSION.with_kind(obj_type.__name__),
            image_metadata_field_selector_conversion,
        )


def add_internal_types(scheme: Scheme) -> None:
    """Register the storage types under the internal version."""
    scheme.add_known_types(INTERNAL_GROUP_VERSION, *_STORED_TYPES)


def install(scheme: Scheme) -> None:
    """Register the storage group in a scheme and prefer v1alpha1."""
    add_internal_types(scheme)
    add_known_types(scheme)
    scheme.set_version_priority(SCHEME_GROUP_VERSION)
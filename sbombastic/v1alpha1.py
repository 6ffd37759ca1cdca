"""Core API types for the sbombastic.rancher.io/v1alpha1 group."""

from __future__ import annotations

import dataclasses
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

GROUP_NAME = "sbombastic.rancher.io"

REGISTRY_LAST_DISCOVERED_AT_ANNOTATION = "sbombastic.rancher.io/last-discovered-at"
REGISTRY_LAST_SCANNED_AT_ANNOTATION = "sbombastic.rancher.io/last-scanned-at"

REGISTRY_DISCOVERING_CONDITION = "Discovering"
REGISTRY_DISCOVERED_CONDITION = "Discovered"

REGISTRY_DISCOVERY_REQUESTED_REASON = "DiscoveryRequested"
REGISTRY_FAILED_TO_REQUEST_DISCOVERY_REASON = "FailedToRequestDiscovery"


@dataclass(frozen=True)
class GroupKind:
    """An API group paired with a kind."""

    group: str
    kind: str


@dataclass(frozen=True)
class GroupResource:
    """An API group paired with a resource."""

    group: str
    resource: str


@dataclass(frozen=True)
class GroupVersionKind:
    """A fully qualified kind."""

    group: str
    version: str
    kind: str

    def group_kind(self) -> GroupKind:
        return GroupKind(self.group, self.kind)


@dataclass(frozen=True)
class GroupVersionResource:
    """A fully qualified resource."""

    group: str
    version: str
    resource: str

    def group_resource(self) -> GroupResource:
        return GroupResource(self.group, self.resource)


@dataclass(frozen=True)
class GroupVersion:
    """An API group and version."""

    group: str
    version: str

    def with_kind(self, kind: str) -> GroupVersionKind:
        return GroupVersionKind(self.group, self.version, kind)

    def with_resource(self, resource: str) -> GroupVersionResource:
        return GroupVersionResource(self.group, self.version, resource)


GROUP_VERSION = GroupVersion(GROUP_NAME, "v1alpha1")


@dataclass
class ObjectMeta:
    """Metadata shared by every stored object."""

    name: str = ""
    namespace: str = ""
    annotations: dict[str, str] = field(default_factory=dict)
    labels: dict[str, str] = field(default_factory=dict)
    resource_version: str = ""


class ConditionStatus(str, enum.Enum):
    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


@dataclass
class Condition:
    """One observation of an object's state."""

    type: str
    status: ConditionStatus
    reason: str = ""
    message: str = ""
    observed_generation: int = 0
    last_transition_time: datetime | None = None


def _now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def find_status_condition(conditions: list[Condition], condition_type: str) -> Condition | None:
    """Return the condition of the given type, or None."""
    return next((c for c in conditions if c.type == condition_type), None)


def set_status_condition(conditions: list[Condition], new_condition: Condition) -> bool:
    """Add or update a condition in place; return whether anything changed.

    The transition time moves only when the status changes.
    """
    existing = find_status_condition(conditions, new_condition.type)
    if existing is None:
        added = dataclasses.replace(new_condition)
        if added.last_transition_time is None:
            added.last_transition_time = _now()
        conditions.append(added)
        return True

    changed = False
    if existing.status != new_condition.status:
        existing.status = new_condition.status
        existing.last_transition_time = new_condition.last_transition_time or _now()
        changed = True
    if existing.reason != new_condition.reason:
        existing.reason = new_condition.reason
        changed = True
    if existing.message != new_condition.message:
        existing.message = new_condition.message
        changed = True
    if existing.observed_generation != new_condition.observed_generation:
        existing.observed_generation = new_condition.observed_generation
        changed = True
    return changed


@dataclass
class RegistrySpec:
    """Desired state of a Registry.

    An empty repository list means every repository in the registry is scanned.
    """

    uri: str = ""
    repositories: list[str] = field(default_factory=list)
    auth_secret: str = ""
    ca_bundle: str = ""
    insecure: bool = False


@dataclass
class RegistryStatus:
    """Observed state of a Registry."""

    conditions: list[Condition] = field(default_factory=list)


@dataclass
class Registry:
    """A container registry to discover and scan."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: RegistrySpec = field(default_factory=RegistrySpec)
    status: RegistryStatus = field(default_factory=RegistryStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def annotations(self) -> dict[str, str]:
        return self.metadata.annotations
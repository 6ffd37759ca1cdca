# sbombastic

A self-contained model of the resources and control loops behind a service
that discovers container images in registries, generates a Software Bill of
Materials (SBOM) for each image and scans those SBOMs for vulnerabilities.

The package needs nothing beyond the Python standard library (3.10 or later).

## What is inside

- `sbombastic.v1alpha1` – the `Registry` resource (`RegistrySpec`,
  `RegistryStatus`), `ObjectMeta`, group/version helpers (`GroupVersion`,
  `GroupVersionKind`, `GroupVersionResource`, `GroupKind`, `GroupResource`)
  and status conditions (`Condition`, `ConditionStatus`,
  `set_status_condition`, `find_status_condition`).
  `set_status_condition` adds or updates a condition in place, returns
  whether anything changed and moves the transition time only when the
  status changes.
- `sbombastic.storage_types` – the stored resources `Image`, `SBOM` and
  `VulnerabilityReport`, each carrying an `ImageMetadata` block (registry,
  registry URI, repository, tag, platform, digest) that
  `get_image_metadata()` returns. An SBOM holds its SPDX document and a
  vulnerability report its SARIF document as bytes.
- `sbombastic.scheme` – a `Scheme` that maps kinds (the class names) to
  Python types, keeps version priorities per group and converts field
  selector labels. `install(scheme)` registers the storage group under its
  internal version and under `v1alpha1`, and prefers `v1alpha1`.
  `kind()` and `resource()` qualify names with the storage group.
  `image_metadata_field_selector_conversion` accepts `metadata.name`,
  `metadata.namespace` and the `spec.imageMetadata.*` fields and raises
  `FieldSelectorError` for anything else.
- `sbombastic.version` – `Version` (major.minor with an optional patch that
  compares as zero when missing), `parse_version` (accepts `1.2`, `1.2.3`,
  optionally with a leading `v`), `major_minor` and
  `wardle_version_to_kube_version`. The last maps the storage component's
  emulation version onto a Kubernetes version: `1.2` maps to the Kubernetes
  binary version (1.31 unless another is given), lower minors step back,
  higher ones are capped at the binary version, and any major other than 1
  has no mapping (`None`).
- `sbombastic.logsetup` – `parse_log_level` (`debug`, `info`, `warn`,
  `error` in any case, with an optional offset such as `warn+2`), a
  `JsonFormatter` and `new_logger(component, level, stream)` for JSON-line
  logs tagged with a component name.
- `sbombastic.controller` – the reconcilers `ImageReconciler`,
  `RegistryReconciler` and `SBOMReconciler`; the `InMemoryClient` they work
  against; a `Publisher` that hands messages to an optional send function
  and records those sent in `published`; the worker messages
  `CreateCatalog`, `GenerateSBOM` and `ScanSBOM`; `Request`,
  `NamespacedName`, `Result`, `NotFoundError` and `ReconcileError`.

## How the reconcilers behave

- **Registry** – if the registry has no
  `sbombastic.rancher.io/last-discovered-at` annotation, a `CreateCatalog`
  message is published and the `Discovering` condition is set to `True`
  (reason `DiscoveryRequested`). If publishing fails the condition becomes
  `Unknown` (reason `FailedToRequestDiscovery`) and a `ReconcileError` is
  raised. When the registry lists repositories, the images of that registry
  in the request's namespace whose repository is not in the list are
  deleted.
- **Image** – if there is no SBOM with the image's name and namespace, a
  `GenerateSBOM` message is published.
- **SBOM** – every SBOM triggers a `ScanSBOM` message. Once the SBOMs of a
  registry are as many as its images, the registry receives its
  last-discovered-at timestamp (an ISO 8601 local time with offset), unless
  it already has one. A missing registry at that point raises
  `ReconcileError`.

Reconciling an object that does not exist does nothing and returns an empty
`Result`.

`InMemoryClient` hands out and stores copies. `update` keeps the stored
status, `update_status` replaces only the status, and `list` filters by
namespace and by field values, rejecting unknown field selectors with
`FieldSelectorError`.

## Example

```python
from sbombastic.controller import (
    ImageReconciler, InMemoryClient, NamespacedName, Publisher, Request,
)
from sbombastic.storage_types import Image
from sbombastic.v1alpha1 import ObjectMeta
from sbombastic.version import major_minor, parse_version, wardle_version_to_kube_version

client = InMemoryClient()
client.create(Image(metadata=ObjectMeta(name="app", namespace="default")))

publisher = Publisher()
ImageReconciler(client, publisher).reconcile(Request(NamespacedName("app", "default")))
print(publisher.published)  # [GenerateSBOM(image_name='app', image_namespace='default')]

print(wardle_version_to_kube_version(major_minor(1, 1), parse_version("1.31")))  # 1.30
```

## What it does not do

The package is a library with no commands. It does not talk to a cluster,
run an API server or a storage backend, connect to a message broker, or
generate and scan SBOMs itself: objects live in `InMemoryClient`, and
messages go wherever the `Publisher`'s send function sends them.
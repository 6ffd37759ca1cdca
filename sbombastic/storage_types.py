"""Types of the storage.sbombastic.rancher.io/v1alpha1 group."""

from __future__ import annotations

from dataclasses import dataclass, field

from sbombastic.v1alpha1 import GroupVersion, ObjectMeta

GROUP_NAME = "storage.sbombastic.rancher.io"
SCHEME_GROUP_VERSION = GroupVersion(GROUP_NAME, "v1alpha1")


@dataclass
class ImageMetadata:
    """Where an image lives and which exact image it is."""

    registry: str = ""
    registry_uri: str = ""
    repository: str = ""
    tag: str = ""
    platform: str = ""
    digest: str = ""


@dataclass
class ImageLayer:
    """One layer of an OCI image; the command is base64 encoded."""

    command: str = ""
    digest: str = ""
    diff_id: str = ""


@dataclass
class ImageSpec:
    image_metadata: ImageMetadata = field(default_factory=ImageMetadata)
    layers: list[ImageLayer] = field(default_factory=list)


@dataclass
class _Stored:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace


@dataclass
class Image(_Stored):
    """A discovered container image."""

    spec: ImageSpec = field(default_factory=ImageSpec)

    def get_image_metadata(self) -> ImageMetadata:
        return self.spec.image_metadata


@dataclass
class SBOMSpec:
    image_metadata: ImageMetadata = field(default_factory=ImageMetadata)
    spdx: bytes = b""


@dataclass
class SBOM(_Stored):
    """A software bill of materials of an image, as an SPDX JSON document."""

    spec: SBOMSpec = field(default_factory=SBOMSpec)

    def get_image_metadata(self) -> ImageMetadata:
        return self.spec.image_metadata


@dataclass
class VulnerabilityReportSpec:
    image_metadata: ImageMetadata = field(default_factory=ImageMetadata)
    sarif: bytes = b""


@dataclass
class VulnerabilityReport(_Stored):
    """A vulnerability report of an image, in SARIF format."""

    spec: VulnerabilityReportSpec = field(default_factory=VulnerabilityReportSpec)

    def get_image_metadata(self) -> ImageMetadata:
        return self.spec.image_metadata
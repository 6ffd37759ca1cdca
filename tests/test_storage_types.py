import pytest

from sbombastic.storage_types import (
    SCHEME_GROUP_VERSION,
    SBOM,
    Image,
    ImageLayer,
    ImageMetadata,
    ImageSpec,
    SBOMSpec,
    VulnerabilityReport,
    VulnerabilityReportSpec,
)
from sbombastic.v1alpha1 import GroupKind, GroupResource, ObjectMeta


@pytest.fixture
def metadata():
    return ImageMetadata(
        registry="reg",
        repository="sbombastic",
        tag="latest",
        platform="linux/amd64",
        digest="sha:123",
    )


def test_group_version():
    gvk = SCHEME_GROUP_VERSION.with_kind("Image")
    assert gvk.version == "v1alpha1"
    assert gvk.group_kind() == GroupKind("storage.sbombastic.rancher.io", "Image")
    gvr = SCHEME_GROUP_VERSION.with_resource("sboms")
    assert gvr.group_resource() == GroupResource("storage.sbombastic.rancher.io", "sboms")


def test_image_get_image_metadata(metadata):
    layer = ImageLayer(command="bHM=", digest="sha256:a", diff_id="sha256:b")
    image = Image(
        metadata=ObjectMeta(name="img", namespace="default"),
        spec=ImageSpec(image_metadata=metadata, layers=[layer]),
    )
    assert image.get_image_metadata() == metadata
    assert image.get_image_metadata().repository == "sbombastic"
    assert image.spec.layers == [layer]
    assert image.name == "img"
    assert image.namespace == "default"


def test_sbom_get_image_metadata(metadata):
    sbom = SBOM(spec=SBOMSpec(image_metadata=metadata, spdx=b"{}"))
    assert sbom.get_image_metadata() is metadata
    assert sbom.spec.spdx == b"{}"


def test_vulnerability_report_get_image_metadata(metadata):
    report = VulnerabilityReport(spec=VulnerabilityReportSpec(image_metadata=metadata, sarif=b"{}"))
    assert report.get_image_metadata().digest == "sha:123"
    assert report.spec.sarif == b"{}"


@pytest.mark.parametrize("cls", [Image, SBOM, VulnerabilityReport])
def test_defaults_are_empty(cls):
    obj = cls()
    assert obj.get_image_metadata() == ImageMetadata()
    assert obj.get_image_metadata().registry == ""
    assert obj.name == ""


def test_defaults_not_shared():
    first, second = Image(), Image()
    first.spec.layers.append(ImageLayer())
    first.metadata.annotations["k"] = "v"
    assert second.spec.layers == []
    assert second.metadata.annotations == {}
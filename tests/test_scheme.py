import pytest

from sbombastic.scheme import (
    INTERNAL_GROUP_VERSION,
    FieldSelectorError,
    Scheme,
    add_known_types,
    image_metadata_field_selector_conversion,
    install,
    kind,
    resource,
)
from sbombastic.storage_types import GROUP_NAME, SBOM, SCHEME_GROUP_VERSION, Image, VulnerabilityReport
from sbombastic.v1alpha1 import GroupKind, GroupResource, GroupVersion, Registry

FIELDS = [
    "metadata.name",
    "metadata.namespace",
    "spec.imageMetadata.registry",
    "spec.imageMetadata.registryURI",
    "spec.imageMetadata.repository",
    "spec.imageMetadata.tag",
    "spec.imageMetadata.platform",
    "spec.imageMetadata.digest",
]


@pytest.fixture
def scheme():
    s = Scheme()
    install(s)
    return s


def test_kind_and_resource():
    assert kind("Image") == GroupKind(GROUP_NAME, "Image")
    assert resource("sboms") == GroupResource(GROUP_NAME, "sboms")


@pytest.mark.parametrize("label", FIELDS)
def test_conversion_accepts_known_fields(label):
    assert image_metadata_field_selector_conversion(label, "x") == (label, "x")


def test_conversion_rejects_unknown_field():
    with pytest.raises(FieldSelectorError, match="spec.other"):
        image_metadata_field_selector_conversion("spec.other", "x")


@pytest.mark.parametrize("obj_type", [Image, SBOM, VulnerabilityReport])
def test_install_registers_types(scheme, obj_type):
    gvk = SCHEME_GROUP_VERSION.with_kind(obj_type.__name__)
    assert scheme.recognizes(gvk)
    kinds = scheme.kind_for(obj_type)
    assert gvk in kinds
    assert INTERNAL_GROUP_VERSION.with_kind(obj_type.__name__) in kinds


def test_kind_for_accepts_instance(scheme):
    assert scheme.kind_for(Image()) == scheme.kind_for(Image)


def test_kind_for_unregistered_raises(scheme):
    with pytest.raises(KeyError):
        scheme.kind_for(Registry)


@pytest.mark.parametrize("label", FIELDS)
def test_convert_field_label_registered(scheme, label):
    gvk = SCHEME_GROUP_VERSION.with_kind("SBOM")
    assert scheme.convert_field_label(gvk, label, "v") == (label, "v")


def test_convert_field_label_registered_rejects(scheme):
    with pytest.raises(FieldSelectorError):
        scheme.convert_field_label(SCHEME_GROUP_VERSION.with_kind("Image"), "status.x", "v")


def test_convert_field_label_default(scheme):
    gvk = GroupVersion("sbombastic.rancher.io", "v1alpha1").with_kind("Registry")
    assert scheme.convert_field_label(gvk, "metadata.name", "n") == ("metadata.name", "n")
    with pytest.raises(FieldSelectorError):
        scheme.convert_field_label(gvk, "spec.imageMetadata.registry", "n")


def test_prioritized_versions(scheme):
    assert scheme.prioritized_versions_for_group(GROUP_NAME) == [SCHEME_GROUP_VERSION]
    assert scheme.prioritized_versions_for_group("unknown") == []


def test_observed_versions_follow_priority():
    s = Scheme()
    other = GroupVersion(GROUP_NAME, "v1beta1")
    s.add_known_types(other, Image)
    add_known_types(s)
    s.set_version_priority(SCHEME_GROUP_VERSION)
    assert s.prioritized_versions_for_group(GROUP_NAME) == [SCHEME_GROUP_VERSION, other]


def test_set_version_priority_rejects_mixed_groups(scheme):
    with pytest.raises(ValueError):
        scheme.set_version_priority(SCHEME_GROUP_VERSION, GroupVersion("other", "v1"))


def test_double_registration_with_different_type_raises():
    s = Scheme()
    s.add_known_types(SCHEME_GROUP_VERSION, Image)

    class Image2:
        pass

    Image2.__name__ = "Image"
    with pytest.raises(ValueError):
        s.add_known_types(SCHEME_GROUP_VERSION, Image2)


def test_reregistering_same_type_is_idempotent():
    s = Scheme()
    add_known_types(s)
    add_known_types(s)
    assert s.kind_for(Image) == [SCHEME_GROUP_VERSION.with_kind("Image")]
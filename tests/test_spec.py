from crdgen.apiext import (
    CustomResourceColumnDefinition,
    CustomResourceDefinition,
    CustomResourceDefinitionSpec,
    CustomResourceDefinitionVersion,
    CustomResourceSubresources,
    CustomResourceSubresourceStatus,
    CustomResourceValidation,
    JSONSchemaProps,
)
from crdgen.spec import merge_identical_version_info, to_trivial_versions


def _schema(required=True):
    return CustomResourceValidation(
        open_apiv3_schema=JSONSchemaProps(
            required=["foo"] if required else None,
            type="object",
            properties={"foo": JSONSchemaProps(type="string")},
        )
    )


def _columns():
    return [
        CustomResourceColumnDefinition(name="Cheddar", json_path=".spec.cheddar"),
        CustomResourceColumnDefinition(name="Parmesan", json_path=".status.parmesan"),
    ]


def _crd(*versions):
    return CustomResourceDefinition(spec=CustomResourceDefinitionSpec(versions=list(versions)))


V = CustomResourceDefinitionVersion


def test_single_version_schema_is_hoisted():
    crd = _crd(V(name="v1", storage=True, schema=_schema()))
    merge_identical_version_info(crd)
    assert crd.spec.validation == _schema()
    assert crd.spec.versions == [V(name="v1", storage=True)]


def test_identical_schemata_are_hoisted():
    crd = _crd(V(name="v1", schema=_schema()), V(name="v2", storage=True, schema=_schema()))
    merge_identical_version_info(crd)
    assert crd.spec.validation == _schema()
    assert crd.spec.versions == [V(name="v1"), V(name="v2", storage=True)]


def test_different_schemata_are_not_merged():
    crd = _crd(
        V(name="v1", schema=_schema(required=False)),
        V(name="v2", storage=True, schema=_schema()),
    )
    orig = crd.deep_copy()
    merge_identical_version_info(crd)
    assert crd == orig


def _status():
    return CustomResourceSubresources(status=CustomResourceSubresourceStatus())


def test_single_version_subresources_are_hoisted():
    crd = _crd(V(name="v1", storage=True, subresources=_status()))
    merge_identical_version_info(crd)
    assert crd.spec.subresources == _status()
    assert crd.spec.versions == [V(name="v1", storage=True)]


def test_identical_subresources_are_hoisted():
    crd = _crd(V(name="v1", subresources=_status()), V(name="v2", storage=True, subresources=_status()))
    merge_identical_version_info(crd)
    assert crd.spec.subresources == _status()
    assert crd.spec.versions == [V(name="v1"), V(name="v2", storage=True)]


def test_different_subresources_are_not_merged():
    crd = _crd(V(name="v1", subresources=_status()), V(name="v2", storage=True))
    orig = crd.deep_copy()
    merge_identical_version_info(crd)
    assert crd == orig


def test_single_version_printer_columns_are_hoisted():
    crd = _crd(V(name="v1", storage=True, additional_printer_columns=_columns()))
    merge_identical_version_info(crd)
    assert crd.spec.additional_printer_columns == _columns()
    assert crd.spec.versions == [V(name="v1", storage=True)]


def test_identical_printer_columns_are_hoisted():
    crd = _crd(
        V(name="v1", additional_printer_columns=_columns()),
        V(name="v2", storage=True, additional_printer_columns=_columns()),
    )
    merge_identical_version_info(crd)
    assert crd.spec.additional_printer_columns == _columns()
    assert crd.spec.versions == [V(name="v1"), V(name="v2", storage=True)]


def test_different_printer_columns_are_not_merged():
    crd = _crd(V(name="v1", additional_printer_columns=_columns()), V(name="v2", storage=True))
    orig = crd.deep_copy()
    merge_identical_version_info(crd)
    assert crd == orig


def test_no_versions_is_left_alone():
    crd = CustomResourceDefinition()
    orig = crd.deep_copy()
    merge_identical_version_info(crd)
    assert crd == orig


def test_trivial_versions_uses_storage_version():
    crd = _crd(
        V(name="v1", schema=_schema(required=False), additional_printer_columns=_columns()),
        V(name="v2", storage=True, schema=_schema(), subresources=_status()),
    )
    to_trivial_versions(crd)
    assert crd.spec.validation == _schema()
    assert crd.spec.subresources == _status()
    assert crd.spec.additional_printer_columns is None
    assert crd.spec.versions == [V(name="v1"), V(name="v2", storage=True)]


def test_trivial_versions_without_storage_strips_only():
    crd = _crd(V(name="v1", schema=_schema()))
    to_trivial_versions(crd)
    assert crd.spec.validation is None
    assert crd.spec.versions == [V(name="v1")]
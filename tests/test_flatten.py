import pytest

from crdgen.apiext import (
    JSON,
    ExternalDocumentation,
    JSONSchemaProps,
    JSONSchemaPropsOrBool,
)
from crdgen.flatten import ErrorRecorder, Flattener, flatten_embedded, ident_from_ref
from crdgen.ident import Package, TypeIdent, ref_parts, type_ref_link

P = JSONSchemaProps


@pytest.fixture
def err_rec():
    return ErrorRecorder()


# ---- allOf flattening ----

def test_nullable_if_any_branch_nullable(err_rec):
    original = P(properties={"multiNullable": P(all_of=[P(nullable=True), P(), P()])})
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(properties={"multiNullable": P(nullable=True)})


def test_not_nullable_if_no_branch_nullable(err_rec):
    original = P(properties={"multiNullable": P(all_of=[P(), P(), P()])})
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(properties={"multiNullable": P(nullable=False)})


def test_ignores_additional_properties_without_schema(err_rec):
    original = P(all_of=[
        P(additional_properties=JSONSchemaPropsOrBool()),
        P(additional_properties=JSONSchemaPropsOrBool(schema=P(type="string"))),
        P(additional_properties=JSONSchemaPropsOrBool(allows=True)),
    ])
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(additional_properties=JSONSchemaPropsOrBool(schema=P(type="string")))


def test_collapses_additional_properties(err_rec):
    original = P(properties={"multiAdditionalProps": P(all_of=[
        P(additional_properties=JSONSchemaPropsOrBool(schema=P(nullable=True, max_length=7))),
        P(additional_properties=JSONSchemaPropsOrBool(
            schema=P(type="string", pattern="^[abc]$"))),
        P(additional_properties=JSONSchemaPropsOrBool(
            schema=P(type="string", pattern="^[abcdef]$", min_length=1))),
    ])})
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(properties={"multiAdditionalProps": P(
        additional_properties=JSONSchemaPropsOrBool(schema=P(
            nullable=True,
            max_length=7,
            min_length=1,
            type="string",
            all_of=[P(pattern="^[abc]$"), P(pattern="^[abcdef]$")],
        ))
    )})


def test_conflicting_types_record_error(err_rec):
    flatten_embedded(
        P(properties={"multiType": P(all_of=[P(type="string"), P(type="int")])}),
        err_rec,
    )
    assert len(err_rec.errors) == 1
    assert "conflicting types" in str(err_rec.errors[0])


def test_merges_required_deduplicating(err_rec):
    original = P(all_of=[
        P(required=["foo", "bar"]),
        P(required=["quux", "cheddar"]),
        P(required=["bar", "baz"]),
        P(required=["cheddar"]),
    ])
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened.required == ["bar", "baz", "cheddar", "foo", "quux"]
    assert flattened.all_of is None


def test_merges_properties_pushing_all_of_inside(err_rec):
    original = P(all_of=[
        P(properties={
            "nonConflicting": P(type="string"),
            "conflicting1": P(type="string", format="date-time"),
            "nonConflictingDup": P(type="bool"),
        }),
        P(properties={
            "conflicting1": P(type="string", min_length=1),
            "conflicting2": P(type="int", multiple_of=7.0),
        }),
        P(properties={
            "conflicting2": P(type="int", multiple_of=8.0),
            "nonConflictingDup": P(type="bool"),
        }),
    ])
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(properties={
        "nonConflicting": P(type="string"),
        "nonConflictingDup": P(type="bool"),
        "conflicting1": P(type="string", format="date-time", min_length=1),
        "conflicting2": P(type="int", all_of=[P(multiple_of=7.0), P(multiple_of=8.0)]),
    })


def test_skips_documentation_fields(err_rec):
    original = P(
        all_of=[
            P(title="a title"),
            P(description="a desc"),
            P(example=JSON(b"an ex")),
            P(external_docs=ExternalDocumentation(
                description="some exdocs", url="https://other.example.com")),
        ],
        title="title",
        description="desc",
        example=JSON(b"ex"),
        external_docs=ExternalDocumentation(description="exdocs", url="https://example.com"),
    )
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(
        title="title",
        description="desc",
        example=JSON(b"ex"),
        external_docs=ExternalDocumentation(description="exdocs", url="https://example.com"),
    )


def test_uses_single_branch_values(err_rec):
    original = P(all_of=[
        P(type="string"),
        P(min_length=2),
        P(enum=[JSON(b"ab"), JSON(b"ac")]),
    ])
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(type="string", min_length=2, enum=[JSON(b"ab"), JSON(b"ac")])


def test_pushes_all_of_down(err_rec):
    original = P(all_of=[
        P(properties={"prop1": P(properties={
            "prop2": P(type="string", pattern="^[abc]+$")})}),
        P(properties={"prop1": P(properties={"prop2": P(pattern="^(bc)+$")})}),
    ])
    flattened = flatten_embedded(original, err_rec)
    assert err_rec.errors == []
    assert flattened == P(properties={"prop1": P(properties={"prop2": P(
        type="string",
        all_of=[P(pattern="^[abc]+$"), P(pattern="^(bc)+$")],
    )})})


def test_irreducible_schema_is_unchanged(err_rec):
    original = P(type="string", all_of=[P(pattern="^[abc]+$"), P(pattern="^(bc)+$")])
    flattened = flatten_embedded(original.deep_copy(), err_rec)
    assert err_rec.errors == []
    assert flattened == original


def test_nested_all_of(err_rec):
    original = P(all_of=[
        P(all_of=[P(pattern="^[abc]$"), P(pattern="^[abcdef]$", min_length=1)]),
        P(type="string"),
    ])
    flattened = flatten_embedded(original.deep_copy(), err_rec)
    assert err_rec.errors == []
    assert flattened == P(
        type="string",
        min_length=1,
        all_of=[P(pattern="^[abc]$"), P(pattern="^[abcdef]$")],
    )


def test_flatten_embedded_leaves_input_untouched(err_rec):
    original = P(all_of=[P(type="string"), P(min_length=2)])
    snapshot = original.deep_copy()
    flatten_embedded(original, err_rec)
    assert original == snapshot


# ---- reference flattening ----

class _FakeParser:
    def __init__(self):
        self.schemata = {}
        self.requested = []

    def need_schema_for(self, typ):
        self.requested.append(typ)


@pytest.fixture
def pkgs():
    return Package("root"), Package("other")


@pytest.fixture
def flattener(pkgs):
    root_pkg, other_pkg = pkgs

    def lookup(ref, context_pkg):
        typ, pkg_name = ref_parts(ref)
        if pkg_name == "":
            return TypeIdent(context_pkg, typ)
        if pkg_name == "root":
            return TypeIdent(root_pkg, typ)
        if pkg_name == "other":
            return TypeIdent(other_pkg, typ)
        raise LookupError(f"unknown package {pkg_name!r}")

    return Flattener(_FakeParser(), lookup)


def _types(pkgs):
    root_pkg, other_pkg = pkgs
    return (
        TypeIdent(root_pkg, "RootType"),
        TypeIdent(root_pkg, "SubtypeWithRefs"),
        TypeIdent(other_pkg, "LeafType"),
    )


def test_flattens_hierarchy_of_references(flattener, pkgs):
    root_type, subtype, leaf = _types(pkgs)
    to_subtype = type_ref_link("", subtype.name)
    to_leaf = type_ref_link("other", leaf.name)
    flattener.parser.schemata = {
        root_type: P(properties={"refProp": P(ref=to_subtype)}),
        subtype: P(additional_properties=JSONSchemaPropsOrBool(schema=P(ref=to_leaf))),
        leaf: P(type="string", pattern="^[abc]$"),
    }
    out = flattener.flatten_type(root_type)
    assert pkgs[0].errors == [] and pkgs[1].errors == []
    assert out == P(properties={"refProp": P(all_of=[
        P(additional_properties=JSONSchemaPropsOrBool(schema=P(all_of=[
            P(type="string", pattern="^[abc]$"), P(),
        ]))),
        P(),
    ])})


def _leaf_uses(pkgs):
    root_type, _, leaf = _types(pkgs)
    to_leaf = type_ref_link("other", leaf.name)
    return root_type, leaf, {
        root_type: P(properties={
            "useWithOtherPattern": P(ref=to_leaf, pattern="^[cde]$",
                                     description="has other pattern"),
            "useWithMinLen": P(ref=to_leaf, min_length=1, description="has min len"),
            "useWithMaxLen": P(ref=to_leaf, max_length=3, description="has max len"),
        }),
        leaf: P(type="string", pattern="^[abc]$"),
    }


def test_preserves_properties_of_each_use(flattener, pkgs):
    root_type, _, schemata = _leaf_uses(pkgs)
    flattener.parser.schemata = schemata
    out = flattener.flatten_type(root_type)
    assert pkgs[0].errors == [] and pkgs[1].errors == []
    leaf_schema = P(type="string", pattern="^[abc]$")
    assert out == P(properties={
        "useWithOtherPattern": P(all_of=[leaf_schema, P(pattern="^[cde]$")],
                                 description="has other pattern"),
        "useWithMinLen": P(all_of=[leaf_schema, P(min_length=1)],
                           description="has min len"),
        "useWithMaxLen": P(all_of=[leaf_schema, P(max_length=3)],
                           description="has max len"),
    })


def test_cache_is_not_modified_by_uses(flattener, pkgs):
    root_type, leaf, schemata = _leaf_uses(pkgs)
    flattener.parser.schemata = schemata
    flattener.flatten_type(root_type)
    assert flattener.flatten_type(leaf) == P(type="string", pattern="^[abc]$")


def test_copies_documentation_for_each_use(flattener, pkgs):
    root_type, _, leaf = _types(pkgs)
    to_leaf = type_ref_link("other", leaf.name)
    docs = ExternalDocumentation(description="somewhere else", url="https://example.com")
    flattener.parser.schemata = {
        root_type: P(properties={
            "hasTitle": P(ref=to_leaf, description="has title", title="some title"),
            "hasExample": P(ref=to_leaf, description="has example", example=JSON(b"[42]")),
            "hasExternalDocs": P(ref=to_leaf, description="has external docs",
                                 external_docs=docs),
        }),
        leaf: P(type="string", pattern="^[abc]$"),
    }
    out = flattener.flatten_type(root_type)
    assert pkgs[0].errors == [] and pkgs[1].errors == []
    leaf_schema = P(type="string", pattern="^[abc]$")
    assert out == P(properties={
        "hasTitle": P(all_of=[leaf_schema, P()], description="has title",
                      title="some title"),
        "hasExample": P(all_of=[leaf_schema, P()], description="has example",
                        example=JSON(b"[42]")),
        "hasExternalDocs": P(all_of=[leaf_schema, P()], description="has external docs",
                             external_docs=docs),
    })


def test_ignores_non_references_but_continues(flattener, pkgs):
    root_type, subtype, leaf = _types(pkgs)
    to_leaf = type_ref_link("other", leaf.name)
    to_subtype = type_ref_link("", subtype.name)
    flattener.parser.schemata = {
        root_type: P(properties={"isRef": P(ref=to_subtype), "notRef": P(type="int")}),
        subtype: P(properties={"leafRef": P(ref=to_leaf), "alsoNotRef": P(type="bool")}),
        leaf: P(type="string", pattern="^[abc]$"),
    }
    out = flattener.flatten_type(root_type)
    assert pkgs[0].errors == [] and pkgs[1].errors == []
    assert out == P(properties={
        "isRef": P(all_of=[
            P(properties={
                "leafRef": P(all_of=[P(type="string", pattern="^[abc]$"), P()]),
                "alsoNotRef": P(type="bool"),
            }),
            P(),
        ]),
        "notRef": P(type="int"),
    })


def test_unknown_type_records_error(flattener, pkgs):
    root_type, _, _ = _types(pkgs)
    assert flattener.flatten_type(root_type) is None
    assert len(pkgs[0].errors) == 1
    assert "unable to locate schema" in str(pkgs[0].errors[0])


def test_non_standard_reference_records_error(flattener, pkgs):
    root_type, _, _ = _types(pkgs)
    flattener.parser.schemata = {root_type: P(properties={"bad": P(ref="elsewhere")})}
    out = flattener.flatten_type(root_type)
    assert out.properties["bad"].ref == "elsewhere"
    assert len(pkgs[0].errors) == 1
    assert "non-standard reference link" in str(pkgs[0].errors[0])


def test_flatten_schema_does_not_modify_input(flattener, pkgs):
    _, _, leaf = _types(pkgs)
    flattener.parser.schemata = {leaf: P(type="string")}
    base = P(properties={"x": P(ref=type_ref_link("other", leaf.name))})
    snapshot = base.deep_copy()
    out = flattener.flatten_schema(base, pkgs[0])
    assert base == snapshot
    assert out.properties["x"] == P(all_of=[P(type="string"), P()])


def test_ident_from_ref_local_and_external():
    other = Package("example.com/other")
    root = Package("root", imports={"example.com/other": other})
    local = ident_from_ref(type_ref_link("", "Foo"), root)
    assert local == TypeIdent(root, "Foo")
    external = ident_from_ref(type_ref_link("example.com/other", "Bar"), root)
    assert external.package is other
    assert external.name == "Bar"


def test_ident_from_ref_unknown_package():
    root = Package("root")
    with pytest.raises(LookupError):
        ident_from_ref(type_ref_link("missing/pkg", "Bar"), root)


def test_error_recorder_collects():
    rec = ErrorRecorder()
    err = ValueError("boom")
    rec.add_error(err)
    assert rec.errors == [err]
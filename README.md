# crdgen

`crdgen` builds CustomResourceDefinition (CRD) objects and their OpenAPI v3
validation schemata from type information annotated with markers.

## Modules

- **`crdgen.apiext`**: dataclasses for `JSONSchemaProps`,
  `CustomResourceDefinition` and the objects they hold. `deep_copy()` returns an
  independent copy; `to_dict()` returns the wire form as plain dictionaries,
  leaving out empty optional fields.
- **`crdgen.ident`**: `Package` (compared by identity, collecting its own errors
  through `add_error`), `TypeIdent`, and the helpers `qualified_name`,
  `type_ref_link`, `ref_parts` and `builtin_to_type`.
- **`crdgen.visitor`**: `edit_schema` walks a schema tree in place with a
  `SchemaVisitor`. `truncate_description` shortens every description longer
  than a maximum length, cutting back to the last sentence terminator where
  there is one; a maximum of 0 drops all descriptions.
- **`crdgen.flatten`**: a `Flattener` resolves `$ref` links between type
  schemata, caching flattened types and keeping the documentation and
  validation of each use of a type. `flatten_embedded` returns a copy of a
  schema with its `allOf` branches merged in where possible; conflicts it
  cannot merge are kept as minimal `allOf` branches, and conflicting types are
  reported to the given error recorder (for example an `ErrorRecorder`).
- **`crdgen.crdmarkers`**: `SubresourceStatus`, `SubresourceScale`,
  `StorageVersion`, `SkipVersion`, `PrintColumn` and `Resource`, each with
  `apply_to_crd(spec, version)`. Failures raise `MarkerError`.
- **`crdgen.validation`**: `Maximum`, `Minimum`, `ExclusiveMaximum`,
  `ExclusiveMinimum`, `MultipleOf`, `MaxLength`, `MinLength`, `Pattern`,
  `MaxItems`, `MinItems`, `UniqueItems`, `Enum`, `Format`, `Type`, `Nullable`
  and `Default`, each with `apply_to_schema(schema)`. `apply_schema_markers`
  applies a set of markers, `Type` (and any other marker with `apply_first`)
  before the rest, recording failures on an error recorder.
- **`crdgen.spec`**: `merge_identical_version_info` moves subresources,
  schemata and printer columns that are identical across all versions up into
  the top-level spec. `to_trivial_versions` keeps only the storage version's
  schema, subresources and columns, moved up to the spec.
- **`crdgen.parser`**: a `Parser` indexes `TypeInfo` entries per `Package`,
  reads the `groupName`, `versionName` and `kubebuilder:skip` package markers,
  generates and flattens schemata, and assembles full CRDs with
  `need_crd_for`. `add_known_types` registers the overrides from
  `known_packages()`; `pluralize` gives the default plural resource name.

## Examples

Truncating descriptions:

```python
from crdgen.apiext import JSONSchemaProps
from crdgen.visitor import truncate_description

schema = JSONSchemaProps(
    description="This is top level description. There is an empty schema. More to come",
)
truncate_description(schema, len(schema.description) - 5)
print(schema.description)
# This is top level description. There is an empty schema.
```

Flattening `allOf` branches:

```python
from crdgen.apiext import JSONSchemaProps
from crdgen.flatten import ErrorRecorder, flatten_embedded

errs = ErrorRecorder()
schema = JSONSchemaProps(all_of=[
    JSONSchemaProps(required=["foo", "bar"]),
    JSONSchemaProps(required=["bar", "baz"]),
])
flat = flatten_embedded(schema, errs)
print(flat.required)  # ['bar', 'baz', 'foo']
```

Building a CRD:

```python
from crdgen.apiext import JSONSchemaProps
from crdgen.crdmarkers import SubresourceStatus
from crdgen.ident import Package
from crdgen.parser import GroupKind, Parser, TypeInfo

pkg = Package("example.com/api/v1", name="v1")
widget = TypeInfo(
    "Widget",
    schema=JSONSchemaProps(
        type="object",
        properties={"size": JSONSchemaProps(type="integer")},
    ),
    markers={"kubebuilder:subresource:status": [SubresourceStatus()]},
)
parser = Parser(
    package_types={pkg: [widget]},
    package_markers={pkg: {"groupName": "example.com"}},
)
parser.need_package(pkg)
group_kind = GroupKind("example.com", "Widget")
parser.need_crd_for(group_kind, None)

crd = parser.custom_resource_definitions[group_kind]
print(crd.name)          # widgets.example.com
print(crd.spec.version)  # v1
manifest = crd.to_dict()
```

## What it does not do

The package works from type information it is handed: each `TypeInfo` already
carries its unflattened schema, documentation and marker values. It does not
read or type-check source files, does not parse marker comments from text,
has no command-line tool, and does not write manifest files; `to_dict()`
returns plain dictionaries for you to serialise as you like.

## Running the tests

```
pip install -e .[test]
pytest
```
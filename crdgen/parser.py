"""Collecting types, generating their schemata, and building CustomResourceDefinitions."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from crdgen.apiext import (
    CustomResourceDefinition,
    CustomResourceDefinitionNames,
    CustomResourceDefinitionSpec,
    CustomResourceDefinitionVersion,
    CustomResourceValidation,
    JSONSchemaProps,
    JSONSchemaPropsOrBool,
)
from crdgen.crdmarkers import MarkerError
from crdgen.flatten import Flattener, flatten_embedded
from crdgen.ident import Package, TypeIdent
from crdgen.spec import merge_identical_version_info
from crdgen.validation import apply_schema_markers
from crdgen.visitor import truncate_description

PackageOverride = Callable[["Parser", Package], None]


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str


@dataclass(frozen=True)
class GroupKind:
    """An API group together with a kind in it."""

    group: str
    kind: str

    def __str__(self) -> str:
        if not self.group:
            return self.kind
        return f"{self.kind}.{self.group}"


@dataclass
class TypeInfo:
    """A named type in a package: its unflattened schema, documentation and markers."""

    name: str
    schema: JSONSchemaProps | None = None
    doc: str = ""
    markers: dict[str, Any] = field(default_factory=dict)


def _marker_values(markers: Mapping[str, Any]) -> list[Any]:
    out: list[Any] = []
    for values in markers.values():
        if isinstance(values, (list, tuple)):
            out.extend(values)
        else:
            out.append(values)
    return out


def _first_marker(markers: Mapping[str, Any], name: str) -> Any:
    value = markers.get(name)
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _non_vendor_path(path: str) -> str:
    return path.rsplit("/vendor/", 1)[-1]


class Parser:
    """Turns types and markers into schemata and CustomResourceDefinitions.

    Every ``need_*`` method caches its result, so repeated calls are cheap.
    Errors are recorded on the package they concern.
    """

    def __init__(
        self,
        package_types: Mapping[Package, Iterable[TypeInfo]] | None = None,
        package_markers: Mapping[Package, Mapping[str, Any]] | None = None,
        package_overrides: Mapping[str, PackageOverride] | None = None,
    ) -> None:
        self.types: dict[TypeIdent, TypeInfo] = {}
        self.schemata: dict[TypeIdent, JSONSchemaProps] = {}
        self.group_versions: dict[Package, GroupVersion] = {}
        self.custom_resource_definitions: dict[GroupKind, CustomResourceDefinition] = {}
        self.flattened_schemata: dict[TypeIdent, JSONSchemaProps] = {}
        self.package_overrides: dict[str, PackageOverride] = dict(package_overrides or {})
        self._package_types = {
            pkg: list(infos) for pkg, infos in (package_types or {}).items()
        }
        self._package_markers = {
            pkg: dict(markers) for pkg, markers in (package_markers or {}).items()
        }
        self._packages: set[Package] = set()
        self._flattener = Flattener(self)

    def _index_types(self, pkg: Package) -> None:
        pkg_markers = self._package_markers.get(pkg, {})
        if "kubebuilder:skip" in pkg_markers:
            return
        group = _first_marker(pkg_markers, "groupName")
        if group is not None:
            version = _first_marker(pkg_markers, "versionName")
            self.group_versions[pkg] = GroupVersion(
                group=str(group),
                version=str(version) if version is not None else pkg.name,
            )
        for info in self._package_types.get(pkg, ()):
            self.types[TypeIdent(pkg, info.name)] = info

    def lookup_type(self, pkg: Package, name: str) -> TypeInfo | None:
        """Return the known information for the named type, if any."""
        return self.types.get(TypeIdent(pkg, name))

    def add_package(self, pkg: Package) -> None:
        """Index the package's types, ignoring any override."""
        if pkg in self._packages:
            return
        self._index_types(pkg)
        self._packages.add(pkg)

    def need_package(self, pkg: Package) -> None:
        """Load the package, through its override when one is registered."""
        if pkg in self._packages:
            return
        override = self.package_overrides.get(_non_vendor_path(pkg.pkg_path))
        if override is not None:
            override(self, pkg)
            self._packages.add(pkg)
            return
        self.add_package(pkg)

    def need_schema_for(self, typ: TypeIdent) -> None:
        """Generate the (unflattened) schema for the given type."""
        self.need_package(typ.package)
        if typ in self.schemata:
            return
        info = self.types.get(typ)
        if info is None:
            typ.package.add_error(LookupError(f"unknown type {typ}"))
            return
        # a placeholder guards against recursive types
        self.schemata[typ] = JSONSchemaProps()
        schema = info.schema.deep_copy() if info.schema is not None else JSONSchemaProps()
        schema.description = info.doc
        apply_schema_markers(info.markers, schema, typ.package)
        self.schemata[typ] = schema

    def need_flattened_schema_for(self, typ: TypeIdent) -> None:
        """Generate the schema with references and embedded fields flattened."""
        if typ in self.flattened_schemata:
            return
        self.need_schema_for(typ)
        partial = self._flattener.flatten_type(typ)
        if partial is None:
            return
        self.flattened_schemata[typ] = flatten_embedded(partial, typ.package)

    def need_crd_for(self, group_kind: GroupKind, max_desc_len: int | None) -> None:
        """Build the definition for the group-kind from the packages already loaded."""
        if group_kind in self.custom_resource_definitions:
            return

        packages = [
            pkg for pkg, gv in self.group_versions.items() if gv.group == group_kind.group
        ]

        default_plural = pluralize(group_kind.kind.lower())
        crd = CustomResourceDefinition(
            name=f"{default_plural}.{group_kind.group}",
            spec=CustomResourceDefinitionSpec(
                group=group_kind.group,
                names=CustomResourceDefinitionNames(
                    kind=group_kind.kind,
                    list_kind=group_kind.kind + "List",
                    plural=default_plural,
                    singular=group_kind.kind.lower(),
                ),
            ),
        )

        versions: list[CustomResourceDefinitionVersion] = []
        for pkg in packages:
            ident = TypeIdent(pkg, group_kind.kind)
            if ident not in self.types:
                continue
            self.need_flattened_schema_for(ident)
            flattened = self.flattened_schemata.get(ident)
            if flattened is None:
                continue
            full = flattened.deep_copy()
            if max_desc_len is not None:
                truncate_description(full, max_desc_len)
            versions.append(CustomResourceDefinitionVersion(
                name=self.group_versions[pkg].version,
                served=True,
                schema=CustomResourceValidation(open_apiv3_schema=full),
            ))
        crd.spec.versions = versions or None

        # markers are applied after the initial objects are generated
        for pkg in packages:
            info = self.types.get(TypeIdent(pkg, group_kind.kind))
            if info is None:
                continue
            version = self.group_versions[pkg].version
            for marker in _marker_values(info.markers):
                if not hasattr(marker, "apply_to_crd"):
                    continue
                try:
                    marker.apply_to_crd(crd.spec, version)
                except (MarkerError, ValueError) as err:
                    pkg.add_error(err)

        crd.name = f"{crd.spec.names.plural}.{group_kind.group}"

        if not crd.spec.versions:
            return

        crd.spec.versions.sort(key=lambda ver: ver.name)
        crd.spec.version = crd.spec.versions[0].name

        if len(crd.spec.versions) == 1:
            crd.spec.versions[0].storage = True
        if not any(ver.storage for ver in crd.spec.versions):
            packages[0].add_error(ValueError(f"CRD for {group_kind} has no storage version"))

        crd.status.conditions = []
        crd.status.stored_versions = []

        merge_identical_version_info(crd)
        self.custom_resource_definitions[group_kind] = crd


def _override_meta_v1(p: Parser, pkg: Package) -> None:
    # ObjectMeta is managed by the API server, so it gets no validation of its own
    p.schemata[TypeIdent(pkg, "ObjectMeta")] = JSONSchemaProps(type="object")
    p.schemata[TypeIdent(pkg, "Time")] = JSONSchemaProps(type="string", format="date-time")
    p.schemata[TypeIdent(pkg, "MicroTime")] = JSONSchemaProps(
        type="string", format="date-time"
    )
    p.schemata[TypeIdent(pkg, "Duration")] = JSONSchemaProps(type="string")
    # recursive structure that cannot be flattened: treat as an arbitrary map
    p.schemata[TypeIdent(pkg, "Fields")] = JSONSchemaProps(
        type="object",
        additional_properties=JSONSchemaPropsOrBool(allows=True),
    )
    p.add_package(pkg)


def _override_resource(p: Parser, pkg: Package) -> None:
    p.schemata[TypeIdent(pkg, "Quantity")] = JSONSchemaProps(type="string")


def _override_runtime(p: Parser, pkg: Package) -> None:
    p.schemata[TypeIdent(pkg, "RawExtension")] = JSONSchemaProps(type="object")
    p.add_package(pkg)


def _override_unstructured(p: Parser, pkg: Package) -> None:
    p.schemata[TypeIdent(pkg, "Unstructured")] = JSONSchemaProps(type="object")
    p.add_package(pkg)


def _override_intstr(p: Parser, pkg: Package) -> None:
    p.schemata[TypeIdent(pkg, "IntOrString")] = JSONSchemaProps(
        any_of=[JSONSchemaProps(type="string"), JSONSchemaProps(type="integer")]
    )


def _override_apiext(p: Parser, pkg: Package) -> None:
    p.schemata[TypeIdent(pkg, "JSON")] = JSONSchemaProps(x_preserve_unknown_fields=True)
    p.add_package(pkg)


def known_packages() -> dict[str, PackageOverride]:
    """Overrides for well-known packages whose types carry no validation markers."""
    return {
        "k8s.io/apimachinery/pkg/apis/meta/v1": _override_meta_v1,
        "k8s.io/apimachinery/pkg/api/resource": _override_resource,
        "k8s.io/apimachinery/pkg/runtime": _override_runtime,
        "k8s.io/apimachinery/pkg/apis/meta/v1/unstructured": _override_unstructured,
        "k8s.io/apimachinery/pkg/util/intstr": _override_intstr,
        "k8s.io/apiextensions-apiserver/pkg/apis/apiextensions/v1beta1": _override_apiext,
    }


def add_known_types(parser: Parser) -> None:
    """Register the well-known package overrides with the parser."""
    parser.package_overrides.update(known_packages())


_UNCOUNTABLE = frozenset({
    "equipment", "information", "rice", "money", "species", "series", "fish",
    "sheep", "deer", "news", "metadata", "data", "media", "moose", "aircraft",
})

_IRREGULAR = {
    "person": "people", "child": "children", "man": "men", "woman": "women",
    "mouse": "mice", "goose": "geese", "foot": "feet", "tooth": "teeth",
    "ox": "oxen", "datum": "data", "index": "indices", "matrix": "matrices",
    "vertex": "vertices", "criterion": "criteria", "phenomenon": "phenomena",
    "quiz": "quizzes", "leaf": "leaves", "knife": "knives", "life": "lives",
    "wife": "wives", "half": "halves", "wolf": "wolves", "shelf": "shelves",
}

_VOWELS = frozenset("aeiou")


def pluralize(word: str) -> str:
    """Return the English plural of word."""
    if not word:
        return word
    lower = word.lower()
    if lower in _UNCOUNTABLE:
        return word
    if lower in _IRREGULAR:
        plural = _IRREGULAR[lower]
        return word[0] + plural[1:] if word[0].isupper() == plural[0].isupper() else plural
    if lower.endswith("is") and len(lower) > 3:
        return word[:-2] + "es"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return word + "es"
    if lower.endswith("y") and len(lower) > 1 and lower[-2] not in _VOWELS:
        return word[:-1] + "ies"
    return word + "s"
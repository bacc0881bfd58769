"""Packages, type identifiers and schema reference links."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

DEF_PREFIX = "#/definitions/"


@dataclass(eq=False)
class Package:
    """A loaded package; compared by identity, collecting its own errors."""

    pkg_path: str
    name: str = ""
    id: str = ""
    imports: dict[str, Package] = field(default_factory=dict)
    errors: list[Exception] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.id:
            self.id = self.pkg_path

    def add_error(self, err: Exception) -> None:
        """Record that the given error occurred in this package."""
        self.errors.append(err)


@dataclass(frozen=True)
class TypeIdent:
    """Some named type in a package."""

    package: Package
    name: str

    def __str__(self) -> str:
        return f"{json.dumps(self.package.id, ensure_ascii=False)}.{self.name}"


def qualified_name(pkg_name: str, type_name: str) -> str:
    """Build a JSON-pointer-safe qualified name for a type."""
    if pkg_name:
        return pkg_name.replace("/", "~1") + "~0" + type_name
    return type_name


def type_ref_link(pkg_name: str, type_name: str) -> str:
    """Create a definition link for the given type and package."""
    return DEF_PREFIX + qualified_name(pkg_name, type_name)


def ref_parts(ref: str) -> tuple[str, str]:
    """Split a reference into (type name, package path); the path is empty for local refs."""
    if not ref.startswith(DEF_PREFIX):
        raise ValueError(f"non-standard reference link {json.dumps(ref)}")
    ref = ref[len(DEF_PREFIX):].replace("~1", "/").replace("~0", "~")
    pkg, sep, typ = ref.partition("~")
    if not sep:
        return pkg, ""
    return typ, pkg


_ALIASES = {"byte": "uint8", "rune": "int32"}
_BOOLEAN = frozenset({"bool", "untyped bool"})
_STRING = frozenset({"string", "untyped string"})
_INTEGER = frozenset({
    "int", "int8", "int16", "int32", "int64",
    "uint", "uint8", "uint16", "uint32", "uint64", "uintptr",
    "untyped int", "untyped rune",
})
_FORMATS = {"int32": "int32", "uint32": "int32", "int64": "int64", "uint64": "int64"}


def builtin_to_type(kind: str) -> tuple[str, str]:
    """Map a builtin basic type name to its (type, format) schema pair.

    Only kinds allowed by the Kubernetes API conventions are accepted;
    floats and anything else raise ValueError.
    """
    basic = _ALIASES.get(kind, kind)
    if basic in _BOOLEAN:
        typ = "boolean"
    elif basic in _STRING:
        typ = "string"
    elif basic in _INTEGER:
        typ = "integer"
    else:
        raise ValueError(f"unsupported type {json.dumps(kind)}")
    return typ, _FORMATS.get(basic, "")
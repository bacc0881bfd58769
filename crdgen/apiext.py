"""Data model for CustomResourceDefinitions and their OpenAPI v3 schemata."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field, fields
from typing import Any

API_VERSION = "apiextensions.k8s.io/v1beta1"
CRD_KIND = "CustomResourceDefinition"


def _f(key: str, default: Any = None, *, factory: Any = None,
       omitempty: bool = True, pointer: bool = False) -> Any:
    """Declare a field together with its wire name and emptiness rules."""
    meta = {"json": key, "omitempty": omitempty, "pointer": pointer}
    if factory is not None:
        return field(default_factory=factory, metadata=meta)
    return field(default=default, metadata=meta)


def _is_empty(value: Any, pointer: bool) -> bool:
    if value is None:
        return True
    if pointer:
        return False
    if isinstance(value, bool):
        return not value
    if isinstance(value, (int, float)):
        return value == 0
    if isinstance(value, (str, bytes, list, dict)):
        return not value
    return False


def _encode(value: Any) -> Any:
    if hasattr(value, "_to_wire"):
        return value._to_wire()
    if isinstance(value, list):
        return [_encode(item) for item in value]
    if isinstance(value, dict):
        return {key: _encode(item) for key, item in value.items()}
    return value


class _Wire:
    """Serialisation to plain JSON-compatible dictionaries."""

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form, leaving out empty optional fields."""
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if f.metadata.get("omitempty", True) and _is_empty(
                value, f.metadata.get("pointer", False)
            ):
                continue
            out[f.metadata["json"]] = _encode(value)
        return out

    def _to_wire(self) -> Any:
        return self.to_dict()


@dataclass(frozen=True)
class JSON:
    """An arbitrary JSON value held as its raw encoded bytes."""

    raw: bytes = b""

    @classmethod
    def from_value(cls, value: Any) -> JSON:
        """Encode a Python value compactly."""
        return cls(json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode())

    @property
    def value(self) -> Any:
        """The decoded value."""
        return json.loads(self.raw)

    def _to_wire(self) -> Any:
        return self.value


@dataclass
class ExternalDocumentation(_Wire):
    description: str = _f("description")
    url: str = _f("url")

    def __post_init__(self) -> None:
        self.description = self.description or ""
        self.url = self.url or ""


@dataclass
class JSONSchemaProps(_Wire):
    """One node of an OpenAPI v3 schema."""

    id: str = _f("id", "")
    schema: str = _f("$schema", "")
    ref: str | None = _f("$ref", pointer=True)
    description: str = _f("description", "")
    type: str = _f("type", "")
    format: str = _f("format", "")
    title: str = _f("title", "")
    default: JSON | None = _f("default", pointer=True)
    maximum: float | None = _f("maximum", pointer=True)
    exclusive_maximum: bool = _f("exclusiveMaximum", False)
    minimum: float | None = _f("minimum", pointer=True)
    exclusive_minimum: bool = _f("exclusiveMinimum", False)
    max_length: int | None = _f("maxLength", pointer=True)
    min_length: int | None = _f("minLength", pointer=True)
    pattern: str = _f("pattern", "")
    max_items: int | None = _f("maxItems", pointer=True)
    min_items: int | None = _f("minItems", pointer=True)
    unique_items: bool = _f("uniqueItems", False)
    multiple_of: float | None = _f("multipleOf", pointer=True)
    enum: list[JSON] | None = _f("enum")
    max_properties: int | None = _f("maxProperties", pointer=True)
    min_properties: int | None = _f("minProperties", pointer=True)
    required: list[str] | None = _f("required")
    items: JSONSchemaPropsOrArray | None = _f("items")
    all_of: list[JSONSchemaProps] | None = _f("allOf")
    one_of: list[JSONSchemaProps] | None = _f("oneOf")
    any_of: list[JSONSchemaProps] | None = _f("anyOf")
    not_: JSONSchemaProps | None = _f("not")
    properties: dict[str, JSONSchemaProps] | None = _f("properties")
    additional_properties: JSONSchemaPropsOrBool | None = _f("additionalProperties")
    pattern_properties: dict[str, JSONSchemaProps] | None = _f("patternProperties")
    dependencies: dict[str, JSONSchemaPropsOrStringArray] | None = _f("dependencies")
    additional_items: JSONSchemaPropsOrBool | None = _f("additionalItems")
    definitions: dict[str, JSONSchemaProps] | None = _f("definitions")
    external_docs: ExternalDocumentation | None = _f("externalDocs")
    example: JSON | None = _f("example", pointer=True)
    nullable: bool = _f("nullable", False)
    x_preserve_unknown_fields: bool | None = _f(
        "x-kubernetes-preserve-unknown-fields", pointer=True
    )
    x_embedded_resource: bool = _f("x-kubernetes-embedded-resource", False)
    x_int_or_string: bool = _f("x-kubernetes-int-or-string", False)

    def deep_copy(self) -> JSONSchemaProps:
        """Return a fully independent copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form of this schema, leaving out empty fields."""
        return super().to_dict()


@dataclass
class JSONSchemaPropsOrBool:
    """Either a schema, or a plain allow/deny flag."""

    allows: bool = False
    schema: JSONSchemaProps | None = None

    def _to_wire(self) -> Any:
        if self.schema is not None:
            return self.schema.to_dict()
        return bool(self.allows)


@dataclass
class JSONSchemaPropsOrArray:
    """Either a single schema, or a list of schemata."""

    schema: JSONSchemaProps | None = None
    json_schemas: list[JSONSchemaProps] | None = None

    def _to_wire(self) -> Any:
        if self.json_schemas:
            return [item.to_dict() for item in self.json_schemas]
        if self.schema is not None:
            return self.schema.to_dict()
        return None


@dataclass
class JSONSchemaPropsOrStringArray:
    """Either a schema, or a list of property names."""

    schema: JSONSchemaProps | None = None
    property: list[str] | None = None

    def _to_wire(self) -> Any:
        if self.property:
            return list(self.property)
        if self.schema is not None:
            return self.schema.to_dict()
        return None


@dataclass
class CustomResourceValidation(_Wire):
    open_apiv3_schema: JSONSchemaProps | None = _f("openAPIV3Schema")


@dataclass
class CustomResourceSubresourceStatus(_Wire):
    pass


@dataclass
class CustomResourceSubresourceScale(_Wire):
    spec_replicas_path: str = _f("specReplicasPath", "", omitempty=False)
    status_replicas_path: str = _f("statusReplicasPath", "", omitempty=False)
    label_selector_path: str | None = _f("labelSelectorPath", pointer=True)


@dataclass
class CustomResourceSubresources(_Wire):
    status: CustomResourceSubresourceStatus | None = _f("status")
    scale: CustomResourceSubresourceScale | None = _f("scale")


@dataclass
class CustomResourceColumnDefinition(_Wire):
    name: str = _f("name", "", omitempty=False)
    type: str = _f("type", "", omitempty=False)
    format: str = _f("format", "")
    description: str = _f("description", "")
    priority: int = _f("priority", 0)
    json_path: str = _f("JSONPath", "", omitempty=False)


@dataclass
class CustomResourceDefinitionVersion(_Wire):
    name: str = _f("name", "", omitempty=False)
    served: bool = _f("served", False, omitempty=False)
    storage: bool = _f("storage", False, omitempty=False)
    schema: CustomResourceValidation | None = _f("schema")
    subresources: CustomResourceSubresources | None = _f("subresources")
    additional_printer_columns: list[CustomResourceColumnDefinition] | None = _f(
        "additionalPrinterColumns"
    )


@dataclass
class CustomResourceDefinitionNames(_Wire):
    plural: str = _f("plural", "", omitempty=False)
    singular: str = _f("singular", "")
    short_names: list[str] | None = _f("shortNames")
    kind: str = _f("kind", "", omitempty=False)
    list_kind: str = _f("listKind", "")
    categories: list[str] | None = _f("categories")


@dataclass
class CustomResourceDefinitionSpec(_Wire):
    group: str = _f("group", "", omitempty=False)
    version: str = _f("version", "")
    names: CustomResourceDefinitionNames = _f(
        "names", factory=CustomResourceDefinitionNames, omitempty=False
    )
    scope: str = _f("scope", "", omitempty=False)
    validation: CustomResourceValidation | None = _f("validation")
    subresources: CustomResourceSubresources | None = _f("subresources")
    versions: list[CustomResourceDefinitionVersion] | None = _f("versions")
    additional_printer_columns: list[CustomResourceColumnDefinition] | None = _f(
        "additionalPrinterColumns"
    )


@dataclass
class CustomResourceDefinitionStatus(_Wire):
    conditions: list[Any] | None = _f("conditions", omitempty=False)
    accepted_names: CustomResourceDefinitionNames = _f(
        "acceptedNames", factory=CustomResourceDefinitionNames, omitempty=False
    )
    stored_versions: list[str] | None = _f("storedVersions", omitempty=False)


@dataclass
class CustomResourceDefinition:
    """A complete CustomResourceDefinition object."""

    name: str = ""
    spec: CustomResourceDefinitionSpec = field(default_factory=CustomResourceDefinitionSpec)
    status: CustomResourceDefinitionStatus = field(
        default_factory=CustomResourceDefinitionStatus
    )
    api_version: str = API_VERSION
    kind: str = CRD_KIND

    def deep_copy(self) -> CustomResourceDefinition:
        """Return a fully independent copy."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """Return the manifest form of this definition."""
        metadata: dict[str, Any] = {"creationTimestamp": None}
        if self.name:
            metadata["name"] = self.name
        out: dict[str, Any] = {}
        if self.api_version:
            out["apiVersion"] = self.api_version
        if self.kind:
            out["kind"] = self.kind
        out["metadata"] = metadata
        out["spec"] = self.spec.to_dict()
        out["status"] = self.status.to_dict()
        return out
"""Markers that modify the OpenAPI validation schema of a type or field."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from crdgen.apiext import JSON, JSONSchemaProps
from crdgen.crdmarkers import MarkerError


class _Recorder(Protocol):
    def add_error(self, err: Exception) -> None: ...


def _require_type(schema: JSONSchemaProps, expected: str, message: str) -> None:
    if schema.type != expected:
        raise MarkerError(message)


def _encode(value: Any) -> JSON:
    try:
        return JSON.from_value(value)
    except (TypeError, ValueError) as err:
        raise MarkerError(str(err)) from err


@dataclass
class Maximum:
    """Specifies the maximum numeric value that this field can have."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "integer", "must apply maximum to an integer")
        schema.maximum = float(self.value)


@dataclass
class Minimum:
    """Specifies the minimum numeric value that this field can have."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "integer", "must apply minimum to an integer")
        schema.minimum = float(self.value)


@dataclass
class ExclusiveMaximum:
    """Indicates that the maximum is "up to" but not including that value."""

    value: bool

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "integer", "must apply exclusivemaximum to an integer")
        schema.exclusive_maximum = bool(self.value)


@dataclass
class ExclusiveMinimum:
    """Indicates that the minimum is "up to" but not including that value."""

    value: bool

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "integer", "must apply exclusiveminimum to an integer")
        schema.exclusive_minimum = bool(self.value)


@dataclass
class MultipleOf:
    """Specifies that the numeric value must be a multiple of this one."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "integer", "must apply multipleof to an integer")
        schema.multiple_of = float(self.value)


@dataclass
class MaxLength:
    """Specifies the maximum length for this string."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "string", "must apply maxlength to a string")
        schema.max_length = int(self.value)


@dataclass
class MinLength:
    """Specifies the minimum length for this string."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "string", "must apply minlength to a string")
        schema.min_length = int(self.value)


@dataclass
class Pattern:
    """Specifies that this string must match the given regular expression."""

    value: str

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "string", "must apply pattern to a string")
        schema.pattern = str(self.value)


@dataclass
class MaxItems:
    """Specifies the maximum length for this list."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "array", "must apply maxitem to an array")
        schema.max_items = int(self.value)


@dataclass
class MinItems:
    """Specifies the minimum length for this list."""

    value: int

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "array", "must apply minitems to an array")
        schema.min_items = int(self.value)


@dataclass
class UniqueItems:
    """Specifies that all items in this list must be unique."""

    value: bool

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        _require_type(schema, "array", "must apply uniqueitems to an array")
        schema.unique_items = bool(self.value)


@dataclass
class Enum:
    """Restricts this (scalar) field to exactly the given values."""

    values: list[Any] = field(default_factory=list)

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        schema.enum = [_encode(value) for value in self.values]


@dataclass
class Format:
    """Specifies additional "complex" formatting for this field."""

    value: str

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        schema.format = str(self.value)


@dataclass
class Type:
    """Overrides the type for this field.

    Other markers check the schema type, so this one is applied first.
    """

    value: str

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        schema.type = str(self.value)

    def apply_first(self) -> None:
        """Mark this marker as one to apply before all others."""


@dataclass
class Nullable:
    """Marks this field as allowing the "null" value."""

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        schema.nullable = True


@dataclass
class Default:
    """Sets the default value for this field."""

    value: Any = None

    def apply_to_schema(self, schema: JSONSchemaProps) -> None:
        schema.default = _encode(self.value)


def _all_values(marker_values: Mapping[str, Any]) -> list[Any]:
    out: list[Any] = []
    for values in marker_values.values():
        if isinstance(values, Iterable) and not isinstance(values, (str, bytes)):
            out.extend(values)
        else:
            out.append(values)
    return out


def apply_schema_markers(marker_values: Mapping[str, Any], schema: JSONSchemaProps,
                         err_rec: _Recorder) -> None:
    """Apply every schema marker in marker_values to schema.

    Markers that declare ``apply_first`` go before the rest; values that are
    not schema markers are ignored.  Failures are recorded on err_rec.
    """
    values = [v for v in _all_values(marker_values) if hasattr(v, "apply_to_schema")]
    first = [v for v in values if hasattr(v, "apply_first")]
    rest = [v for v in values if not hasattr(v, "apply_first")]
    for marker in (*first, *rest):
        try:
            marker.apply_to_schema(schema)
        except (MarkerError, ValueError, TypeError) as err:
            err_rec.add_error(err)
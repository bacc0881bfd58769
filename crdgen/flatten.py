"""Flattening of schema references and of embedded (allOf) fields."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Protocol

from crdgen.apiext import JSONSchemaProps
from crdgen.ident import Package, TypeIdent, ref_parts
from crdgen.visitor import SchemaVisitor, edit_schema

_SCHEMA_FIELDS = tuple(fields(JSONSchemaProps))

# Documentation fields are merged before allOf flattening, never during it.
_SKIPPED_FIELDS = frozenset({"all_of", "title", "description", "example", "external_docs"})


class _Recorder(Protocol):
    def add_error(self, err: Exception) -> None: ...


@dataclass
class ErrorRecorder:
    """Collects errors raised while flattening schemata."""

    errors: list[Exception] = field(default_factory=list)

    def add_error(self, err: Exception) -> None:
        """Record that the given error occurred."""
        self.errors.append(err)


def _is_zero(value: Any, default: Any) -> bool:
    if default is None:
        return value is None
    return value == default


def _assign(dst: JSONSchemaProps, src: JSONSchemaProps) -> None:
    """Replace every field of dst with the matching field of src."""
    for f in _SCHEMA_FIELDS:
        setattr(dst, f.name, getattr(src, f.name))


def _flatten_all_of_into(dst: JSONSchemaProps, src: JSONSchemaProps,
                         err_rec: _Recorder) -> None:
    """Merge src (and, first, each of its allOf entries) into dst."""
    for embedded in src.all_of or ():
        _flatten_all_of_into(dst, embedded, err_rec)

    src_rem = JSONSchemaProps()
    dst_rem = JSONSchemaProps()
    hoisted = False

    for f in _SCHEMA_FIELDS:
        name = f.name
        if name in _SKIPPED_FIELDS:
            continue
        src_val = getattr(src, name)
        if _is_zero(src_val, f.default):
            continue
        dst_val = getattr(dst, name)
        if _is_zero(dst_val, f.default):
            setattr(dst, name, copy.deepcopy(src_val))
            continue
        if not isinstance(src_val, (list, dict)) and src_val == dst_val:
            continue

        if name == "properties":
            for key, prop in src_val.items():
                existing = dst_val.get(key)
                if existing is None:
                    dst_val[key] = copy.deepcopy(prop)
                else:
                    _flatten_all_of_into(existing, prop, err_rec)
        elif name == "required":
            dst_val.extend(src_val)
        elif name == "type":
            err_rec.add_error(ValueError(
                f"conflicting types in allOf branches in schema: {dst_val} vs {src_val}"
            ))
        elif name == "additional_properties":
            if src_val.schema is None:
                continue
            if dst_val.schema is None:
                dst_val.schema = JSONSchemaProps()
            _flatten_all_of_into(dst_val.schema, src_val.schema, err_rec)
        else:
            hoisted = True
            setattr(src_rem, name, copy.deepcopy(src_val))
            setattr(dst_rem, name, dst_val)
            setattr(dst, name, f.default)

    if hoisted:
        dst.all_of = list(dst.all_of or []) + [dst_rem, src_rem]

    if dst.required:
        dst.required = sorted(set(dst.required))


@dataclass
class _AllOfVisitor(SchemaVisitor):
    err_rec: _Recorder

    def visit(self, schema: JSONSchemaProps | None) -> SchemaVisitor | None:
        if schema is None:
            return self
        original = schema.all_of or []
        schema.all_of = None
        for embedded in original:
            _flatten_all_of_into(schema, embedded, self.err_rec)
        return self


def flatten_embedded(schema: JSONSchemaProps, err_rec: _Recorder) -> JSONSchemaProps:
    """Return a copy of schema with embedded (allOf) fields merged in where possible."""
    out = schema.deep_copy()
    edit_schema(out, _AllOfVisitor(err_rec))
    return out


def ident_from_ref(ref: str, context_pkg: Package) -> TypeIdent:
    """Convert a schema reference made in context_pkg back into a TypeIdent."""
    typ, pkg_name = ref_parts(ref)
    if not pkg_name:
        return TypeIdent(context_pkg, typ)
    pkg = context_pkg.imports.get(pkg_name)
    if pkg is None:
        raise LookupError(f"unknown package {json.dumps(pkg_name)}")
    return TypeIdent(pkg, typ)


def _preserve_fields(dst: JSONSchemaProps, src: JSONSchemaProps) -> None:
    """Wrap dst so that src's field-level docs and validation survive flattening."""
    src = copy.copy(src)
    src_desc, src_title = src.description, src.title
    src_ex_doc, src_ex = src.external_docs, src.example
    src.description, src.title, src.external_docs, src.example = "", "", None, None
    src.ref = None

    inner = copy.copy(dst)
    wrapped = JSONSchemaProps(
        all_of=[inner, src],
        description=dst.description,
        title=dst.title,
        external_docs=dst.external_docs,
        example=dst.example,
    )
    if src_desc:
        wrapped.description = src_desc
    if src_title:
        wrapped.title = src_title
    if src_ex_doc is not None:
        wrapped.external_docs = src_ex_doc
    if src_ex is not None:
        wrapped.example = src_ex
    _assign(dst, wrapped)


class Flattener:
    """Resolves all references in a type's schema, caching flattened types."""

    def __init__(self, parser: Any,
                 lookup_reference: Callable[[str, Package], TypeIdent] | None = None) -> None:
        self.parser = parser
        self.lookup_reference = lookup_reference or ident_from_ref
        self._flattened: dict[TypeIdent, JSONSchemaProps] = {}

    def _cache(self, typ: TypeIdent, schema: JSONSchemaProps) -> None:
        self._flattened[typ] = schema.deep_copy()

    def _cached(self, typ: TypeIdent) -> JSONSchemaProps | None:
        cached = self._flattened.get(typ)
        return None if cached is None else cached.deep_copy()

    def _load_unflattened(self, typ: TypeIdent) -> JSONSchemaProps:
        self.parser.need_schema_for(typ)
        schema = self.parser.schemata.get(typ)
        if schema is None:
            raise LookupError(f"unable to locate schema for type {typ}")
        return schema

    def flatten_type(self, typ: TypeIdent) -> JSONSchemaProps | None:
        """Flatten a pre-loaded type; on failure record the error and return None."""
        cached = self._cached(typ)
        if cached is not None:
            return cached
        try:
            base = self._load_unflattened(typ)
        except LookupError as err:
            typ.package.add_error(err)
            return None
        result = self.flatten_schema(base, typ.package)
        self._cache(typ, result)
        return result

    def flatten_schema(self, base_schema: JSONSchemaProps,
                       current_package: Package) -> JSONSchemaProps:
        """Return a copy of base_schema with all references resolved."""
        result = base_schema.deep_copy()
        edit_schema(result, _FlattenVisitor(self, current_package))
        return result


class _FlattenVisitor(SchemaVisitor):
    def __init__(self, flattener: Flattener, current_package: Package,
                 current_type: TypeIdent | None = None,
                 current_schema: JSONSchemaProps | None = None,
                 original_field: JSONSchemaProps | None = None) -> None:
        self.flattener = flattener
        self.current_package = current_package
        self.current_type = current_type
        self.current_schema = current_schema
        self.original_field = original_field

    def visit(self, schema: JSONSchemaProps | None) -> SchemaVisitor | None:
        fl = self.flattener
        if schema is None:
            if self.current_type is not None and self.current_schema is not None:
                fl._cache(self.current_type, self.current_schema)
                # after caching, so field-level info stays out of the type's cache
                _preserve_fields(self.current_schema, self.original_field or JSONSchemaProps())
            return self

        if schema.ref:
            try:
                ref_ident = fl.lookup_reference(schema.ref, self.current_package)
            except (ValueError, LookupError) as err:
                self.current_package.add_error(err)
                return None

            cached = fl._cached(ref_ident)
            if cached is not None:
                _preserve_fields(cached, schema)
                _assign(schema, cached)
                return None

            try:
                ref_schema = fl._load_unflattened(ref_ident).deep_copy()
            except LookupError as err:
                self.current_package.add_error(err)
                return None

            original = copy.copy(schema)
            _assign(schema, ref_schema)
            # guard against reference loops while recursing
            fl._cache(ref_ident, JSONSchemaProps())
            return _FlattenVisitor(fl, ref_ident.package, ref_ident, schema, original)

        if self.current_type is not None:
            return _FlattenVisitor(fl, self.current_package)
        return self
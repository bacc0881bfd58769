"""Walking and editing schema trees, and description truncation."""

from __future__ import annotations

from dataclasses import dataclass

from crdgen.apiext import JSONSchemaProps

# Characters with the Unicode Sentence_Terminal property.
_SENTENCE_TERMINALS = frozenset(
    "!.?\u0589\u061e\u061f\u06d4\u0700\u0701\u0702\u07f9\u0837\u0839\u083d\u083e"
    "\u0964\u0965\u104a\u104b\u1362\u1367\u1368\u166e\u1735\u1736\u1803\u1809"
    "\u1944\u1945\u1aa8\u1aa9\u1aaa\u1aab\u1b5a\u1b5b\u1b5e\u1b5f\u1c3b\u1c3c"
    "\u1c7e\u1c7f\u203c\u203d\u2047\u2048\u2049\u2e2e\u2e3c\u3002\ua4ff\ua60e"
    "\ua60f\ua6f3\ua6f7\ua876\ua877\ua8ce\ua8cf\ua92f\ua9c8\ua9c9\uaa5d\uaa5e"
    "\uaa5f\uaaf0\uaaf1\uabeb\ufe52\ufe56\ufe57\uff01\uff0e\uff1f\uff61"
)


class SchemaVisitor:
    """Visits schema nodes.

    ``visit`` is called for each node.  If it returns a visitor, that visitor
    is called on each direct child, and then once more with ``None`` once all
    children are done.  Returning ``None`` skips the children.
    """

    def visit(self, schema: JSONSchemaProps | None) -> SchemaVisitor | None:
        return self


def edit_schema(schema: JSONSchemaProps, visitor: SchemaVisitor) -> None:
    """Walk the schema in place with the given visitor."""
    _walk(schema, visitor)


def _walk(schema: JSONSchemaProps, visitor: SchemaVisitor) -> None:
    sub = visitor.visit(schema)
    if sub is None:
        return

    def walk_ptr(node: JSONSchemaProps | None) -> None:
        if node is not None:
            _walk(node, sub)

    def walk_all(nodes) -> None:
        for node in list(nodes or ()):
            _walk(node, sub)

    if schema.items is not None:
        walk_ptr(schema.items.schema)
        walk_all(schema.items.json_schemas)
    walk_all(schema.all_of)
    walk_all(schema.one_of)
    walk_all(schema.any_of)
    walk_ptr(schema.not_)
    walk_all((schema.properties or {}).values())
    if schema.additional_properties is not None:
        walk_ptr(schema.additional_properties.schema)
    walk_all((schema.pattern_properties or {}).values())
    for dep in list((schema.dependencies or {}).values()):
        walk_ptr(dep.schema)
    if schema.additional_items is not None:
        walk_ptr(schema.additional_items.schema)
    walk_all((schema.definitions or {}).values())

    sub.visit(None)


@dataclass
class _DescVisitor(SchemaVisitor):
    max_len: int

    def visit(self, schema: JSONSchemaProps | None) -> SchemaVisitor | None:
        if schema is None:
            return self
        if self.max_len < 0:
            return None
        if self.max_len == 0:
            schema.description = ""
        elif len(schema.description) > self.max_len:
            schema.description = truncate_string(schema.description, self.max_len)
        return self


def truncate_description(schema: JSONSchemaProps, max_len: int) -> None:
    """Truncate every description in the schema that is longer than max_len."""
    edit_schema(schema, _DescVisitor(max_len))


def truncate_string(desc: str, max_len: int) -> str:
    """Cut desc to max_len, backing off to the last sentence boundary if any."""
    desc = desc[:max_len]
    cut = max(
        (i for i, ch in enumerate(desc) if ch in _SENTENCE_TERMINALS),
        default=-1,
    )
    if cut > 0:
        return desc[: cut + 1]
    return desc
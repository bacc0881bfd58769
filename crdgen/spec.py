"""Post-processing of generated CustomResourceDefinitions."""

from __future__ import annotations

from typing import Any, Callable

from crdgen.apiext import CustomResourceDefinition


def _merge_identical(
    crd: CustomResourceDefinition,
    attr: str,
    top_attr: str,
    present: Callable[[Any], bool],
) -> None:
    """Hoist a per-version attribute to the spec when every version agrees on it."""
    versions = crd.spec.versions or []
    first = getattr(versions[0], attr)
    for ver in versions:
        value = getattr(ver, attr)
        if not present(value) or value != first:
            return
    setattr(crd.spec, top_attr, first)
    for ver in versions:
        setattr(ver, attr, None)


def merge_identical_version_info(crd: CustomResourceDefinition) -> None:
    """Move subresources, schemata and printer columns that are identical
    across all versions up into the top-level spec fields.

    The API server requires this for definitions that carry versions, so
    that conversion between API versions round-trips unambiguously.
    """
    if not crd.spec.versions:
        return
    _merge_identical(crd, "subresources", "subresources", lambda v: v is not None)
    _merge_identical(crd, "schema", "validation", lambda v: v is not None)
    _merge_identical(
        crd, "additional_printer_columns", "additional_printer_columns", bool
    )


def to_trivial_versions(crd: CustomResourceDefinition) -> None:
    """Keep only the storage version's schema, subresources and columns,
    moved up to the spec; every per-version copy is dropped.

    This makes the definition usable by API servers that predate
    per-version schemata.
    """
    canonical_schema = None
    canonical_subresources = None
    canonical_columns = None
    for ver in crd.spec.versions or []:
        if ver.storage:
            canonical_schema = ver.schema
            canonical_subresources = ver.subresources
            canonical_columns = ver.additional_printer_columns
        ver.schema = None
        ver.subresources = None
        ver.additional_printer_columns = None
    if canonical_schema is None:
        return
    crd.spec.validation = canonical_schema
    crd.spec.subresources = canonical_subresources
    crd.spec.additional_printer_columns = canonical_columns
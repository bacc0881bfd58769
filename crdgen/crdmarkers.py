"""Markers that modify a CustomResourceDefinition itself, not its schema."""

from __future__ import annotations

import json
from dataclasses import dataclass

from crdgen.apiext import (
    CustomResourceColumnDefinition,
    CustomResourceDefinitionSpec,
    CustomResourceDefinitionVersion,
    CustomResourceSubresources,
    CustomResourceSubresourceScale,
    CustomResourceSubresourceStatus,
)

NAMESPACE_SCOPED = "Namespaced"


class MarkerError(ValueError):
    """A marker could not be applied to the definition."""


def _find_version(
    crd: CustomResourceDefinitionSpec, version: str
) -> CustomResourceDefinitionVersion | None:
    return next((ver for ver in crd.versions or [] if ver.name == version), None)


def _subresources_for(
    crd: CustomResourceDefinitionSpec, version: str
) -> CustomResourceSubresources | None:
    if not version:
        if crd.subresources is None:
            crd.subresources = CustomResourceSubresources()
        return crd.subresources
    ver = _find_version(crd, version)
    if ver is None:
        return None
    if ver.subresources is None:
        ver.subresources = CustomResourceSubresources()
    return ver.subresources


@dataclass
class SubresourceStatus:
    """Enables the "/status" subresource."""

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        subresources = _subresources_for(crd, version)
        if subresources is None:
            raise MarkerError(
                f"status subresource applied to version {json.dumps(version)} not in CRD"
            )
        subresources.status = CustomResourceSubresourceStatus()


@dataclass
class SubresourceScale:
    """Enables the "/scale" subresource."""

    spec_path: str
    status_path: str
    selector_path: str | None = None

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        subresources = _subresources_for(crd, version)
        if subresources is None:
            raise MarkerError(
                f"scale subresource applied to version {json.dumps(version)} not in CRD"
            )
        subresources.scale = CustomResourceSubresourceScale(
            spec_replicas_path=self.spec_path,
            status_replicas_path=self.status_path,
            label_selector_path=self.selector_path,
        )


@dataclass
class StorageVersion:
    """Marks this version as the one stored by the API server."""

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        if not version:
            return
        ver = _find_version(crd, version)
        if ver is not None:
            ver.storage = True


@dataclass
class SkipVersion:
    """Removes this version from the definition."""

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        if not version:
            raise MarkerError("cannot skip a version if there is only a single version")
        kept = [ver for ver in crd.versions or [] if ver.name != version]
        crd.versions = kept or None


@dataclass
class PrintColumn:
    """Adds a column to the tabular listing output for this resource."""

    name: str
    type: str
    json_path: str
    description: str = ""
    format: str = ""
    priority: int = 0

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        column = CustomResourceColumnDefinition(
            name=self.name,
            type=self.type,
            json_path=self.json_path,
            description=self.description,
            format=self.format,
            priority=self.priority,
        )
        if not version:
            crd.additional_printer_columns = [
                *(crd.additional_printer_columns or []), column
            ]
            return
        ver = _find_version(crd, version)
        if ver is None:
            raise MarkerError(
                f"printer columns applied to version {json.dumps(version)} not in CRD"
            )
        if ver.subresources is None:
            ver.subresources = CustomResourceSubresources()
        ver.additional_printer_columns = [*(ver.additional_printer_columns or []), column]


@dataclass
class Resource:
    """Configures naming and scope for the definition."""

    path: str = ""
    short_name: list[str] | None = None
    categories: list[str] | None = None
    singular: str = ""
    scope: str = ""

    def apply_to_crd(self, crd: CustomResourceDefinitionSpec, version: str) -> None:
        if self.path:
            crd.names.plural = self.path
        crd.names.short_names = self.short_name
        crd.names.categories = self.categories
        crd.scope = self.scope or NAMESPACE_SCOPED
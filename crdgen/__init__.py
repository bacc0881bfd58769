"""Build CustomResourceDefinitions and flattened OpenAPI v3 schemata from annotated type information."""

__version__ = "0.1.0"

__all__ = ["apiext", "ident", "visitor", "flatten", "spec", "crdmarkers", "validation", "parser"]
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "crdgen"
version = "0.1.0"
description = "Build CustomResourceDefinition objects and flattened OpenAPI v3 validation schemata from annotated type information."
requires-python = ">=3.10"
dependencies = []
keywords = ["kubernetes", "crd", "openapi", "json-schema", "code-generation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["crdgen"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

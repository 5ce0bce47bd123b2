[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rukpak"
version = "0.1.0"
description = "Bundle and BundleDeployment models, admission checks, registry+v1 conversion, CRD upgrade safety checks and bundle packing"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
    "jsonschema",
]
keywords = [
    "kubernetes",
    "operators",
    "bundles",
    "crd",
    "admission",
    "manifests",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
rukpak-unpack = "rukpak.unpack:main"

[tool.hatch.build.targets.wheel]
packages = ["rukpak"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true

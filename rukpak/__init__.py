"""Bundle models, admission checks, registry+v1 conversion, CRD upgrade checks and bundle packing."""

__version__ = "0.1.0"

__all__ = [
    "api",
    "configmap",
    "convert",
    "crd",
    "crdvalidator",
    "finalizer",
    "predicate",
    "registry",
    "unpack",
    "webhook",
]
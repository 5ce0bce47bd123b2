"""Conversion of registry+v1 operator bundles into plain manifest bundles."""

from __future__ import annotations

import copy
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

import yaml

from rukpak.registry import parse_annotations

INSTALL_MODE_OWN_NAMESPACE = "OwnNamespace"
INSTALL_MODE_SINGLE_NAMESPACE = "SingleNamespace"
INSTALL_MODE_MULTI_NAMESPACE = "MultiNamespace"
INSTALL_MODE_ALL_NAMESPACES = "AllNamespaces"

SUGGESTED_NAMESPACE_ANNOTATION = "operatorframework.io/suggested-namespace"
TARGET_NAMESPACES_ANNOTATION = "olm.targetNamespaces"

MANIFESTS_DIR = "manifests"
PLAIN_MANIFEST_PATH = "manifests/manifest.yaml"

MAX_NAME_LENGTH = 63

_RBAC_GROUP = "rbac.authorization.k8s.io"
_RBAC_API_VERSION = f"{_RBAC_GROUP}/v1"
_SAFE_ALPHANUMS = "bcdfghjklmnpqrstvwxz2456789"
_FNV32_OFFSET = 0x811C9DC5
_FNV32_PRIME = 0x01000193


class ConversionError(ValueError):
    """A registry+v1 bundle cannot be converted to a plain bundle."""


@dataclass
class RegistryV1:
    """The parsed contents of a registry+v1 bundle."""

    package_name: str = ""
    csv: dict[str, Any] = field(default_factory=dict)
    crds: list[dict[str, Any]] = field(default_factory=list)
    others: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class Plain:
    """The objects of a plain bundle, in apply order."""

    objects: list[dict[str, Any]] = field(default_factory=list)


def _mapping(value: Any, what: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConversionError(f"{what} must be an object, got {type(value).__name__}")
    return value


def _list(value: Any, what: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConversionError(f"{what} must be a list, got {type(value).__name__}")
    return value


def _go_list(items: Iterable[str]) -> str:
    return "[" + " ".join(items) + "]"


def validate_target_namespaces(
    supported_install_modes: Iterable[str],
    install_namespace: str,
    target_namespaces: list[str],
) -> None:
    """Check that the supported install modes allow the given target namespaces."""
    modes = set(supported_install_modes)
    targets = set(target_namespaces)
    if len(targets) == 0:
        if INSTALL_MODE_ALL_NAMESPACES in modes:
            return
    elif len(targets) == 1:
        if "" in targets and INSTALL_MODE_ALL_NAMESPACES in modes:
            return
        if INSTALL_MODE_SINGLE_NAMESPACE in modes:
            return
        if INSTALL_MODE_OWN_NAMESPACE in modes and target_namespaces[0] == install_namespace:
            return
    elif INSTALL_MODE_MULTI_NAMESPACE in modes:
        return
    raise ConversionError(
        f"supported install modes {_go_list(sorted(modes))} "
        f"do not support target namespaces {_go_list(target_namespaces)}"
    )


def _fnv32a(data: bytes) -> int:
    value = _FNV32_OFFSET
    for byte in data:
        value ^= byte
        value = (value * _FNV32_PRIME) & 0xFFFFFFFF
    return value


def _safe_encode(text: str) -> str:
    return "".join(_SAFE_ALPHANUMS[byte % len(_SAFE_ALPHANUMS)] for byte in text.encode("utf-8"))


def generate_name(base: str, obj: Any) -> str:
    """Append a stable hash of ``obj`` to ``base``, keeping within the name length limit."""
    encoded = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    hash_str = _safe_encode(str(_fnv32a(encoded.encode("utf-8"))))
    if len(base) + len(hash_str) > MAX_NAME_LENGTH:
        base = base[: MAX_NAME_LENGTH - len(hash_str) - 1]
    return f"{base}-{hash_str}"


def _sa_name_or_default(name: Any) -> str:
    return name if isinstance(name, str) and name else "default"


def _service_account(namespace: str, name: str) -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "ServiceAccount",
        "metadata": {"namespace": namespace, "name": name},
    }


def _role(namespace: str, name: str, rules: list[Any]) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC_API_VERSION,
        "kind": "Role",
        "metadata": {"namespace": namespace, "name": name},
        "rules": copy.deepcopy(rules),
    }


def _cluster_role(name: str, rules: list[Any]) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC_API_VERSION,
        "kind": "ClusterRole",
        "metadata": {"name": name},
        "rules": copy.deepcopy(rules),
    }


def _subjects(sa_namespace: str, sa_names: Iterable[str]) -> list[dict[str, Any]]:
    return [
        {"kind": "ServiceAccount", "namespace": sa_namespace, "name": sa_name}
        for sa_name in sa_names
    ]


def _role_binding(
    namespace: str, name: str, role_name: str, sa_namespace: str, *sa_names: str
) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC_API_VERSION,
        "kind": "RoleBinding",
        "metadata": {"namespace": namespace, "name": name},
        "subjects": _subjects(sa_namespace, sa_names),
        "roleRef": {"apiGroup": _RBAC_GROUP, "kind": "Role", "name": role_name},
    }


def _cluster_role_binding(
    name: str, role_name: str, sa_namespace: str, *sa_names: str
) -> dict[str, Any]:
    return {
        "apiVersion": _RBAC_API_VERSION,
        "kind": "ClusterRoleBinding",
        "metadata": {"name": name},
        "subjects": _subjects(sa_namespace, sa_names),
        "roleRef": {"apiGroup": _RBAC_GROUP, "kind": "ClusterRole", "name": role_name},
    }


def convert(
    registry: RegistryV1,
    install_namespace: str = "",
    target_namespaces: list[str] | None = None,
) -> Plain:
    """Turn a registry+v1 bundle into the plain objects that install it."""
    csv = _mapping(registry.csv, "csv")
    csv_meta = _mapping(csv.get("metadata"), "csv.metadata")
    csv_name = csv_meta.get("name") or ""
    csv_annotations = dict(_mapping(csv_meta.get("annotations"), "csv.metadata.annotations"))
    spec = _mapping(csv.get("spec"), "csv.spec")

    if not install_namespace:
        install_namespace = csv_annotations.get(SUGGESTED_NAMESPACE_ANNOTATION, "")
    if not install_namespace:
        install_namespace = f"{registry.package_name}-system"

    supported = {
        mode.get("type")
        for mode in (_mapping(m, "installMode") for m in _list(spec.get("installModes"), "installModes"))
        if mode.get("supported")
    }
    if INSTALL_MODE_ALL_NAMESPACES not in supported:
        raise ConversionError("AllNamespace install mode must be enabled")
    if target_namespaces is None:
        target_namespaces = [""]
    target_namespaces = list(target_namespaces)

    validate_target_namespaces(supported, install_namespace, target_namespaces)

    api_services = _mapping(spec.get("apiservicedefinitions"), "apiservicedefinitions")
    if _list(api_services.get("owned"), "apiservicedefinitions.owned"):
        raise ConversionError("apiServiceDefintions are not supported")
    if _list(spec.get("webhookdefinitions"), "webhookdefinitions"):
        raise ConversionError("webhookDefinitions are not supported")

    strategy = _mapping(_mapping(spec.get("install"), "install").get("spec"), "install.spec")

    deployments: list[dict[str, Any]] = []
    service_accounts: dict[str, dict[str, Any]] = {}
    for dep in (_mapping(d, "deployment") for d in _list(strategy.get("deployments"), "deployments")):
        dep_spec = _mapping(dep.get("spec"), "deployment.spec")
        template = _mapping(dep_spec.get("template"), "deployment.spec.template")
        template_meta = _mapping(template.get("metadata"), "template.metadata")
        annotations = {**csv_annotations, **_mapping(template_meta.get("annotations"), "annotations")}
        annotations[TARGET_NAMESPACES_ANNOTATION] = ",".join(target_namespaces)
        metadata: dict[str, Any] = {"namespace": install_namespace, "name": dep.get("name") or ""}
        labels = _mapping(dep.get("label"), "deployment.label")
        if labels:
            metadata["labels"] = dict(labels)
        metadata["annotations"] = annotations
        deployments.append(
            {
                "apiVersion": "apps/v1",
                "kind": "Deployment",
                "metadata": metadata,
                "spec": copy.deepcopy(dict(dep_spec)),
            }
        )
        pod_spec = _mapping(template.get("spec"), "template.spec")
        sa_name = _sa_name_or_default(pod_spec.get("serviceAccountName"))
        service_accounts[sa_name] = _service_account(install_namespace, sa_name)

    permissions = [_mapping(p, "permission") for p in _list(strategy.get("permissions"), "permissions")]
    cluster_permissions = [
        _mapping(p, "clusterPermission")
        for p in _list(strategy.get("clusterPermissions"), "clusterPermissions")
    ]

    for permission in permissions + cluster_permissions:
        sa_name = _sa_name_or_default(permission.get("serviceAccountName"))
        service_accounts.setdefault(sa_name, _service_account(install_namespace, sa_name))

    # In AllNamespaces mode namespaced permissions are promoted to cluster-wide ones.
    if target_namespaces == [""]:
        cluster_permissions = cluster_permissions + permissions
        permissions = []

    roles: list[dict[str, Any]] = []
    role_bindings: list[dict[str, Any]] = []
    for permission in permissions:
        sa_name = _sa_name_or_default(permission.get("serviceAccountName"))
        name = generate_name(f"{csv_name}-{sa_name}", [csv_name, permission])
        rules = _list(permission.get("rules"), "rules")
        roles.append(_role(install_namespace, name, rules))
        role_bindings.append(_role_binding(install_namespace, name, name, install_namespace, sa_name))

    cluster_roles: list[dict[str, Any]] = []
    cluster_role_bindings: list[dict[str, Any]] = []
    for permission in cluster_permissions:
        sa_name = _sa_name_or_default(permission.get("serviceAccountName"))
        name = generate_name(f"{csv_name}-{sa_name}", [csv_name, permission])
        rules = _list(permission.get("rules"), "rules")
        cluster_roles.append(_cluster_role(name, rules))
        cluster_role_bindings.append(_cluster_role_binding(name, name, install_namespace, sa_name))

    objects: list[dict[str, Any]] = [
        {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": install_namespace}}
    ]
    objects.extend(sa for name, sa in service_accounts.items() if name != "default")
    objects.extend(roles)
    objects.extend(role_bindings)
    objects.extend(cluster_roles)
    objects.extend(cluster_role_bindings)
    objects.extend(copy.deepcopy(crd) for crd in registry.crds)
    objects.extend(copy.deepcopy(other) for other in registry.others)
    objects.extend(deployments)
    return Plain(objects=objects)


def simple(registry: RegistryV1) -> Plain:
    """Convert with the default install namespace and target namespaces."""
    return convert(registry, "", None)


def load_registry_v1(root: str | os.PathLike[str]) -> RegistryV1:
    """Read a registry+v1 bundle laid out under ``root``."""
    base = Path(root)
    annotations = parse_annotations((base / "metadata" / "annotations.yaml").read_bytes())
    registry = RegistryV1(package_name=annotations.annotations.package_name)

    manifests = base / MANIFESTS_DIR
    objects: list[dict[str, Any]] = []
    for entry in sorted(manifests.iterdir(), key=lambda p: p.name):
        if entry.is_dir():
            raise ConversionError(
                f'subdirectories are not allowed within the "{MANIFESTS_DIR}" directory '
                f'of the bundle image filesystem: found "{MANIFESTS_DIR}/{entry.name}"'
            )
        try:
            documents = list(yaml.safe_load_all(entry.read_bytes()))
        except yaml.YAMLError as exc:
            raise ConversionError(f'read "{entry.name}": {exc}') from exc
        for document in documents:
            if document is None:
                continue
            if not isinstance(document, dict):
                raise ConversionError(f'read "{entry.name}": object must be a mapping')
            if not document.get("kind"):
                raise ConversionError(f"read \"{entry.name}\": Object 'Kind' is missing")
            objects.append(document)

    for obj in objects:
        kind = obj["kind"]
        if kind == "ClusterServiceVersion":
            registry.csv = obj
        elif kind == "CustomResourceDefinition":
            registry.crds.append(obj)
        else:
            registry.others.append(obj)
    return registry


def registry_v1_to_plain(root: str | os.PathLike[str]) -> dict[str, bytes]:
    """Convert the registry+v1 bundle at ``root`` to plain bundle files keyed by path."""
    plain = simple(load_registry_v1(root))
    manifest = "".join(
        f"---\n{yaml.safe_dump(obj, default_flow_style=False)}\n" for obj in plain.objects
    )
    return {PLAIN_MANIFEST_PATH: manifest.encode("utf-8")}
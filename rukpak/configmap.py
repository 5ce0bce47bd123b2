"""Create a ConfigMap holding the files of a local directory."""

from __future__ import annotations

import os
import stat
from typing import Any, Mapping, Protocol


class ConfigMapClient(Protocol):
    """Client that can create ConfigMaps in a namespace."""

    def create_config_map(self, namespace: str, config_map: Mapping[str, Any]) -> Mapping[str, Any]: ...


def _read_text(path: str) -> str:
    with open(path, "rb") as handle:
        return handle.read().decode("utf-8")


def _collect(path: str, data: dict[str, str]) -> None:
    if stat.S_ISDIR(os.lstat(path).st_mode):
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda entry: entry.name)
        for entry in entries:
            _collect(entry.path, data)
    else:
        data[os.path.basename(path)] = _read_text(path)


def collect_directory_data(directory: str | os.PathLike[str]) -> dict[str, str]:
    """Map each file's base name to its text, walking the tree in lexical order.

    Files of the same name in different directories overwrite one another;
    the one found last wins.
    """
    data: dict[str, str] = {}
    _collect(os.fspath(directory), data)
    return data


def create_configmap(
    client: ConfigMapClient,
    name: str,
    directory: str | os.PathLike[str],
    namespace: str,
) -> str:
    """Create a ConfigMap with the directory's files and return its generated name."""
    config_map = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"generateName": name, "namespace": namespace},
        "data": collect_directory_data(directory),
    }
    created = client.create_config_map(namespace, config_map)
    metadata = created.get("metadata") or {}
    return str(metadata.get("name", ""))
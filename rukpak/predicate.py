"""Event filters for resources that a release manages."""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

_log = logging.getLogger("rukpak.predicate")

Object = Mapping[str, Any]


@dataclass(frozen=True)
class PredicateFuncs:
    """Decides, per kind of event, whether an object should be reconciled."""

    create: Callable[[Object], bool]
    delete: Callable[[Object], bool]
    generic: Callable[[Object], bool]
    update: Callable[[Object, Object], bool]


def _describe(obj: Object) -> dict[str, Any]:
    metadata = obj.get("metadata")
    if not isinstance(metadata, Mapping):
        metadata = {}
    return {
        "name": metadata.get("name", ""),
        "namespace": metadata.get("namespace", ""),
        "apiVersion": obj.get("apiVersion", ""),
        "kind": obj.get("kind", ""),
    }


def _without_volatile_fields(obj: Object) -> dict[str, Any]:
    stripped = copy.deepcopy(dict(obj))
    stripped.pop("status", None)
    metadata = stripped.get("metadata")
    if isinstance(metadata, dict):
        metadata.pop("resourceVersion", None)
    return stripped


def _on_create(obj: Object) -> bool:
    # Dependents are only created during reconciliation, so another pass is redundant.
    _log.debug("Skipping reconciliation for dependent resource creation %s", _describe(obj))
    return False


def _on_delete(obj: Object) -> bool:
    _log.debug("Reconciling due to dependent resource deletion %s", _describe(obj))
    return True


def _on_generic(obj: Object) -> bool:
    _log.debug("Skipping reconcile due to generic event %s", _describe(obj))
    return False


def _on_update(old: Object, new: Object) -> bool:
    if _without_volatile_fields(old) == _without_volatile_fields(new):
        return False
    _log.debug("Reconciling due to dependent resource update %s", _describe(new))
    return True


def dependent_predicate_funcs() -> PredicateFuncs:
    """Filters for dependent resources: reconcile on delete and on real updates only."""
    return PredicateFuncs(
        create=_on_create,
        delete=_on_delete,
        generic=_on_generic,
        update=_on_update,
    )
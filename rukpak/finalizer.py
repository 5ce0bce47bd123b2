"""Finalizer that removes a bundle's cached content when the bundle goes away."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

DELETE_CACHED_BUNDLE_KEY = "core.rukpak.io/delete-cached-bundle"


class BundleStorage(Protocol):
    """Storage that can drop the cached content of an object."""

    def delete(self, obj: Any) -> None: ...


@dataclass(frozen=True)
class FinalizeResult:
    """What a finalizer changed on the object it processed."""

    updated: bool = False
    status_updated: bool = False


@dataclass
class DeleteCachedBundle:
    """Deletes the stored content of a bundle when it is finalized."""

    storage: BundleStorage

    def finalize(self, obj: Any) -> FinalizeResult:
        """Delete the object's cached content; storage errors propagate."""
        self.storage.delete(obj)
        return FinalizeResult()
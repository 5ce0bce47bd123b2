"""Admission checks for Bundle create, update and delete requests."""

from __future__ import annotations

import logging
import posixpath

from rukpak.api import Bundle, SourceType

_log = logging.getLogger("rukpak.bundle-resource")

VALIDATE_PATH = "/validate-core-rukpak-io-v1alpha1-bundle"


class BundleValidationError(ValueError):
    """A Bundle was rejected by admission validation."""


def check_bundle_source(bundle: Bundle) -> None:
    """Check that the bundle's source carries the settings its type needs."""
    source = bundle.spec.source
    if source.type == SourceType.IMAGE:
        if source.image is None:
            raise BundleValidationError(
                'bundle.spec.source.image must be set for source type "image"'
            )
    elif source.type == SourceType.GIT:
        if source.git is None:
            raise BundleValidationError(
                'bundle.spec.source.git must be set for source type "git"'
            )
        if posixpath.normpath(source.git.directory).startswith("../"):
            raise BundleValidationError(
                'bundle.spec.source.git.directory begins with "../": '
                "directory must define path within the repository"
            )


def check_immutable_spec(old_bundle: Bundle, new_bundle: Bundle) -> None:
    """Reject any change to a bundle's spec."""
    if old_bundle.spec != new_bundle.spec:
        raise BundleValidationError("bundle.spec is immutable")


def validate_create(bundle: Bundle) -> None:
    """Validate a bundle that is being created."""
    _log.debug("validate create name=%s", bundle.metadata.name)
    check_bundle_source(bundle)


def validate_update(old_bundle: Bundle, new_bundle: Bundle) -> None:
    """Validate a bundle that is being updated."""
    _log.debug("validate update name=%s", new_bundle.metadata.name)
    check_immutable_spec(old_bundle, new_bundle)
    check_bundle_source(new_bundle)


def validate_delete(bundle: Bundle) -> None:
    """Validate a bundle that is being deleted; deletion is always allowed."""
    _log.debug("validate delete name=%s", bundle.metadata.name)
    return None
"""Safety checks for upgrading a CustomResourceDefinition already on a cluster."""

from __future__ import annotations

import json
from typing import Any, Iterable, Mapping, Protocol

import jsonschema

NONE_CONVERTER = "None"


class CRDValidationError(ValueError):
    """A CRD upgrade would break existing objects or lose stored data."""


class CRDClient(Protocol):
    """The cluster access that CRD validation needs."""

    def get_crd(self, name: str) -> Mapping[str, Any] | None:
        """Return the named CRD, or None when it does not exist."""
        ...

    def list_objects(self, group: str, version: str, list_kind: str) -> list[Mapping[str, Any]]:
        """Return every custom object of the given list kind at the given version."""
        ...


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _go_list(items: Iterable[str]) -> str:
    return "[" + " ".join(items) + "]"


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def _spec(crd: Mapping[str, Any]) -> Mapping[str, Any]:
    return _mapping(crd.get("spec"))


def _name(obj: Mapping[str, Any]) -> str:
    return str(_mapping(obj.get("metadata")).get("name") or "")


def _versions(crd: Mapping[str, Any]) -> dict[str, Mapping[str, Any]]:
    return {
        str(version.get("name") or ""): version
        for version in (_mapping(v) for v in _spec(crd).get("versions") or [])
    }


def _stored_versions(crd: Mapping[str, Any]) -> set[str]:
    return set(_mapping(crd.get("status")).get("storedVersions") or [])


def _format_path(path: Iterable[Any]) -> str:
    return ".".join(str(part) for part in path)


def validate(client: CRDClient, new_crd: Mapping[str, Any]) -> None:
    """Check that replacing the cluster's copy of ``new_crd`` is safe.

    A CRD that does not exist yet is always valid.
    """
    name = _name(new_crd)
    old_crd = client.get_crd(name)
    if old_crd is None:
        return

    try:
        validate_crd_compatibility(client, old_crd, new_crd)
    except CRDValidationError as exc:
        raise CRDValidationError(
            f"error validating existing CRs against new CRD's schema for {_quote(name)}: {exc}"
        ) from exc

    try:
        safe_storage_version_upgrade(old_crd, new_crd)
    except CRDValidationError as exc:
        raise CRDValidationError(f"risk of data loss updating {_quote(name)}: {exc}") from exc


def validate_crd_compatibility(
    client: CRDClient, old_crd: Mapping[str, Any], new_crd: Mapping[str, Any]
) -> None:
    """Check removed, changed and added versions against the objects on the cluster.

    Stored versions may not be removed; existing objects must validate against
    changed schemas, and against added versions unless a conversion webhook is set.
    """
    old_versions = _versions(old_crd)
    new_versions = _versions(new_crd)
    old_names = set(old_versions)
    new_names = set(new_versions)

    invalid_removed = _stored_versions(old_crd) & (old_names - new_names)
    if invalid_removed:
        raise CRDValidationError(f"cannot remove stored versions {_go_list(sorted(invalid_removed))}")

    old_spec = _spec(old_crd)
    group = str(old_spec.get("group") or "")
    list_kind = str(_mapping(old_spec.get("names")).get("listKind") or "")

    similar = sorted(old_names & new_names)
    changed = [v for v in similar if old_versions[v].get("schema") != new_versions[v].get("schema")]
    for version in changed:
        if old_versions[version].get("served"):
            validate_existing_crs(client, group, version, list_kind, new_versions[version])

    added = sorted(new_names - old_names)
    conversion = _spec(new_crd).get("conversion")
    if added and (conversion is None or _mapping(conversion).get("strategy") == NONE_CONVERTER):
        for added_version in added:
            for existing in similar:
                old_version = old_versions[existing]
                if old_version.get("served"):
                    validate_existing_crs(
                        client,
                        group,
                        str(old_version.get("name") or ""),
                        list_kind,
                        new_versions[added_version],
                    )


def validate_existing_crs(
    client: CRDClient,
    group: str,
    version: str,
    list_kind: str,
    new_version: Mapping[str, Any],
) -> None:
    """Validate every existing object listed at ``version`` against ``new_version``'s schema."""
    new_name = str(new_version.get("name") or "")
    schema = _mapping(new_version.get("schema")).get("openAPIV3Schema")
    gvk = f"{group}/{version}, Kind={list_kind}"

    try:
        items = client.list_objects(group, version, list_kind)
    except Exception as exc:
        raise CRDValidationError(f"error listing objects for {gvk}: {exc}") from exc

    if not items or schema is None:
        return

    try:
        jsonschema.Draft4Validator.check_schema(schema)
    except jsonschema.SchemaError as exc:
        raise CRDValidationError(
            f"error creating validator for the schema of version {_quote(new_name)}: {exc.message}"
        ) from exc
    validator = jsonschema.Draft4Validator(schema)

    for item in items:
        errors = sorted(validator.iter_errors(item), key=lambda e: list(map(str, e.absolute_path)))
        if not errors:
            continue
        messages = [
            f"{_format_path(error.absolute_path)}: {error.message}" if error.absolute_path else error.message
            for error in errors
        ]
        detail = messages[0] if len(messages) == 1 else "[" + ", ".join(messages) + "]"
        metadata = _mapping(item.get("metadata"))
        raise CRDValidationError(
            f"existing custom object {metadata.get('namespace') or ''}/{metadata.get('name') or ''} "
            f"failed validation for new schema version {new_name}: {detail}"
        )


def safe_storage_version_upgrade(existing_crd: Mapping[str, Any], new_crd: Mapping[str, Any]) -> None:
    """Check that every version stored by the existing CRD is still in the new spec."""
    new_spec_versions = set(_versions(new_crd))
    for name in sorted(_stored_versions(existing_crd)):
        if name not in new_spec_versions:
            raise CRDValidationError(
                f"new CRD removes version {name} that is listed as a stored version on the existing CRD"
            )
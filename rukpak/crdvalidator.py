"""Admission handler that blocks unsafe CustomResourceDefinition upgrades."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from http import HTTPStatus
from typing import Any, Mapping

from rukpak.crd import CRDClient, validate

VALIDATION_KEY = "core.rukpak.io/safe-crd-upgrade-validation"
DISABLED = "false"

WEBHOOK_PATH = "/validate-crd"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


@dataclass
class AdmissionRequest:
    """A CRD create or update submitted for admission."""

    name: str = ""
    operation: str = ""
    object: bytes | str | Mapping[str, Any] | None = None


@dataclass
class AdmissionResponse:
    """The verdict on an admission request."""

    allowed: bool
    code: int = HTTPStatus.OK
    message: str = ""

    @classmethod
    def allow(cls, message: str = "") -> AdmissionResponse:
        return cls(allowed=True, code=HTTPStatus.OK, message=message)

    @classmethod
    def deny(cls, message: str) -> AdmissionResponse:
        return cls(allowed=False, code=HTTPStatus.FORBIDDEN, message=message)

    @classmethod
    def errored(cls, code: int, message: str) -> AdmissionResponse:
        return cls(allowed=False, code=code, message=message)


def _decode(raw: bytes | str | Mapping[str, Any] | None) -> Mapping[str, Any]:
    if raw is None or raw == b"" or raw == "":
        raise ValueError("there is no content to decode")
    if isinstance(raw, Mapping):
        return raw
    document = json.loads(raw)
    if not isinstance(document, Mapping):
        raise ValueError("object must be a JSON object")
    return document


def is_disabled(crd: Mapping[str, Any]) -> bool:
    """Whether the CRD's annotations explicitly turn off upgrade validation."""
    metadata = crd.get("metadata")
    annotations = metadata.get("annotations") if isinstance(metadata, Mapping) else None
    if not isinstance(annotations, Mapping):
        return False
    return annotations.get(VALIDATION_KEY) == DISABLED


class CrdValidator:
    """Checks that CRD create and update requests are safe upgrades."""

    def __init__(self, client: CRDClient, log: logging.Logger | None = None) -> None:
        self.client = client
        self.log = (log or logging.getLogger("rukpak.crdvalidator")).getChild("crdhandler")

    def handle(self, request: AdmissionRequest) -> AdmissionResponse:
        """Allow the request unless the incoming CRD would break existing data."""
        try:
            incoming = _decode(request.object)
        except ValueError as exc:
            message = f"failed to decode CRD {_quote(request.name)}"
            self.log.error("%s: %s", message, exc)
            return AdmissionResponse.errored(HTTPStatus.BAD_REQUEST, f"{message}: {exc}")

        if is_disabled(incoming):
            return AdmissionResponse.allow()

        try:
            validate(self.client, incoming)
        except Exception as exc:
            message = (
                f"failed to validate safety of {request.operation} for CRD {_quote(request.name)} "
                f"(NOTE: to disable this validation, set the {_quote(VALIDATION_KEY)} annotation "
                f"to {_quote(DISABLED)}): {exc}"
            )
            self.log.info(message)
            return AdmissionResponse.deny(message)

        self.log.debug("admission allowed for %s of CRD %s", request.operation, _quote(request.name))
        return AdmissionResponse.allow()
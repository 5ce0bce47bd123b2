"""Bundle metadata annotations from metadata/annotations.yaml."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import yaml

PACKAGE_NAME_KEY = "operators.operatorframework.io.bundle.package.v1"
CHANNELS_KEY = "operators.operatorframework.io.bundle.channels.v1"
DEFAULT_CHANNEL_KEY = "operators.operatorframework.io.bundle.channel.default.v1"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


@dataclass
class Annotations:
    """Annotations describing a bundle's package and channels."""

    package_name: str = ""
    channels: str = ""
    default_channel_name: str = ""


@dataclass
class AnnotationsFile:
    """The contents of a bundle's annotations file."""

    annotations: Annotations = field(default_factory=Annotations)

    @classmethod
    def from_dict(cls, data: Any) -> AnnotationsFile:
        """Build from the decoded document of an annotations file."""
        data = _mapping(data, "annotations file")
        annotations = _mapping(data.get("annotations"), "annotations")
        return cls(
            annotations=Annotations(
                package_name=_str(annotations, PACKAGE_NAME_KEY),
                channels=_str(annotations, CHANNELS_KEY),
                default_channel_name=_str(annotations, DEFAULT_CHANNEL_KEY),
            )
        )


def parse_annotations(text: str | bytes) -> AnnotationsFile:
    """Parse the YAML text of an annotations file."""
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid annotations YAML: {exc}") from exc
    return AnnotationsFile.from_dict(document)
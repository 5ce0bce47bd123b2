"""Resource types of the core.rukpak.io/v1alpha1 API group."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Mapping

GROUP = "core.rukpak.io"
VERSION = "v1alpha1"
API_VERSION = f"{GROUP}/{VERSION}"

BUNDLE_KIND = "Bundle"
BUNDLE_DEPLOYMENT_KIND = "BundleDeployment"

PROVISIONER_CLASS_NAME_PATTERN = r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$"

# Bundle condition types, reasons and phases.
TYPE_UNPACKED = "Unpacked"

REASON_UNPACK_PENDING = "UnpackPending"
REASON_UNPACKING = "Unpacking"
REASON_UNPACK_SUCCESSFUL = "UnpackSuccessful"
REASON_UNPACK_FAILED = "UnpackFailed"
REASON_PROCESSING_FINALIZER_FAILED = "ProcessingFinalizerFailed"

PHASE_PENDING = "Pending"
PHASE_UNPACKING = "Unpacking"
PHASE_FAILING = "Failing"
PHASE_UNPACKED = "Unpacked"

# BundleDeployment condition types and reasons.
TYPE_HAS_VALID_BUNDLE = "HasValidBundle"
TYPE_INSTALLED = "Installed"

REASON_BUNDLE_LOAD_FAILED = "BundleLoadFailed"
REASON_READING_CONTENT_FAILED = "ReadingContentFailed"
REASON_ERROR_GETTING_CLIENT = "ErrorGettingClient"
REASON_ERROR_GETTING_RELEASE_STATE = "ErrorGettingReleaseState"
REASON_INSTALL_FAILED = "InstallFailed"
REASON_UPGRADE_FAILED = "UpgradeFailed"
REASON_RECONCILE_FAILED = "ReconcileFailed"
REASON_CREATE_DYNAMIC_WATCH_FAILED = "CreateDynamicWatchFailed"
REASON_INSTALLATION_SUCCEEDED = "InstallationSucceeded"


class SourceType(str, enum.Enum):
    """Kind of location that backs a bundle's content."""

    IMAGE = "image"
    GIT = "git"
    LOCAL = "local"
    UPLOAD = "upload"
    HTTP = "http"

    def __str__(self) -> str:
        return self.value


def _is_empty(value: Any) -> bool:
    return value is None or value is False or value == "" or value == 0 or value == [] or value == {}


def _omit_empty(values: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if not _is_empty(value)}


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ValueError(f"{what} must be an object, got {type(data).__name__}")
    return data


def _optional_mapping(data: Mapping[str, Any], key: str) -> Mapping[str, Any] | None:
    value = data.get(key)
    if value is None:
        return None
    return _mapping(value, key)


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{key} must be an integer, got {type(value).__name__}")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"{key} must be a boolean, got {type(value).__name__}")
    return value


def _str_map(data: Mapping[str, Any], key: str) -> dict[str, str]:
    value = _mapping(data.get(key), key)
    result: dict[str, str] = {}
    for name, item in value.items():
        if not isinstance(item, str):
            raise ValueError(f"{key}.{name} must be a string")
        result[str(name)] = item
    return result


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"{key} must be a list of strings")
    return list(value)


def _source_type(value: str) -> SourceType | str:
    try:
        return SourceType(value)
    except ValueError:
        return value


@dataclass
class ObjectMeta:
    """Standard object metadata."""

    name: str = ""
    generate_name: str = ""
    namespace: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    finalizers: list[str] = field(default_factory=list)
    creation_timestamp: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "name": self.name,
                "generateName": self.generate_name,
                "namespace": self.namespace,
                "uid": self.uid,
                "resourceVersion": self.resource_version,
                "generation": self.generation,
                "creationTimestamp": self.creation_timestamp,
                "labels": dict(self.labels),
                "annotations": dict(self.annotations),
                "finalizers": list(self.finalizers),
            }
        )

    @classmethod
    def _from_dict(cls, data: Any) -> ObjectMeta:
        data = _mapping(data, "metadata")
        return cls(
            name=_str(data, "name"),
            generate_name=_str(data, "generateName"),
            namespace=_str(data, "namespace"),
            labels=_str_map(data, "labels"),
            annotations=_str_map(data, "annotations"),
            uid=_str(data, "uid"),
            resource_version=_str(data, "resourceVersion"),
            generation=_int(data, "generation"),
            finalizers=_str_list(data, "finalizers"),
            creation_timestamp=_str(data, "creationTimestamp"),
        )


@dataclass
class Condition:
    """One aspect of an object's observed state."""

    type: str
    status: str
    reason: str = ""
    message: str = ""
    last_transition_time: str = ""
    observed_generation: int = 0

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type, "status": self.status}
        if self.observed_generation:
            result["observedGeneration"] = self.observed_generation
        result["lastTransitionTime"] = self.last_transition_time
        result["reason"] = self.reason
        result["message"] = self.message
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> Condition:
        data = _mapping(data, "condition")
        return cls(
            type=_str(data, "type"),
            status=_str(data, "status"),
            reason=_str(data, "reason"),
            message=_str(data, "message"),
            last_transition_time=_str(data, "lastTransitionTime"),
            observed_generation=_int(data, "observedGeneration"),
        )


def _conditions_from(data: Mapping[str, Any]) -> list[Condition]:
    value = data.get("conditions")
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError("conditions must be a list")
    return [Condition._from_dict(item) for item in value]


@dataclass
class ConfigMapRef:
    """Reference to a ConfigMap in a namespace."""

    name: str = ""
    namespace: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "namespace": self.namespace}

    @classmethod
    def _from_dict(cls, data: Any) -> ConfigMapRef:
        data = _mapping(data, "configMap")
        return cls(name=_str(data, "name"), namespace=_str(data, "namespace"))


@dataclass
class GitRef:
    """Branch, tag or commit to check out from a repository."""

    branch: str = ""
    tag: str = ""
    commit: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty({"branch": self.branch, "tag": self.tag, "commit": self.commit})

    @classmethod
    def _from_dict(cls, data: Any) -> GitRef:
        data = _mapping(data, "ref")
        return cls(branch=_str(data, "branch"), tag=_str(data, "tag"), commit=_str(data, "commit"))


_REF_NAME_FIELD = "name"


@dataclass
class Authorization:
    """How to authenticate against a content source."""

    secret_name: str = ""
    insecure_skip_verify: bool = False

    def _to_dict(self) -> dict[str, Any]:
        reference: dict[str, Any] = {}
        if self.secret_name:
            reference[_REF_NAME_FIELD] = self.secret_name
        result: dict[str, Any] = {}
        result["secret"] = reference
        if self.insecure_skip_verify:
            result["insecureSkipVerify"] = True
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> Authorization:
        data = _mapping(data, "auth")
        reference = _mapping(data.get("secret"), "secret")
        referenced_name = _str(reference, _REF_NAME_FIELD)
        return cls(
            secret_name=referenced_name,
            insecure_skip_verify=_bool(data, "insecureSkipVerify"),
        )


@dataclass
class ImageSource:
    """Container image holding the bundle contents."""

    ref: str = ""
    pull_secret_name: str = ""

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"ref": self.ref}
        if self.pull_secret_name:
            result["pullSecret"] = self.pull_secret_name
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> ImageSource:
        data = _mapping(data, "image")
        pull_ref = _str(data, "pullSecret")
        return cls(ref=_str(data, "ref"), pull_secret_name=pull_ref)


@dataclass
class GitSource:
    """Git repository holding the bundle contents."""

    repository: str = ""
    directory: str = ""
    ref: GitRef = field(default_factory=GitRef)
    auth: Authorization = field(default_factory=Authorization)

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"repository": self.repository}
        if self.directory:
            result["directory"] = self.directory
        result["ref"] = self.ref._to_dict()
        result["auth"] = self.auth._to_dict()
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> GitSource:
        data = _mapping(data, "git")
        return cls(
            repository=_str(data, "repository"),
            directory=_str(data, "directory"),
            ref=GitRef._from_dict(data.get("ref")),
            auth=Authorization._from_dict(data.get("auth")),
        )


@dataclass
class LocalSource:
    """Reference to an in-cluster object holding the bundle contents."""

    config_map_ref: ConfigMapRef | None = None

    def _to_dict(self) -> dict[str, Any]:
        return {"configMap": self.config_map_ref._to_dict() if self.config_map_ref else None}

    @classmethod
    def _from_dict(cls, data: Any) -> LocalSource:
        data = _mapping(data, "local")
        ref = _optional_mapping(data, "configMap")
        return cls(config_map_ref=ConfigMapRef._from_dict(ref) if ref is not None else None)


@dataclass
class HTTPSource:
    """Remote URL holding the bundle contents."""

    url: str = ""
    auth: Authorization = field(default_factory=Authorization)

    def _to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "auth": self.auth._to_dict()}

    @classmethod
    def _from_dict(cls, data: Any) -> HTTPSource:
        data = _mapping(data, "http")
        return cls(url=_str(data, "url"), auth=Authorization._from_dict(data.get("auth")))


@dataclass
class UploadSource:
    """Content that is uploaded to the bundle upload service."""

    def _to_dict(self) -> dict[str, Any]:
        return {}

    @classmethod
    def _from_dict(cls, data: Any) -> UploadSource:
        _mapping(data, "upload")
        return cls()


@dataclass
class BundleSource:
    """Where a bundle's content comes from."""

    type: SourceType | str = ""
    image: ImageSource | None = None
    git: GitSource | None = None
    local: LocalSource | None = None
    upload: UploadSource | None = None
    http: HTTPSource | None = None

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": str(self.type)}
        for key, value in (
            ("image", self.image),
            ("git", self.git),
            ("local", self.local),
            ("upload", self.upload),
            ("http", self.http),
        ):
            if value is not None:
                result[key] = value._to_dict()
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> BundleSource:
        data = _mapping(data, "source")
        image = _optional_mapping(data, "image")
        git = _optional_mapping(data, "git")
        local = _optional_mapping(data, "local")
        upload = _optional_mapping(data, "upload")
        http = _optional_mapping(data, "http")
        return cls(
            type=_source_type(_str(data, "type")),
            image=ImageSource._from_dict(image) if image is not None else None,
            git=GitSource._from_dict(git) if git is not None else None,
            local=LocalSource._from_dict(local) if local is not None else None,
            upload=UploadSource._from_dict(upload) if upload is not None else None,
            http=HTTPSource._from_dict(http) if http is not None else None,
        )


@dataclass
class BundleSpec:
    """Desired state of a Bundle."""

    provisioner_class_name: str = ""
    source: BundleSource = field(default_factory=BundleSource)

    def _to_dict(self) -> dict[str, Any]:
        return {
            "provisionerClassName": self.provisioner_class_name,
            "source": self.source._to_dict(),
        }

    @classmethod
    def _from_dict(cls, data: Any) -> BundleSpec:
        data = _mapping(data, "spec")
        return cls(
            provisioner_class_name=_str(data, "provisionerClassName"),
            source=BundleSource._from_dict(data.get("source")),
        )


@dataclass
class BundleStatus:
    """Observed state of a Bundle."""

    phase: str = ""
    resolved_source: BundleSource | None = None
    observed_generation: int = 0
    conditions: list[Condition] = field(default_factory=list)
    content_url: str = ""

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "phase": self.phase,
                "resolvedSource": self.resolved_source._to_dict() if self.resolved_source else None,
                "observedGeneration": self.observed_generation,
                "conditions": [condition._to_dict() for condition in self.conditions],
                "contentURL": self.content_url,
            }
        )

    @classmethod
    def _from_dict(cls, data: Any) -> BundleStatus:
        data = _mapping(data, "status")
        resolved = _optional_mapping(data, "resolvedSource")
        return cls(
            phase=_str(data, "phase"),
            resolved_source=BundleSource._from_dict(resolved) if resolved is not None else None,
            observed_generation=_int(data, "observedGeneration"),
            conditions=_conditions_from(data),
            content_url=_str(data, "contentURL"),
        )


@dataclass
class Bundle:
    """A cluster-scoped bundle of content for a provisioner to unpack."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: BundleSpec = field(default_factory=BundleSpec)
    status: BundleStatus = field(default_factory=BundleStatus)

    kind = BUNDLE_KIND
    api_version = API_VERSION

    @property
    def provisioner_class_name(self) -> str:
        """The provisioner class that should reconcile this bundle."""
        return self.spec.provisioner_class_name

    def to_dict(self) -> dict[str, Any]:
        """Encode the bundle as its JSON object form."""
        return {
            "apiVersion": API_VERSION,
            "kind": BUNDLE_KIND,
            "metadata": self.metadata._to_dict(),
            "spec": self.spec._to_dict(),
            "status": self.status._to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> Bundle:
        """Decode a bundle from its JSON object form."""
        data = _mapping(data, "bundle")
        return cls(
            metadata=ObjectMeta._from_dict(data.get("metadata")),
            spec=BundleSpec._from_dict(data.get("spec")),
            status=BundleStatus._from_dict(data.get("status")),
        )


@dataclass
class BundleTemplate:
    """Template of the Bundle that a BundleDeployment manages."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: BundleSpec = field(default_factory=BundleSpec)

    def _to_dict(self) -> dict[str, Any]:
        return {"metadata": self.metadata._to_dict(), "spec": self.spec._to_dict()}

    @classmethod
    def _from_dict(cls, data: Any) -> BundleTemplate:
        data = _mapping(data, "template")
        return cls(
            metadata=ObjectMeta._from_dict(data.get("metadata")),
            spec=BundleSpec._from_dict(data.get("spec")),
        )


@dataclass
class BundleDeploymentSpec:
    """Desired state of a BundleDeployment."""

    provisioner_class_name: str = ""
    template: BundleTemplate | None = None
    config: Any = None

    def _to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "provisionerClassName": self.provisioner_class_name,
            "template": self.template._to_dict() if self.template else None,
        }
        if self.config is not None:
            result["config"] = self.config
        return result

    @classmethod
    def _from_dict(cls, data: Any) -> BundleDeploymentSpec:
        data = _mapping(data, "spec")
        template = _optional_mapping(data, "template")
        return cls(
            provisioner_class_name=_str(data, "provisionerClassName"),
            template=BundleTemplate._from_dict(template) if template is not None else None,
            config=data.get("config"),
        )


@dataclass
class BundleDeploymentStatus:
    """Observed state of a BundleDeployment."""

    conditions: list[Condition] = field(default_factory=list)
    active_bundle: str = ""
    observed_generation: int = 0

    def _to_dict(self) -> dict[str, Any]:
        return _omit_empty(
            {
                "conditions": [condition._to_dict() for condition in self.conditions],
                "activeBundle": self.active_bundle,
                "observedGeneration": self.observed_generation,
            }
        )

    @classmethod
    def _from_dict(cls, data: Any) -> BundleDeploymentStatus:
        data = _mapping(data, "status")
        return cls(
            conditions=_conditions_from(data),
            active_bundle=_str(data, "activeBundle"),
            observed_generation=_int(data, "observedGeneration"),
        )


@dataclass
class BundleDeployment:
    """A cluster-scoped deployment of a generated Bundle."""

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: BundleDeploymentSpec = field(default_factory=BundleDeploymentSpec)
    status: BundleDeploymentStatus = field(default_factory=BundleDeploymentStatus)

    kind = BUNDLE_DEPLOYMENT_KIND
    api_version = API_VERSION

    def to_dict(self) -> dict[str, Any]:
        """Encode the bundle deployment as its JSON object form."""
        return {
            "apiVersion": API_VERSION,
            "kind": BUNDLE_DEPLOYMENT_KIND,
            "metadata": self.metadata._to_dict(),
            "spec": self.spec._to_dict(),
            "status": self.status._to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Any) -> BundleDeployment:
        """Decode a bundle deployment from its JSON object form."""
        data = _mapping(data, "bundle deployment")
        return cls(
            metadata=ObjectMeta._from_dict(data.get("metadata")),
            spec=BundleDeploymentSpec._from_dict(data.get("spec")),
            status=BundleDeploymentStatus._from_dict(data.get("status")),
        )
import json

from rukpak.crdvalidator import (
    DISABLED,
    VALIDATION_KEY,
    AdmissionRequest,
    CrdValidator,
    is_disabled,
)

GROUP = "testing.rukpak.io"
CRD_NAME = f"samples.{GROUP}"


def make_crd(version_names, stored=None, annotations=None):
    crd = {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": CRD_NAME},
        "spec": {
            "group": GROUP,
            "names": {"plural": "samples", "singular": "sample", "kind": "Sample", "listKind": "SampleList"},
            "versions": [
                {
                    "name": name,
                    "served": True,
                    "storage": True,
                    "schema": {"openAPIV3Schema": {"type": "object", "description": "my crd schema"}},
                }
                for name in version_names
            ],
        },
    }
    if annotations is not None:
        crd["metadata"]["annotations"] = annotations
    if stored is not None:
        crd["status"] = {"storedVersions": stored}
    return crd


class FakeClient:
    def __init__(self, crds=()):
        self.crds = {crd["metadata"]["name"]: crd for crd in crds}

    def get_crd(self, name):
        return self.crds.get(name)

    def list_objects(self, group, version, list_kind):
        return []


def request(crd, operation="UPDATE"):
    return AdmissionRequest(name=CRD_NAME, operation=operation, object=json.dumps(crd).encode())


def test_safe_upgrade_is_allowed():
    client = FakeClient([make_crd(["v1alpha1"], stored=["v1alpha1"])])
    response = CrdValidator(client).handle(request(make_crd(["v1alpha1", "v1alpha2"])))
    assert response.allowed is True
    assert response.message == ""


def test_new_crd_is_allowed():
    response = CrdValidator(FakeClient()).handle(request(make_crd(["v1"]), operation="CREATE"))
    assert response.allowed is True


def test_unsafe_upgrade_is_denied():
    client = FakeClient([make_crd(["v1alpha1"], stored=["v1alpha1"])])
    response = CrdValidator(client).handle(request(make_crd(["v1alpha2"])))
    assert response.allowed is False
    assert response.code == 403
    assert response.message.startswith(f'failed to validate safety of UPDATE for CRD "{CRD_NAME}"')
    assert f'set the "{VALIDATION_KEY}" annotation to "{DISABLED}"' in response.message
    assert "cannot remove stored versions [v1alpha1]" in response.message


def test_disabled_validation_allows_unsafe_upgrade():
    client = FakeClient([make_crd(["v1alpha1"], stored=["v1alpha1"])])
    incoming = make_crd(["v1alpha2"], annotations={VALIDATION_KEY: DISABLED})
    response = CrdValidator(client).handle(request(incoming))
    assert response.allowed is True


def test_mapping_object_is_accepted():
    client = FakeClient([make_crd(["v1alpha1"], stored=["v1alpha1"])])
    req = AdmissionRequest(name=CRD_NAME, operation="UPDATE", object=make_crd(["v1alpha2"]))
    response = CrdValidator(client).handle(req)
    assert response.allowed is False
    assert "cannot remove stored versions" in response.message


def test_undecodable_object_is_an_error():
    req = AdmissionRequest(name=CRD_NAME, operation="CREATE", object=b"{not json")
    response = CrdValidator(FakeClient()).handle(req)
    assert response.allowed is False
    assert response.code == 400
    assert response.message.startswith(f'failed to decode CRD "{CRD_NAME}": ')


def test_empty_object_is_an_error():
    req = AdmissionRequest(name=CRD_NAME, operation="CREATE", object=None)
    response = CrdValidator(FakeClient()).handle(req)
    assert response.allowed is False
    assert response.message.startswith(f'failed to decode CRD "{CRD_NAME}"')


def test_is_disabled():
    assert is_disabled(make_crd(["v1"], annotations={VALIDATION_KEY: DISABLED})) is True
    assert is_disabled(make_crd(["v1"], annotations={VALIDATION_KEY: "true"})) is False
    assert is_disabled(make_crd(["v1"])) is False
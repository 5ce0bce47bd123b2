import pytest
import yaml

from rukpak.convert import (
    ConversionError,
    Plain,
    RegistryV1,
    convert,
    generate_name,
    load_registry_v1,
    registry_v1_to_plain,
    simple,
    validate_target_namespaces,
)

ALL = "AllNamespaces"
SINGLE = "SingleNamespace"
OWN = "OwnNamespace"
MULTI = "MultiNamespace"


def make_csv(modes=(ALL,), permissions=None, cluster_permissions=None, annotations=None, sa="op-sa"):
    return {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "ClusterServiceVersion",
        "metadata": {"name": "etcd.v1", "annotations": annotations or {}},
        "spec": {
            "installModes": [{"type": m, "supported": True} for m in modes]
            + [{"type": "Unused", "supported": False}],
            "install": {
                "strategy": "deployment",
                "spec": {
                    "deployments": [
                        {
                            "name": "etcd-operator",
                            "label": {"app": "etcd"},
                            "spec": {
                                "template": {
                                    "metadata": {"annotations": {"tmpl": "x"}},
                                    "spec": {"serviceAccountName": sa},
                                }
                            },
                        }
                    ],
                    "permissions": permissions or [],
                    "clusterPermissions": cluster_permissions or [],
                },
            },
        },
    }


RULES = [{"verbs": ["get"], "apiGroups": [""], "resources": ["pods"]}]


def kinds(plain):
    return [obj["kind"] for obj in plain.objects]


def test_validate_target_namespaces_accepts_supported_cases():
    validate_target_namespaces({ALL}, "ns", [])
    validate_target_namespaces({ALL}, "ns", [""])
    validate_target_namespaces({SINGLE}, "ns", ["a"])
    validate_target_namespaces({OWN}, "ns", ["ns"])
    validate_target_namespaces({MULTI}, "ns", ["a", "b"])
    with pytest.raises(ConversionError):
        validate_target_namespaces({OWN}, "ns", ["other"])


@pytest.mark.parametrize(
    "modes,targets",
    [({ALL}, ["a"]), ({SINGLE}, ["a", "b"]), ({OWN}, []), (set(), [""])],
)
def test_validate_target_namespaces_rejects(modes, targets):
    with pytest.raises(ConversionError, match="do not support target namespaces"):
        validate_target_namespaces(modes, "ns", targets)


def test_generate_name_is_stable_and_bounded():
    first = generate_name("base", ["a", {"x": 1}])
    assert first == generate_name("base", ["a", {"x": 1}])
    assert first.startswith("base-")
    assert first != generate_name("base", ["a", {"x": 2}])
    long_name = generate_name("n" * 100, {"k": "v"})
    assert len(long_name) <= 63
    assert set(long_name.split("-")[-1]) <= set("bcdfghjklmnpqrstvwxz2456789")


def test_convert_requires_all_namespaces():
    reg = RegistryV1(package_name="etcd", csv=make_csv(modes=(SINGLE,)))
    with pytest.raises(ConversionError, match="AllNamespace install mode must be enabled"):
        simple(reg)


def test_convert_rejects_api_services_and_webhooks():
    csv = make_csv()
    csv["spec"]["apiservicedefinitions"] = {"owned": [{"name": "x"}]}
    with pytest.raises(ConversionError, match="apiServiceDefintions are not supported"):
        simple(RegistryV1(package_name="etcd", csv=csv))
    csv = make_csv()
    csv["spec"]["webhookdefinitions"] = [{"type": "ValidatingAdmissionWebhook"}]
    with pytest.raises(ConversionError, match="webhookDefinitions are not supported"):
        simple(RegistryV1(package_name="etcd", csv=csv))


def test_simple_promotes_permissions_to_cluster_scope():
    reg = RegistryV1(
        package_name="etcd",
        csv=make_csv(permissions=[{"serviceAccountName": "op-sa", "rules": RULES}]),
        crds=[{"kind": "CustomResourceDefinition", "metadata": {"name": "c"}}],
        others=[{"kind": "ConfigMap", "metadata": {"name": "m"}}],
    )
    plain = simple(reg)
    assert isinstance(plain, Plain)
    assert kinds(plain) == [
        "Namespace",
        "ServiceAccount",
        "ClusterRole",
        "ClusterRoleBinding",
        "CustomResourceDefinition",
        "ConfigMap",
        "Deployment",
    ]
    namespace = reg.package_name + "-system"
    assert plain.objects[0]["metadata"]["name"] == namespace
    role, binding = plain.objects[2], plain.objects[3]
    assert role["rules"] == RULES
    assert binding["roleRef"]["name"] == role["metadata"]["name"]
    assert binding["subjects"] == [
        {"kind": "ServiceAccount", "namespace": namespace, "name": "op-sa"}
    ]
    deployment = plain.objects[-1]
    assert deployment["metadata"]["namespace"] == namespace
    assert deployment["metadata"]["labels"] == {"app": "etcd"}
    assert deployment["metadata"]["annotations"]["olm.targetNamespaces"] == ""
    assert deployment["metadata"]["annotations"]["tmpl"] == "x"


def test_convert_with_single_target_keeps_namespaced_roles():
    reg = RegistryV1(
        package_name="etcd",
        csv=make_csv(modes=(ALL, SINGLE), permissions=[{"serviceAccountName": "op-sa", "rules": RULES}]),
    )
    plain = convert(reg, "install-ns", ["watched"])
    assert kinds(plain) == ["Namespace", "ServiceAccount", "Role", "RoleBinding", "Deployment"]
    role, binding = plain.objects[2], plain.objects[3]
    assert role["metadata"]["namespace"] == "install-ns"
    assert binding["roleRef"]["kind"] == "Role"
    assert plain.objects[-1]["metadata"]["annotations"]["olm.targetNamespaces"] == "watched"


def test_convert_uses_suggested_namespace_and_skips_default_sa():
    csv = make_csv(
        annotations={"operatorframework.io/suggested-namespace": "suggested"},
        sa="",
        cluster_permissions=[{"rules": RULES}],
    )
    plain = simple(RegistryV1(package_name="etcd", csv=csv))
    assert plain.objects[0]["metadata"]["name"] == "suggested"
    assert "ServiceAccount" not in kinds(plain)
    binding = plain.objects[2]
    assert binding["subjects"][0]["name"] == "default"


def test_convert_rejects_unsupported_targets():
    reg = RegistryV1(package_name="etcd", csv=make_csv())
    with pytest.raises(ConversionError, match="do not support target namespaces"):
        convert(reg, "ns", ["a"])


def write_bundle(root, manifests):
    (root / "metadata").mkdir()
    (root / "metadata" / "annotations.yaml").write_text(
        "annotations:\n  operators.operatorframework.io.bundle.package.v1: etcd\n"
    )
    (root / "manifests").mkdir()
    for name, docs in manifests.items():
        (root / "manifests" / name).write_text(yaml.safe_dump_all(docs))


def test_load_registry_v1_classifies_objects(tmp_path):
    write_bundle(
        tmp_path,
        {
            "csv.yaml": [make_csv()],
            "other.yaml": [
                {"kind": "CustomResourceDefinition", "metadata": {"name": "c"}},
                {"kind": "Service", "metadata": {"name": "s"}},
            ],
        },
    )
    reg = load_registry_v1(tmp_path)
    assert reg.package_name == "etcd"
    assert reg.csv["metadata"]["name"] == "etcd.v1"
    assert [crd["metadata"]["name"] for crd in reg.crds] == ["c"]
    assert [o["kind"] for o in reg.others] == ["Service"]


def test_load_registry_v1_rejects_subdirectories(tmp_path):
    write_bundle(tmp_path, {"csv.yaml": [make_csv()]})
    (tmp_path / "manifests" / "nested").mkdir()
    with pytest.raises(ConversionError, match="subdirectories are not allowed"):
        load_registry_v1(tmp_path)


def test_load_registry_v1_requires_annotations(tmp_path):
    (tmp_path / "manifests").mkdir()
    with pytest.raises(FileNotFoundError):
        load_registry_v1(tmp_path)


def test_registry_v1_to_plain_manifest_round_trip(tmp_path):
    write_bundle(
        tmp_path,
        {"csv.yaml": [make_csv(cluster_permissions=[{"serviceAccountName": "op-sa", "rules": RULES}])]},
    )
    files = registry_v1_to_plain(tmp_path)
    assert list(files) == ["manifests/manifest.yaml"]
    text = files["manifests/manifest.yaml"].decode()
    assert text.startswith("---\n")
    docs = [d for d in yaml.safe_load_all(text) if d is not None]
    expected = simple(load_registry_v1(tmp_path)).objects
    assert docs == expected
    assert [d["kind"] for d in docs] == [
        "Namespace",
        "ServiceAccount",
        "ClusterRole",
        "ClusterRoleBinding",
        "Deployment",
    ]
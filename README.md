# rukpak

Tools for working with bundles of cluster content: the `Bundle` and
`BundleDeployment` resource models, their admission checks, conversion of
registry+v1 operator bundles into plain manifests, safety checks for
CustomResourceDefinition upgrades, and packing a bundle directory into a
transportable archive.

Install with `pip install .`; the test suite needs the `test` extra
(`pip install .[test]`) and runs with `pytest`.

## What is inside

| Module | Purpose |
| --- | --- |
| `rukpak.api` | Dataclasses for `Bundle`, `BundleDeployment` and their specs, sources and statuses, with `to_dict` / `from_dict` |
| `rukpak.registry` | The `metadata/annotations.yaml` file of a registry+v1 bundle (`AnnotationsFile`, `parse_annotations`) |
| `rukpak.webhook` | Admission checks for bundles: `validate_create`, `validate_update`, `validate_delete` |
| `rukpak.predicate` | Event filters for dependent resources (`dependent_predicate_funcs`) |
| `rukpak.finalizer` | `DeleteCachedBundle`, which removes a bundle's cached content when it is finalized |
| `rukpak.unpack` | Packs a bundle directory into a gzipped tar archive and emits it as JSON |
| `rukpak.configmap` | Collects a directory's files into ConfigMap data and creates the ConfigMap |
| `rukpak.convert` | Turns a registry+v1 bundle into a plain bundle of manifests |
| `rukpak.crd` | Checks that a new CRD is a safe upgrade of the one already on the cluster |
| `rukpak.crdvalidator` | An admission handler that applies the CRD upgrade checks |

## Bundles and their validation

```python
from rukpak.api import Bundle
from rukpak.webhook import BundleValidationError, validate_create, validate_update

bundle = Bundle.from_dict({
    "apiVersion": "core.rukpak.io/v1alpha1",
    "kind": "Bundle",
    "metadata": {"name": "example"},
    "spec": {
        "provisionerClassName": "core-rukpak-io-plain",
        "source": {
            "type": "git",
            "git": {
                "repository": "https://git.example.com/bundles.git",
                "directory": "manifests",
                "ref": {"branch": "main"},
            },
        },
    },
})

validate_create(bundle)          # raises BundleValidationError when invalid
print(bundle.provisioner_class_name)
print(bundle.to_dict())
```

A source of type `image` must carry an `image` section, and one of type `git`
a `git` section whose directory stays inside the repository. A bundle's spec
is immutable: `validate_update(old, new)` raises `BundleValidationError` on
any change to it. `validate_delete` always allows deletion.

`BundleDeployment.from_dict` and `BundleDeployment.to_dict` do the same for
bundle deployments. Malformed input (a field of the wrong type) raises
`ValueError`.

## Dependent-resource event filters

`dependent_predicate_funcs()` returns a `PredicateFuncs` whose callables take
objects as dictionaries: `create` and `generic` return `False`, `delete`
returns `True`, and `update(old, new)` returns `True` only when the objects
differ in something other than `status` and `metadata.resourceVersion`.

## Finalizing bundles

`DeleteCachedBundle(storage).finalize(obj)` calls `storage.delete(obj)` and
returns an empty `FinalizeResult`; errors from the storage propagate. Any
object with a `delete(obj)` method serves as storage.

## Converting registry+v1 bundles

`registry_v1_to_plain(root)` reads `metadata/annotations.yaml` and every
manifest in `manifests/` of a registry+v1 bundle laid out under `root`, and
returns the plain bundle as a dictionary mapping `"manifests/manifest.yaml"`
to its YAML bytes. The generated objects are, in order: the install
namespace, service accounts (other than `default`), roles and role bindings
(promoted to cluster roles and bindings in AllNamespaces mode), cluster roles
and bindings, the bundle's CRDs, its other objects, and the operator
deployments.

`load_registry_v1(root)` gives the parsed `RegistryV1`, and
`convert(registry, install_namespace, target_namespaces)` and
`simple(registry)` give finer control. Bundles that do not support the
AllNamespaces install mode, that declare API service or webhook definitions,
or whose `manifests/` holds a subdirectory raise `ConversionError`.
`generate_name(base, obj)` appends a stable hash of `obj` to `base`, keeping
the result within 63 characters.

## CRD upgrade safety

`validate(client, new_crd)` compares a new CRD, given as a dictionary, with
the one stored on the cluster and raises `CRDValidationError` when the upgrade
is unsafe. It refuses to remove a stored version, and it checks every
existing custom resource against a changed schema, and against newly added
versions unless a non-`None` conversion strategy is set. Schemas are checked
with JSON Schema draft 4. A CRD that does not exist yet is always valid.

The client is any object with the `CRDClient` methods:

- `get_crd(name)` returns the CRD as a dictionary, or `None` when it does not exist;
- `list_objects(group, version, list_kind)` returns the existing custom objects.

`CrdValidator(client).handle(AdmissionRequest(name=..., operation=..., object=...))`
wraps this as an admission handler, returning an `AdmissionResponse` that is
allowed, denied (403) or errored (400 when the object cannot be decoded).
The object may be JSON text, bytes or a dictionary. Setting the annotation
`core.rukpak.io/safe-crd-upgrade-validation: "false"` on a CRD turns the check
off for it (see `is_disabled`).

## ConfigMaps from a directory

`collect_directory_data(directory)` maps each file's base name to its text,
walking the tree in lexical order (a later file of the same name wins).
`create_configmap(client, name, directory, namespace)` builds a ConfigMap with
`generateName` set to `name`, passes it to `client.create_config_map(namespace,
config_map)`, and returns the name of the created object.

## Packing a bundle directory

```
rukpak-unpack --bundle-dir ./my-bundle > bundle.json
```

The command walks the directory, skipping symbolic links, writes every file
and directory into a gzipped tar archive with ownership cleared, and prints a
JSON object whose `content` field holds the archive in base64. When the
directory is `/`, well-known system paths such as `/dev`, `/proc` and `/sys`
are skipped. On failure it prints the error to standard error and exits with
status 1. The same is available from Python through
`build_bundle_archive(bundle_dir)` and `encode_bundle(bundle_dir)`.

```
rukpak-unpack --version
```

prints version information and exits.

## What this package does not do

This package provides models, checks and conversions only. It does not talk
to a cluster itself: there are no controllers that reconcile bundles or
bundle deployments, no HTTP server that serves the admission handlers or
bundle content, no upload service, no bundle storage implementation, and no
command-line client for creating bundles on a cluster. Cluster access is
supplied by the caller through the small client interfaces described above.
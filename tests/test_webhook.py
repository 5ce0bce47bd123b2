import pytest

from rukpak.api import (
    Bundle,
    BundleSource,
    BundleSpec,
    GitSource,
    ImageSource,
    SourceType,
)
from rukpak.webhook import (
    BundleValidationError,
    check_bundle_source,
    check_immutable_spec,
    validate_create,
    validate_delete,
    validate_update,
)


def _bundle(source: BundleSource, provisioner: str = "core-rukpak-io-plain") -> Bundle:
    return Bundle(spec=BundleSpec(provisioner_class_name=provisioner, source=source))


def _git(directory: str) -> Bundle:
    return _bundle(
        BundleSource(
            type=SourceType.GIT,
            git=GitSource(repository="https://example.com/repo.git", directory=directory),
        )
    )


def test_image_source_requires_image():
    with pytest.raises(BundleValidationError) as excinfo:
        check_bundle_source(_bundle(BundleSource(type=SourceType.IMAGE)))
    assert str(excinfo.value) == 'bundle.spec.source.image must be set for source type "image"'


def test_git_source_requires_git():
    with pytest.raises(BundleValidationError) as excinfo:
        validate_create(_bundle(BundleSource(type=SourceType.GIT)))
    assert str(excinfo.value) == 'bundle.spec.source.git must be set for source type "git"'


def test_plain_string_type_is_checked_too():
    with pytest.raises(BundleValidationError, match="source.image must be set"):
        check_bundle_source(_bundle(BundleSource(type="image")))


@pytest.mark.parametrize("directory", ["../manifests", "manifests/../../x", "./../y"])
def test_git_directory_outside_repository(directory):
    with pytest.raises(BundleValidationError, match='begins with "../"'):
        check_bundle_source(_git(directory))


@pytest.mark.parametrize("directory", ["", "manifests", "./manifests", "a/../manifests", ".."])
def test_git_directory_inside_repository(directory):
    assert check_bundle_source(_git(directory)) is None


def test_image_source_with_image_is_valid():
    bundle = _bundle(BundleSource(type=SourceType.IMAGE, image=ImageSource(ref="quay.io/x/y:v1")))
    assert validate_create(bundle) is None


def test_other_source_types_are_not_checked():
    assert check_bundle_source(_bundle(BundleSource(type=SourceType.UPLOAD))) is None


def test_update_rejects_spec_change():
    old = _bundle(BundleSource(type=SourceType.IMAGE, image=ImageSource(ref="a")))
    new = _bundle(BundleSource(type=SourceType.IMAGE, image=ImageSource(ref="b")))
    with pytest.raises(BundleValidationError) as excinfo:
        validate_update(old, new)
    assert str(excinfo.value) == "bundle.spec is immutable"


def test_immutable_spec_ignores_metadata():
    old = _bundle(BundleSource(type=SourceType.IMAGE, image=ImageSource(ref="a")))
    new = _bundle(BundleSource(type=SourceType.IMAGE, image=ImageSource(ref="a")))
    new.metadata.name = "renamed"
    assert check_immutable_spec(old, new) is None


def test_update_still_checks_source():
    old = _bundle(BundleSource(type=SourceType.IMAGE))
    new = _bundle(BundleSource(type=SourceType.IMAGE))
    with pytest.raises(BundleValidationError, match="source.image must be set"):
        validate_update(old, new)


def test_delete_allows_invalid_bundle():
    assert validate_delete(_bundle(BundleSource(type=SourceType.IMAGE))) is None
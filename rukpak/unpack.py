"""Pack a bundle directory into a gzipped tar and print it as JSON."""

from __future__ import annotations

import argparse
import base64
import gzip
import io
import json
import os
import stat
import sys
import tarfile

GIT_COMMIT = "unknown"

_SKIP_ROOT_PATHS = frozenset(
    {"/dev", "/etc", "/proc", "/product_name", "/product_uuid", "/sys", "/bin"}
)


def _add_entry(tar: tarfile.TarFile, full_path: str, name: str, st: os.stat_result) -> None:
    info = tarfile.TarInfo(name)
    info.mode = stat.S_IMODE(st.st_mode)
    info.mtime = int(st.st_mtime)
    info.uid = 0
    info.gid = 0
    info.uname = ""
    info.gname = ""
    mode = st.st_mode
    if stat.S_ISDIR(mode):
        info.type = tarfile.DIRTYPE
        tar.addfile(info)
    elif stat.S_ISREG(mode):
        info.size = st.st_size
        with open(full_path, "rb") as handle:
            tar.addfile(info, handle)
    elif stat.S_ISSOCK(mode):
        raise ValueError(f"build tar file info header for {name!r}: sockets not supported")
    else:
        if stat.S_ISFIFO(mode):
            info.type = tarfile.FIFOTYPE
        elif stat.S_ISCHR(mode):
            info.type = tarfile.CHRTYPE
        else:
            info.type = tarfile.BLKTYPE
        if stat.S_ISCHR(mode) or stat.S_ISBLK(mode):
            info.devmajor = os.major(st.st_rdev)
            info.devminor = os.minor(st.st_rdev)
        tar.addfile(info)


def _add_tree(tar: tarfile.TarFile, root: str, rel: str, skip_root: bool) -> None:
    directory = root if rel == "." else os.path.join(root, rel)
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda entry: entry.name)
    for entry in entries:
        path = entry.name if rel == "." else f"{rel}/{entry.name}"
        if entry.is_symlink():
            continue
        is_dir = entry.is_dir(follow_symlinks=False)
        if skip_root and "/" + path in _SKIP_ROOT_PATHS:
            if is_dir:
                continue
            # A skipped file ends the walk of its directory.
            break
        _add_entry(tar, entry.path, path, entry.stat(follow_symlinks=False))
        if is_dir:
            _add_tree(tar, root, path, skip_root)


def build_bundle_archive(bundle_dir: str | os.PathLike[str]) -> bytes:
    """Return a gzipped tar of the directory, with symlinks left out and owners cleared."""
    root = os.path.abspath(os.fspath(bundle_dir))
    root_stat = os.stat(root)
    if not stat.S_ISDIR(root_stat.st_mode):
        raise NotADirectoryError(f"not a directory: {root!r}")
    buffer = io.BytesIO()
    with gzip.GzipFile(fileobj=buffer, mode="wb", mtime=0) as gz:
        with tarfile.open(fileobj=gz, mode="w") as tar:
            _add_entry(tar, root, ".", root_stat)
            _add_tree(tar, root, ".", skip_root=root == "/")
    return buffer.getvalue()


def encode_bundle(bundle_dir: str | os.PathLike[str]) -> str:
    """Return the JSON line carrying the directory's archive as base64 content."""
    archive = build_bundle_archive(bundle_dir)
    return json.dumps({"content": base64.b64encode(archive).decode("ascii")}) + "\n"


def main(argv: list[str] | None = None) -> int:
    """Write the JSON-encoded bundle archive of --bundle-dir to standard output."""
    parser = argparse.ArgumentParser(prog="unpack")
    parser.add_argument("--bundle-dir", default="", help="directory in which the bundle can be found")
    parser.add_argument("--version", action="store_true", help="displays rukpak version information")
    args = parser.parse_args(argv)

    if args.version:
        print(f"Git commit: {GIT_COMMIT}")
        return 0

    bundle_dir = os.path.abspath(args.bundle_dir)
    try:
        payload = encode_bundle(bundle_dir)
    except (OSError, ValueError) as exc:
        print(f'generate tar.gz for bundle dir "{bundle_dir}": {exc}', file=sys.stderr)
        return 1
    sys.stdout.write(payload)
    return 0
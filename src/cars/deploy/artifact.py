"""Artifact storage and extraction."""

import os
import shutil
import tarfile
import tempfile
from pathlib import Path


class ArtifactError(Exception):
    """The uploaded archive could not be stored or unpacked."""


def artifact_path(artifact_dir: str | Path, deployment_id: str) -> Path:
    return Path(artifact_dir) / f"artifact_{deployment_id}.tgz"


def build_tree_path(build_dir: str | Path, deployment_id: str) -> Path:
    return Path(build_dir) / f"build_{deployment_id}"


def store_artifact(artifact_dir: str | Path, deployment_id: str, data: bytes) -> Path:
    """Persist the raw upload as artifact_<deployment>.tgz and return its path.

    The bytes go to a private temporary file that is renamed into place, so
    a reader never sees a partially written archive.
    """
    if not data:
        raise ArtifactError("Empty artifact upload")
    path = artifact_path(artifact_dir, deployment_id)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".part")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
        os.replace(tmp_name, path)
    except OSError:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def extract_artifact(archive: Path, build_dir: str | Path, deployment_id: str) -> Path:
    """Unpack archive into a fresh build_<deployment> directory.

    The "data" filter rejects absolute paths, parent traversal, device files
    and links escaping the destination.
    """
    dest = build_tree_path(build_dir, deployment_id)
    if dest.exists():
        shutil.rmtree(dest)
    dest.mkdir(parents=True)
    try:
        with tarfile.open(archive, mode="r:*") as tar:
            tar.extractall(dest, filter="data")
    except (tarfile.TarError, OSError) as e:
        raise ArtifactError(f"Failed to extract artifact: {e}") from e
    return dest


def discard_build_tree(build_dir: str | Path, deployment_id: str) -> None:
    """Remove the extracted sources once the pipeline is done with them."""
    shutil.rmtree(build_tree_path(build_dir, deployment_id), ignore_errors=True)

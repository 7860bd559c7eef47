"""Deterministic fingerprinting of a terraform project's inputs."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

# Top-level directories whose whole (non-hidden) subtree is an input.
INPUT_SUBTREES = ("tfvars", "templates", "modules")
CONFIG_SUFFIX = ".tf"
TF_VAR_PREFIX = "TF_VAR_"
LOCK_FILE = ".terraform.lock.hcl"
VERSION_FILE = ".terraform-version"
DIGEST_LENGTH = 32


@dataclass
class Fingerprint:
    """Digest over a project's inputs plus the files that contributed to it."""

    hash: str
    files: list[str] = field(default_factory=list)
    terraform_version: str | None = None


def _is_input(rel: str) -> bool:
    if rel.endswith(CONFIG_SUFFIX):
        return True
    head = rel.split("/", 1)[0]
    return head in INPUT_SUBTREES and "/" in rel


def collect_input_files(project_dir: Path | str) -> list[str]:
    """Return sorted relative POSIX paths of every fingerprinted file.

    Hidden files and directories are skipped, which keeps terraform's local
    ``.terraform/`` working state out. Raises ``OSError`` when the project
    directory itself cannot be listed.
    """
    root = Path(project_dir)
    # fail loudly on the root; nested listing errors are ignored by os.walk
    os.listdir(root)

    found: set[str] = set()
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        dirnames[:] = [d for d in dirnames if not d.startswith(".")]
        base = Path(dirpath)
        for name in filenames:
            if name.startswith("."):
                continue
            full = base / name
            if not full.is_file():
                continue
            rel = full.relative_to(root).as_posix()
            if _is_input(rel):
                found.add(rel)
    return sorted(found)


def _read_version(project_dir: Path) -> str | None:
    try:
        raw = (project_dir / VERSION_FILE).read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return raw or None


def compute_fingerprint(
    project_dir: Path | str,
    env_name: str | None = None,
    *,
    extra_env_vars: Iterable[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Fingerprint:
    """Hash the project's terraform inputs for ``env_name``.

    Feeds SHA-256 with, in order: every input file as ``path\\0`` + bytes,
    ``TF_VAR_*`` variables sorted by name, any ``extra_env_vars`` that are set,
    the environment label, the provider lock file and the pinned terraform
    version. Files that vanish or cannot be read mid-walk are skipped.
    """
    root = Path(project_dir)
    env = os.environ if environ is None else environ
    files = collect_input_files(root)

    h = hashlib.sha256()
    for rel in files:
        try:
            content = (root / rel).read_bytes()
        except OSError:
            continue
        h.update(rel.encode("utf-8") + b"\0")
        h.update(content)

    for name in sorted(k for k in env if k.startswith(TF_VAR_PREFIX)):
        h.update(f"{name}={env[name]}\n".encode("utf-8"))
    for name in sorted(set(extra_env_vars or ())):
        if name.startswith(TF_VAR_PREFIX) or name not in env:
            continue
        h.update(f"{name}={env[name]}\n".encode("utf-8"))

    if env_name:
        h.update(f"ENV={env_name}".encode("utf-8"))

    lock = root / LOCK_FILE
    if lock.is_file():
        try:
            lock_bytes = lock.read_bytes()
        except OSError:
            lock_bytes = None
        if lock_bytes is not None:
            h.update(b"LOCKFILE\0")
            h.update(lock_bytes)

    version = _read_version(root)
    if version:
        h.update(f"TERRAFORM_VERSION={version}".encode("utf-8"))

    return Fingerprint(
        hash=h.hexdigest()[:DIGEST_LENGTH],
        files=files,
        terraform_version=version,
    )

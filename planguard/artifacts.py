"""Fingerprint-keyed artifact directories and plan metadata records.

Layout: ``<workspace_root>/<cache_dir>/<project>/<env or "default">/<hash>/``.
The path is a pure function of its inputs; the filesystem is the only index.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_CACHE_DIR = Path(".planguard") / "terraform"
DEFAULT_ENV = "default"

PLAN_FILE = "tfplan"
PLAN_JSON_FILE = "plan.json"
SUMMARY_FILE = "summary.json"
META_FILE = "plan.meta.json"
OUTPUTS_JSON_FILE = "outputs.json"
OUTPUTS_ENV_FILE = "outputs.env"
DESTROY_META_FILE = "destroy.meta.json"


def get_env_dir(
    workspace_root: Path | str,
    project: str,
    env_name: str | None,
    cache_dir: Path | str = DEFAULT_CACHE_DIR,
) -> Path:
    """Directory holding every fingerprint directory for a project/environment pair."""
    return Path(workspace_root) / cache_dir / project / (env_name or DEFAULT_ENV)


def get_artifact_dir(
    workspace_root: Path | str,
    project: str,
    env_name: str | None,
    fingerprint: str,
    cache_dir: Path | str = DEFAULT_CACHE_DIR,
) -> Path:
    """Return the artifact directory for (project, environment, fingerprint)."""
    return get_env_dir(workspace_root, project, env_name, cache_dir) / fingerprint


def ensure_dir(path: Path | str) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def write_json(path: Path | str, data: Any) -> Path:
    p = Path(path)
    p.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return p


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


def write_json_atomic(path: Path | str, data: Any) -> Path:
    """Write JSON to a temp file beside ``path`` and rename it into place.

    Readers therefore see either no file or a complete one.
    """
    p = Path(path)
    fd, tmp = tempfile.mkstemp(prefix=f".{p.name}.", suffix=".tmp", dir=p.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        # mkstemp creates 0600; match the mode a plain write would get
        os.chmod(tmp, 0o666 & ~_current_umask())
        os.replace(tmp, p)
    except BaseException:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise
    return p


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_timestamp(value: Any) -> float | None:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) to epoch seconds.

    Anything that is not such a string yields None.
    """
    if not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (TypeError, ValueError):
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


@dataclass
class PlanMeta:
    """Authoritative record of which fingerprint a stored plan corresponds to."""

    project: str
    environment: str
    hash: str
    created_at: str | None = None
    duration_ms: int | None = None
    file_count: int | None = None
    terraform_version: str | None = None
    plan_file: str | None = None
    summary_file: str | None = None

    _KEYS = (
        ("project", "project"),
        ("environment", "environment"),
        ("hash", "hash"),
        ("created_at", "createdAt"),
        ("duration_ms", "durationMs"),
        ("file_count", "fileCount"),
        ("terraform_version", "terraformVersion"),
        ("plan_file", "planFile"),
        ("summary_file", "summaryFile"),
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting unset optional fields."""
        out: dict[str, Any] = {}
        for attr, key in self._KEYS:
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlanMeta:
        if not isinstance(data, dict) or not data.get("hash"):
            raise ValueError("plan metadata must be an object with a 'hash'")
        kwargs = {attr: data.get(key) for attr, key in cls._KEYS}
        kwargs["project"] = kwargs["project"] or ""
        kwargs["environment"] = kwargs["environment"] or DEFAULT_ENV
        return cls(**kwargs)

    @property
    def created_ts(self) -> float | None:
        return parse_timestamp(self.created_at) if self.created_at else None


def load_plan_meta(path: Path | str) -> PlanMeta | None:
    """Read a ``plan.meta.json``; missing or malformed files yield None."""
    p = Path(path)
    if not p.is_file():
        return None
    try:
        return PlanMeta.from_dict(json.loads(p.read_text(encoding="utf-8")))
    except (OSError, ValueError) as e:
        logger.debug("Ignoring unreadable plan metadata %s: %s", p, e)
        return None


def load_sibling_meta(plan_path: Path | str) -> PlanMeta | None:
    return load_plan_meta(Path(plan_path).parent / META_FILE)


@dataclass
class PlanArtifact:
    """A stored plan file plus the metadata found beside it, if any."""

    plan_path: Path
    meta: PlanMeta | None

    @property
    def artifact_dir(self) -> Path:
        return self.plan_path.parent

    def sort_key(self) -> float:
        """Metadata creation time when available, plan file mtime otherwise."""
        ts = self.meta.created_ts if self.meta else None
        if ts is not None:
            return ts
        try:
            return self.plan_path.stat().st_mtime
        except OSError:
            return 0.0


def list_plan_artifacts(
    workspace_root: Path | str,
    project: str,
    env_name: str | None,
    cache_dir: Path | str = DEFAULT_CACHE_DIR,
) -> list[PlanArtifact]:
    """Every fingerprint directory for the pair that holds a plan file."""
    base = get_env_dir(workspace_root, project, env_name, cache_dir)
    if not base.is_dir():
        return []
    found: list[PlanArtifact] = []
    for d in sorted(base.iterdir()):
        plan_path = d / PLAN_FILE
        if not d.is_dir() or not plan_path.is_file():
            continue
        found.append(PlanArtifact(plan_path=plan_path, meta=load_plan_meta(d / META_FILE)))
    return found


def discover_latest_plan(
    workspace_root: Path | str,
    project: str,
    env_name: str | None,
    cache_dir: Path | str = DEFAULT_CACHE_DIR,
) -> PlanArtifact | None:
    """Return the most recently created plan artifact for project/environment."""
    candidates = list_plan_artifacts(workspace_root, project, env_name, cache_dir)
    if not candidates:
        return None
    return max(candidates, key=lambda a: a.sort_key())

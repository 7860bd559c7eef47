"""Extract terraform outputs to JSON and a masked ``name=value`` env file."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from ..artifacts import (
    DEFAULT_ENV,
    OUTPUTS_ENV_FILE,
    OUTPUTS_JSON_FILE,
    discover_latest_plan,
    ensure_dir,
    get_artifact_dir,
    write_json,
)
from ..fingerprint import compute_fingerprint
from .common import ExecutionContext, WorkspaceStrategy, failure_text, select_workspace

logger = logging.getLogger(__name__)

SENSITIVE_MASK = "*****"


@dataclass
class OutputOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    allow_sensitive: bool = False


@dataclass
class OutputResult:
    success: bool
    project: str
    env: str | None = None
    artifact_dir: Path | None = None
    hash: str | None = None
    outputs_json_path: Path | None = None
    outputs_env_path: Path | None = None
    sensitive_count: int = 0
    error: str | None = None


def format_value(value: Any) -> str:
    """Strings verbatim; anything else as compact JSON.

    Strings containing line breaks are JSON-escaped so each output stays on
    one line.
    """
    if isinstance(value, str) and "\n" not in value and "\r" not in value:
        return value
    return json.dumps(value, separators=(",", ":"))


def render_env_lines(outputs: dict[str, Any], allow_sensitive: bool = False) -> tuple[list[str], int]:
    """Render ``name=value`` lines, masking sensitive entries unless allowed.

    Returns the lines and how many values were masked.
    """
    lines: list[str] = []
    masked = 0
    for name, wrapper in outputs.items():
        wrapper = wrapper if isinstance(wrapper, dict) else {"value": wrapper}
        if wrapper.get("sensitive") is True and not allow_sensitive:
            masked += 1
            lines.append(f"{name}={SENSITIVE_MASK}")
            continue
        lines.append(f"{name}={format_value(wrapper.get('value'))}")
    return lines, masked


def run_output(ctx: ExecutionContext, options: OutputOptions | None = None) -> OutputResult:
    """Dump ``terraform output -json`` next to the latest plan artifact."""
    options = options or OutputOptions()
    env = options.env
    result = OutputResult(success=False, project=ctx.project_name, env=env)

    latest = discover_latest_plan(ctx.workspace_root, ctx.project_name, env, ctx.cache_dir)
    if latest is not None:
        artifact_dir = latest.artifact_dir
        result.hash = latest.meta.hash if latest.meta else artifact_dir.name
    else:
        fp = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
        result.hash = fp.hash
        artifact_dir = ensure_dir(
            get_artifact_dir(ctx.workspace_root, ctx.project_name, env, fp.hash, ctx.cache_dir)
        )
    result.artifact_dir = artifact_dir

    select_workspace(ctx, options.workspace_strategy, env)

    logger.info(
        "Terraform output (project=%s, env=%s) -> %s",
        ctx.project_name,
        env or DEFAULT_ENV,
        artifact_dir,
    )
    dumped = ctx.terraform(["output", "-json"])
    if dumped.code != 0:
        result.error = failure_text(dumped.stderr, "terraform output failed")
        logger.error(result.error)
        return result

    try:
        outputs = json.loads(dumped.stdout)
    except json.JSONDecodeError as e:
        outputs = None
        result.error = f"Failed to parse terraform output JSON: {e}"
    if not isinstance(outputs, dict):
        result.error = result.error or "terraform output JSON is not an object"
        logger.error(result.error)
        return result

    lines, masked = render_env_lines(outputs, options.allow_sensitive)
    result.outputs_json_path = write_json(artifact_dir / OUTPUTS_JSON_FILE, outputs)
    result.outputs_env_path = artifact_dir / OUTPUTS_ENV_FILE
    result.outputs_env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    result.sensitive_count = masked
    result.success = True
    return result

"""Destroy a project's resources, warning (never blocking) on plan drift."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..artifacts import (
    DEFAULT_ENV,
    DESTROY_META_FILE,
    discover_latest_plan,
    ensure_dir,
    get_artifact_dir,
    utc_now_iso,
    write_json_atomic,
)
from ..fingerprint import compute_fingerprint
from .common import (
    ExecutionContext,
    WorkspaceStrategy,
    failure_text,
    resolve_var_file,
    select_workspace,
)

logger = logging.getLogger(__name__)


@dataclass
class DestroyOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    var_file: str | None = None
    force: bool = False
    audit: bool = False


@dataclass
class DestroyResult:
    success: bool
    project: str
    env: str | None = None
    stale: bool = False
    current_hash: str | None = None
    latest_planned_hash: str | None = None
    warnings: list[str] = field(default_factory=list)
    destroyed_at: str | None = None
    error: str | None = None


def _write_audit(ctx: ExecutionContext, result: DestroyResult) -> None:
    artifact_dir = ensure_dir(
        get_artifact_dir(
            ctx.workspace_root, ctx.project_name, result.env, result.current_hash, ctx.cache_dir
        )
    )
    write_json_atomic(
        artifact_dir / DESTROY_META_FILE,
        {
            "project": ctx.project_name,
            "environment": result.env or DEFAULT_ENV,
            "hash": result.current_hash,
            "latestPlannedHash": result.latest_planned_hash,
            "destroyedAt": result.destroyed_at or utc_now_iso(),
            "success": result.success,
            "warnings": result.warnings,
        },
    )


def run_destroy(ctx: ExecutionContext, options: DestroyOptions | None = None) -> DestroyResult:
    """Run ``terraform destroy``; a prior plan is optional and staleness only warns."""
    options = options or DestroyOptions()
    env = options.env
    result = DestroyResult(success=False, project=ctx.project_name, env=env)

    select_workspace(ctx, options.workspace_strategy, env)

    current = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
    result.current_hash = current.hash

    latest = discover_latest_plan(ctx.workspace_root, ctx.project_name, env, ctx.cache_dir)
    if latest is not None and latest.meta is not None:
        result.latest_planned_hash = latest.meta.hash
        if latest.meta.hash != current.hash:
            result.stale = True
            msg = (
                f"Warning: Latest plan hash ({latest.meta.hash}) differs from current inputs "
                f"({current.hash}). Resources may have drifted since last plan."
            )
            result.warnings.append(msg)
            if options.force:
                logger.info("Force enabled: %s", msg)
            else:
                logger.warning(msg)

    var_file = resolve_var_file(ctx, options.var_file, env)
    args = ["destroy", "-auto-approve", "-input=false"]
    if var_file:
        args.append(f"-var-file={var_file}")

    logger.info(
        "Terraform destroy (project=%s, env=%s)%s",
        ctx.project_name,
        env or DEFAULT_ENV,
        f" using varFile={var_file}" if var_file else "",
    )
    destroyed = ctx.terraform(args, inherit=True)
    if destroyed.code != 0:
        result.error = failure_text(destroyed.stderr, "terraform destroy failed")
        logger.error(result.error)
    else:
        result.success = True
        result.destroyed_at = utc_now_iso()

    if options.audit:
        _write_audit(ctx, result)
    return result

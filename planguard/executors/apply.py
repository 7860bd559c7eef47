"""Apply a stored plan, refusing plans whose inputs have since changed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ..artifacts import DEFAULT_ENV, PlanMeta, discover_latest_plan, load_sibling_meta
from ..fingerprint import compute_fingerprint
from .common import (
    ExecutionContext,
    WorkspaceStrategy,
    failure_text,
    resolve_plan_path,
    select_workspace,
)

logger = logging.getLogger(__name__)

STATE_FILE = "terraform.tfstate"


@dataclass
class ApplyOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    plan_file: str | None = None
    force: bool = False


@dataclass
class ApplyResult:
    success: bool
    project: str
    env: str | None = None
    plan_path: Path | None = None
    stale: bool = False
    plan_hash: str | None = None
    current_hash: str | None = None
    applied_hash: str | None = None
    state_file: Path | None = None
    error: str | None = None


def _fail(result: ApplyResult, message: str) -> ApplyResult:
    logger.error(message)
    result.error = message
    return result


def run_apply(ctx: ExecutionContext, options: ApplyOptions | None = None) -> ApplyResult:
    """Apply the explicit or most recent plan for the project/environment.

    A plan whose recorded fingerprint differs from the current inputs is stale:
    without ``force`` the apply subprocess is never started.
    """
    options = options or ApplyOptions()
    env = options.env
    result = ApplyResult(success=False, project=ctx.project_name, env=env)

    meta: PlanMeta | None
    if options.plan_file:
        plan_path = resolve_plan_path(ctx, options.plan_file)
        meta = load_sibling_meta(plan_path)
    else:
        found = discover_latest_plan(ctx.workspace_root, ctx.project_name, env, ctx.cache_dir)
        if found is None:
            return _fail(result, "No prior plan artifact found. Generate a plan first.")
        plan_path, meta = found.plan_path, found.meta
    result.plan_path = plan_path

    if not plan_path.is_file():
        return _fail(result, f"Plan file not found: {plan_path}")
    if meta is None:
        return _fail(
            result,
            f"No usable plan metadata beside {plan_path}; the plan is incomplete. Re-run plan.",
        )

    current = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
    result.plan_hash = meta.hash
    result.current_hash = current.hash
    result.stale = meta.hash != current.hash
    if result.stale and not options.force:
        return _fail(
            result,
            f"Stale plan detected. Plan hash={meta.hash} current hash={current.hash}. "
            "Re-run plan or use --force.",
        )
    if result.stale:
        logger.warning(
            "Applying stale plan %s (current inputs %s) because force is set",
            meta.hash,
            current.hash,
        )

    select_workspace(ctx, options.workspace_strategy, env)

    logger.info(
        "Applying terraform plan (project=%s, env=%s) plan=%s",
        ctx.project_name,
        env or DEFAULT_ENV,
        plan_path,
    )
    applied = ctx.terraform(["apply", "-input=false", "-auto-approve", str(plan_path)], inherit=True)
    if applied.code != 0:
        return _fail(result, failure_text(applied.stderr, "terraform apply failed"))

    state_file = ctx.project_dir / STATE_FILE
    result.success = True
    result.applied_hash = meta.hash
    result.state_file = state_file if state_file.exists() else None
    return result

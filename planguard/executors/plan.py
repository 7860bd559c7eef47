"""Produce a terraform plan into its fingerprint-keyed artifact directory."""

from __future__ import annotations

import json
import logging
import os
import re
import time
from dataclasses import dataclass
from pathlib import Path

from ..artifacts import (
    META_FILE,
    PLAN_FILE,
    PLAN_JSON_FILE,
    SUMMARY_FILE,
    DEFAULT_ENV,
    PlanMeta,
    ensure_dir,
    get_artifact_dir,
    utc_now_iso,
    write_json,
    write_json_atomic,
)
from ..fingerprint import compute_fingerprint
from ..summary import PlanSummary, summarize_plan
from .common import (
    ExecutionContext,
    WorkspaceStrategy,
    failure_text,
    resolve_plan_path,
    resolve_var_file,
    select_workspace,
)

logger = logging.getLogger(__name__)

EXIT_NO_CHANGES = 0
EXIT_CHANGES = 2

_VERSION_RE = re.compile(r"Terraform v(\S+)")


@dataclass
class PlanOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    var_file: str | None = None
    plan_file: str | None = None
    detailed_exit_code: bool = True
    meta: bool = True


@dataclass
class PlanResult:
    success: bool
    project: str
    env: str | None = None
    artifact_dir: Path | None = None
    hash: str | None = None
    plan_path: Path | None = None
    plan_json_path: Path | None = None
    summary_path: Path | None = None
    meta_path: Path | None = None
    changed: bool = False
    summary: PlanSummary | None = None
    error: str | None = None


def infer_terraform_version(ctx: ExecutionContext) -> str | None:
    res = ctx.terraform(["version"])
    if res.code != 0:
        return None
    match = _VERSION_RE.search(res.stdout)
    return match.group(1) if match else None


def _relative(path: Path, root: Path) -> str:
    return Path(os.path.relpath(path, root)).as_posix()


def run_plan(ctx: ExecutionContext, options: PlanOptions | None = None) -> PlanResult:
    """Run ``terraform plan`` and persist plan, JSON rendering, summary and metadata.

    Metadata is written last; its presence marks the plan as complete.
    """
    options = options or PlanOptions()
    env = options.env
    start = time.monotonic()

    fp = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
    artifact_dir = ensure_dir(
        get_artifact_dir(ctx.workspace_root, ctx.project_name, env, fp.hash, ctx.cache_dir)
    )
    result = PlanResult(
        success=False, project=ctx.project_name, env=env, artifact_dir=artifact_dir, hash=fp.hash
    )
    logger.info(
        "Terraform plan (project=%s, env=%s) -> %s",
        ctx.project_name,
        env or DEFAULT_ENV,
        artifact_dir,
    )

    select_workspace(ctx, options.workspace_strategy, env)

    if options.plan_file:
        plan_path = resolve_plan_path(ctx, options.plan_file)
        ensure_dir(plan_path.parent)
    else:
        plan_path = artifact_dir / PLAN_FILE
    args = ["plan", "-input=false", "-out", str(plan_path)]
    if options.detailed_exit_code:
        args.append("-detailed-exitcode")
    var_file = resolve_var_file(ctx, options.var_file, env)
    if var_file:
        args.append(f"-var-file={var_file}")

    planned = ctx.terraform(args, inherit=True)
    if planned.code not in (EXIT_NO_CHANGES, EXIT_CHANGES):
        result.error = failure_text(planned.stderr, "terraform plan failed")
        logger.error(result.error)
        return result
    result.plan_path = plan_path
    result.changed = planned.code == EXIT_CHANGES

    shown = ctx.terraform(["show", "-json", str(plan_path)])
    if shown.code != 0:
        result.error = failure_text(shown.stderr, "terraform show -json failed")
        logger.error(result.error)
        return result
    try:
        plan_doc = json.loads(shown.stdout)
    except json.JSONDecodeError as e:
        result.error = f"Failed to parse plan JSON: {e}"
        logger.error(result.error)
        return result

    plan_json_path = artifact_dir / PLAN_JSON_FILE
    plan_json_path.write_text(shown.stdout, encoding="utf-8")
    summary = summarize_plan(plan_doc)
    summary.project = ctx.project_name
    summary.environment = env
    summary_path = write_json(artifact_dir / SUMMARY_FILE, summary.to_dict())
    result.plan_json_path = plan_json_path
    result.summary_path = summary_path
    result.summary = summary

    if options.meta:
        meta = PlanMeta(
            project=ctx.project_name,
            environment=env or DEFAULT_ENV,
            hash=fp.hash,
            created_at=utc_now_iso(),
            duration_ms=int((time.monotonic() - start) * 1000),
            file_count=len(fp.files),
            terraform_version=fp.terraform_version or infer_terraform_version(ctx),
            plan_file=_relative(plan_json_path, ctx.workspace_root),
            summary_file=_relative(summary_path, ctx.workspace_root),
        )
        result.meta_path = write_json_atomic(artifact_dir / META_FILE, meta.to_dict())
        if plan_path.parent != artifact_dir:
            # apply reads the metadata beside the plan it is given
            write_json_atomic(plan_path.parent / META_FILE, meta.to_dict())

    counts = summary.actions
    logger.info(
        "Plan %s: %d to create, %d to update, %d to replace, %d to delete",
        fp.hash,
        counts.create,
        counts.update,
        counts.replace,
        counts.delete,
    )
    result.success = True
    return result

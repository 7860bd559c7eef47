"""terraform validate, preceded by a backend-less init unless suppressed."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .common import ExecutionContext, WorkspaceStrategy, failure_text, select_workspace

logger = logging.getLogger(__name__)


@dataclass
class ValidateOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    no_init: bool = False


@dataclass
class ValidateResult:
    success: bool
    project: str
    error: str | None = None


def run_validate(ctx: ExecutionContext, options: ValidateOptions | None = None) -> ValidateResult:
    options = options or ValidateOptions()
    result = ValidateResult(success=False, project=ctx.project_name)

    if not options.no_init:
        init = ctx.terraform(["init", "-backend=false"])
        if init.code != 0:
            result.error = failure_text(init.stderr, "terraform init (validate pre-step) failed")
            logger.error(result.error)
            return result

    select_workspace(ctx, options.workspace_strategy, options.env)

    logger.info("Terraform validate (project=%s) in %s", ctx.project_name, ctx.project_dir)
    validated = ctx.terraform(["validate"], inherit=True)
    if validated.code != 0:
        result.error = failure_text(validated.stderr, "terraform validate failed")
        logger.error(result.error)
        return result

    result.success = True
    return result

"""terraform init followed by optional workspace creation/selection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from .common import ExecutionContext, WorkspaceStrategy, ensure_workspace, failure_text

logger = logging.getLogger(__name__)


@dataclass
class InitOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    reconfigure: bool = False
    backend_config: list[str] = field(default_factory=list)


@dataclass
class InitResult:
    success: bool
    project: str
    working_directory: Path | None = None
    workspace_selected: bool = False
    error: str | None = None


def run_init(ctx: ExecutionContext, options: InitOptions | None = None) -> InitResult:
    options = options or InitOptions()
    result = InitResult(success=False, project=ctx.project_name)

    logger.info("Terraform init (project=%s) in %s", ctx.project_name, ctx.project_dir)
    args = ["init", "-input=false"]
    if options.reconfigure:
        args.append("-reconfigure")
    for bc in options.backend_config:
        args.append(f"-backend-config={bc}")

    initialized = ctx.terraform(args, inherit=True)
    if initialized.code != 0:
        result.error = failure_text(initialized.stderr, "terraform init failed")
        logger.error(result.error)
        return result

    # terraform only accepts workspace commands after init
    result.workspace_selected = ensure_workspace(ctx, options.workspace_strategy, options.env)
    result.success = True
    result.working_directory = ctx.project_dir
    return result

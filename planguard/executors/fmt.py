"""terraform fmt, in write or check mode."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from .common import ExecutionContext, WorkspaceStrategy, failure_text, select_workspace

logger = logging.getLogger(__name__)

EXIT_NEEDS_FORMATTING = 3


@dataclass
class FmtOptions:
    env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE
    check: bool = False


@dataclass
class FmtResult:
    success: bool
    project: str
    check: bool = False
    needs_formatting: bool = False
    changed_files: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def changed_count(self) -> int:
        return len(self.changed_files)


def run_fmt(ctx: ExecutionContext, options: FmtOptions | None = None) -> FmtResult:
    options = options or FmtOptions()
    result = FmtResult(success=False, project=ctx.project_name, check=options.check)

    select_workspace(ctx, options.workspace_strategy, options.env)

    logger.info("Terraform fmt (project=%s) in %s", ctx.project_name, ctx.project_dir)
    args = ["fmt", "-recursive", "-list=true"]
    if options.check:
        args += ["-check", "-write=false"]
    else:
        args.append("-write=true")

    formatted = ctx.terraform(args)
    project_dir = str(ctx.project_dir)
    for line in formatted.stdout.splitlines():
        line = line.strip()
        if not line:
            continue
        if os.path.isabs(line):
            line = Path(os.path.relpath(line, project_dir)).as_posix()
        result.changed_files.append(line)

    if options.check and formatted.code == EXIT_NEEDS_FORMATTING:
        result.needs_formatting = True
        return result
    if formatted.code not in (0, EXIT_NEEDS_FORMATTING):
        result.error = failure_text(formatted.stderr, "terraform fmt failed")
        logger.error(result.error)
        return result

    result.success = True
    return result

"""Execution context and helpers shared by every terraform operation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from ..artifacts import DEFAULT_CACHE_DIR
from ..runner import run_terraform

logger = logging.getLogger(__name__)

VAR_FILE_DIR = "tfvars"
VAR_FILE_EXT = ".tfvars"


class WorkspaceStrategy(str, Enum):
    """How a terraform workspace matching the environment label is selected."""

    DERIVE = "derive"
    EXPLICIT = "explicit"
    NONE = "none"


@dataclass
class ExecutionContext:
    """Resolved location of one project inside a workspace."""

    workspace_root: Path
    project_name: str
    project_root: str
    tf_dir: str | None = None
    binary: str = "terraform"
    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR)
    extra_env_vars: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.project_name:
            raise ValueError("Execution context missing project name")
        if self.project_root is None:
            raise ValueError(f"Execution context missing root for project {self.project_name}")
        self.workspace_root = Path(self.workspace_root)
        self.cache_dir = Path(self.cache_dir)

    @property
    def project_dir(self) -> Path:
        base = self.workspace_root / self.project_root
        return base / self.tf_dir if self.tf_dir else base

    def terraform(self, args: list[str], *, inherit: bool = False):
        return run_terraform(args, self.project_dir, inherit=inherit, binary=self.binary)


def select_workspace(
    ctx: ExecutionContext,
    strategy: WorkspaceStrategy | str | None,
    env_name: str | None,
) -> bool:
    """Best-effort ``terraform workspace select`` for plan/apply/destroy/output.

    Returns True when a workspace was selected; failures are logged and ignored.
    """
    strategy = WorkspaceStrategy(strategy or WorkspaceStrategy.NONE)
    if strategy is WorkspaceStrategy.NONE or not env_name:
        return False
    res = ctx.terraform(["workspace", "select", env_name])
    if res.code != 0:
        logger.debug("workspace select %s failed: %s", env_name, res.stderr.strip())
        return False
    return True


def ensure_workspace(
    ctx: ExecutionContext,
    strategy: WorkspaceStrategy | str | None,
    env_name: str | None,
) -> bool:
    """Post-init workspace handling: derive creates then selects, explicit only selects."""
    strategy = WorkspaceStrategy(strategy or WorkspaceStrategy.NONE)
    if strategy is WorkspaceStrategy.NONE or not env_name:
        return False
    if strategy is WorkspaceStrategy.DERIVE:
        created = ctx.terraform(["workspace", "new", env_name])
        if created.code != 0:
            # usually "already exists"
            logger.debug("workspace new %s failed: %s", env_name, created.stderr.strip())
    return select_workspace(ctx, WorkspaceStrategy.EXPLICIT, env_name)


def resolve_var_file(
    ctx: ExecutionContext, var_file: str | None, env_name: str | None
) -> str | None:
    """Explicit var file, else ``<project_dir>/tfvars/<env>.tfvars`` when it exists."""
    if var_file:
        return var_file
    if not env_name:
        return None
    candidate = ctx.project_dir / VAR_FILE_DIR / f"{env_name}{VAR_FILE_EXT}"
    return str(candidate) if candidate.is_file() else None


def resolve_plan_path(ctx: ExecutionContext, plan_file: str) -> Path:
    p = Path(plan_file)
    return p if p.is_absolute() else ctx.workspace_root / p


def failure_text(stderr: str, fallback: str) -> str:
    text = stderr.strip()
    return text or fallback

"""Configuration models and utilities for planguard."""

from __future__ import annotations

from pathlib import Path, PurePosixPath, PureWindowsPath

# type: ignore[import-untyped]
import yaml
from pydantic import BaseModel, Field, field_validator

from .artifacts import DEFAULT_CACHE_DIR
from .executors.common import ExecutionContext, WorkspaceStrategy

DEFAULT_CONFIG_FILE = "planguard.yaml"


class TerraformConfig(BaseModel):
    """How the terraform binary is invoked."""

    binary: str = "terraform"


class FingerprintConfig(BaseModel):
    """Extra inputs folded into every fingerprint."""

    # TF_VAR_* variables are always included; list other names here.
    extra_env_vars: list[str] = Field(default_factory=list)


class ProjectConfig(BaseModel):
    """A terraform project inside the workspace."""

    root: str
    tf_dir: str | None = None
    default_env: str | None = None
    workspace_strategy: WorkspaceStrategy = WorkspaceStrategy.NONE

    @field_validator("root", "tf_dir")
    @classmethod
    def validate_relative(cls, v: str | None) -> str | None:
        """Project paths are resolved against the workspace root."""
        if v is None:
            return v
        if PurePosixPath(v).is_absolute() or PureWindowsPath(v).is_absolute():
            raise ValueError(f"Project path must be relative to the workspace root: {v}")
        return v


class AppConfig(BaseModel):
    """Application configuration settings."""

    version: str = "0.1"
    cache_dir: str = DEFAULT_CACHE_DIR.as_posix()
    terraform: TerraformConfig = Field(default_factory=TerraformConfig)
    fingerprint: FingerprintConfig = Field(default_factory=FingerprintConfig)
    projects: dict[str, ProjectConfig] = Field(default_factory=dict)

    @staticmethod
    def load(path: Path | str) -> AppConfig:
        """Load configuration from a file."""
        p = Path(path)
        data = yaml.safe_load(p.read_text()) or {}
        return AppConfig.model_validate(data)

    @staticmethod
    def load_or_default(workspace_root: Path | str, path: Path | str | None = None) -> AppConfig:
        """Load ``path`` (or ``planguard.yaml`` in the workspace) if present, else defaults."""
        p = Path(path) if path else Path(workspace_root) / DEFAULT_CONFIG_FILE
        if p.is_file():
            return AppConfig.load(p)
        if path:
            raise FileNotFoundError(f"Config file not found: {p}")
        return AppConfig()

    def save(self, path: Path | str) -> None:
        """Save configuration to a file."""
        p = Path(path)
        p.write_text(yaml.safe_dump(self.model_dump(mode="json"), sort_keys=False))

    def context_for(
        self,
        project: str,
        workspace_root: Path | str,
        project_root: str | None = None,
        tf_dir: str | None = None,
    ) -> ExecutionContext:
        """Build the execution context for ``project``.

        An explicit ``project_root``/``tf_dir`` overrides the configured one; a
        project that is neither configured nor given a root raises ``KeyError``.
        """
        cfg = self.projects.get(project)
        if cfg is None and project_root is None:
            raise KeyError(f"Unknown project: {project}")
        return ExecutionContext(
            workspace_root=Path(workspace_root),
            project_name=project,
            project_root=project_root if project_root is not None else cfg.root,
            tf_dir=tf_dir if tf_dir is not None else (cfg.tf_dir if cfg else None),
            binary=self.terraform.binary,
            cache_dir=Path(self.cache_dir),
            extra_env_vars=list(self.fingerprint.extra_env_vars),
        )

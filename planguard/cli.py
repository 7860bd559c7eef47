"""Command line entry point: resolves a project context and runs one operation."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .artifacts import PLAN_JSON_FILE, SUMMARY_FILE, discover_latest_plan
from .config import AppConfig
from .executors import (
    ApplyOptions,
    DestroyOptions,
    ExecutionContext,
    FmtOptions,
    InitOptions,
    OutputOptions,
    PlanOptions,
    ValidateOptions,
    WorkspaceStrategy,
    run_apply,
    run_destroy,
    run_fmt,
    run_init,
    run_output,
    run_plan,
    run_validate,
)
from .fingerprint import compute_fingerprint
from .logging_utils import setup_logging
from .summary import summarize_plan

app = typer.Typer(help="Fingerprinted, staleness-gated terraform plan/apply")

ProjectOpt = typer.Option(..., "--project", "-p", help="Project name")
EnvOpt = typer.Option(None, "--env", "-e", help="Environment label (e.g., dev)")
RootOpt = typer.Option(Path("."), "--root", help="Workspace root")
ProjectRootOpt = typer.Option(
    None, "--project-root", help="Project directory relative to the workspace root"
)
TfDirOpt = typer.Option(None, "--tf-dir", help="Terraform subdirectory inside the project")
ConfigOpt = typer.Option(None, "--config", help="Path to planguard.yaml")
StrategyOpt = typer.Option(None, "--workspace-strategy", help="derive | explicit | none")


@app.callback()
def main(
    log_level: str = typer.Option("INFO", help="Logging level"),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log records"),
):
    """Configure logging before any command runs."""
    setup_logging(log_level, json=json_logs)


def _resolve(
    project: str,
    env: Optional[str],
    root: Path,
    project_root: Optional[str],
    tf_dir: Optional[str],
    config: Optional[Path],
    strategy: Optional[WorkspaceStrategy],
) -> tuple[ExecutionContext, Optional[str], WorkspaceStrategy]:
    try:
        cfg = AppConfig.load_or_default(root, config)
    except FileNotFoundError as e:
        raise typer.BadParameter(str(e)) from e
    try:
        ctx = cfg.context_for(project, root.resolve(), project_root, tf_dir)
    except KeyError as e:
        raise typer.BadParameter(
            f"Unknown project: {project} (configure it or pass --project-root)"
        ) from e
    if not ctx.project_dir.is_dir():
        raise typer.BadParameter(f"Project directory not found: {ctx.project_dir}")
    pcfg = cfg.projects.get(project)
    env = env or (pcfg.default_env if pcfg else None)
    strategy = strategy or (pcfg.workspace_strategy if pcfg else WorkspaceStrategy.NONE)
    return ctx, env, strategy


def _finish(success: bool, error: Optional[str] = None) -> None:
    if not success:
        if error:
            print(f"[red]{escape(error)}")
        raise typer.Exit(code=1)


@app.command("plan", help="Produce and cache a plan keyed by the input fingerprint")
def plan_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    var_file: Optional[str] = typer.Option(None, help="Explicit -var-file"),
    plan_file: Optional[str] = typer.Option(
        None, help="Write the plan here instead of the artifact directory"
    ),
    detailed_exit_code: bool = typer.Option(True, help="Pass -detailed-exitcode"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_plan(
        ctx,
        PlanOptions(
            env=env,
            workspace_strategy=strategy,
            var_file=var_file,
            plan_file=plan_file,
            detailed_exit_code=detailed_exit_code,
        ),
    )
    if res.success:
        state = "changes present" if res.changed else "no changes"
        print(f"[green]Plan {res.hash} ({state}) -> {res.artifact_dir}")
    _finish(res.success, res.error)


@app.command("apply", help="Apply the latest plan if its inputs are unchanged")
def apply_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    plan_file: Optional[str] = typer.Option(None, help="Explicit plan file to apply"),
    force: bool = typer.Option(False, "--force", help="Apply even if the plan is stale"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_apply(
        ctx,
        ApplyOptions(env=env, workspace_strategy=strategy, plan_file=plan_file, force=force),
    )
    if res.success:
        note = " [yellow](stale, forced)" if res.stale else ""
        print(f"[green]Applied plan {res.applied_hash}{note}")
    _finish(res.success, res.error)


@app.command("destroy", help="Destroy resources; warns when inputs drifted from the last plan")
def destroy_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    var_file: Optional[str] = typer.Option(None, help="Explicit -var-file"),
    force: bool = typer.Option(False, "--force", help="Acknowledge drift warnings"),
    audit: bool = typer.Option(False, "--audit", help="Record the outcome in the artifact store"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_destroy(
        ctx,
        DestroyOptions(
            env=env, workspace_strategy=strategy, var_file=var_file, force=force, audit=audit
        ),
    )
    for w in res.warnings:
        print(f"[yellow]{escape(w)}")
    if res.success:
        print(f"[green]Destroyed {project} ({env or 'default'})")
    _finish(res.success, res.error)


@app.command("output", help="Write outputs.json and a masked outputs.env")
def output_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    allow_sensitive: bool = typer.Option(
        False, "--allow-sensitive", help="Write sensitive values in plaintext"
    ),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_output(
        ctx,
        OutputOptions(env=env, workspace_strategy=strategy, allow_sensitive=allow_sensitive),
    )
    if res.success:
        print(f"[green]Wrote {res.outputs_json_path} and {res.outputs_env_path}")
        if res.sensitive_count:
            print(f"[yellow]{res.sensitive_count} sensitive output(s) masked")
    _finish(res.success, res.error)


@app.command("fmt", help="Format (or check formatting of) terraform files")
def fmt_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    check: bool = typer.Option(False, "--check", help="Only report files needing formatting"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_fmt(ctx, FmtOptions(env=env, workspace_strategy=strategy, check=check))
    for f in res.changed_files:
        print(f"  {f}")
    if res.needs_formatting:
        print(f"[yellow]{res.changed_count} file(s) need formatting")
    _finish(res.success, res.error)


@app.command("validate", help="Run terraform validate")
def validate_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    no_init: bool = typer.Option(False, "--no-init", help="Skip the backend-less init"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_validate(ctx, ValidateOptions(env=env, workspace_strategy=strategy, no_init=no_init))
    if res.success:
        print(f"[green]{project} is valid")
    _finish(res.success, res.error)


@app.command("init", help="Run terraform init and set up the workspace")
def init_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    workspace_strategy: Optional[WorkspaceStrategy] = StrategyOpt,
    reconfigure: bool = typer.Option(False, "--reconfigure"),
    backend_config: Optional[list[str]] = typer.Option(None, "--backend-config"),
):
    ctx, env, strategy = _resolve(
        project, env, root, project_root, tf_dir, config, workspace_strategy
    )
    res = run_init(
        ctx,
        InitOptions(
            env=env,
            workspace_strategy=strategy,
            reconfigure=reconfigure,
            backend_config=list(backend_config or []),
        ),
    )
    if res.success:
        print(f"[green]Initialized {res.working_directory}")
    _finish(res.success, res.error)


@app.command("fingerprint", help="Print the current input fingerprint")
def fingerprint_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
    show_files: bool = typer.Option(False, "--files", help="List fingerprinted files"),
):
    ctx, env, _ = _resolve(project, env, root, project_root, tf_dir, config, None)
    fp = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
    typer.echo(fp.hash)
    if show_files:
        for f in fp.files:
            typer.echo(f"  {f}")


@app.command("show-plan", help="Summarize the latest cached plan")
def show_plan_cmd(
    project: str = ProjectOpt,
    env: Optional[str] = EnvOpt,
    root: Path = RootOpt,
    project_root: Optional[str] = ProjectRootOpt,
    tf_dir: Optional[str] = TfDirOpt,
    config: Optional[Path] = ConfigOpt,
):
    ctx, env, _ = _resolve(project, env, root, project_root, tf_dir, config, None)
    latest = discover_latest_plan(ctx.workspace_root, ctx.project_name, env, ctx.cache_dir)
    if latest is None:
        _finish(False, "No prior plan artifact found. Generate a plan first.")
        return
    summary_path = latest.artifact_dir / SUMMARY_FILE
    plan_json_path = latest.artifact_dir / PLAN_JSON_FILE
    if summary_path.is_file():
        data = json.loads(summary_path.read_text(encoding="utf-8"))
    elif plan_json_path.is_file():
        data = summarize_plan(json.loads(plan_json_path.read_text(encoding="utf-8"))).to_dict()
    else:
        _finish(False, f"No summary stored in {latest.artifact_dir}")
        return

    current = compute_fingerprint(ctx.project_dir, env, extra_env_vars=ctx.extra_env_vars)
    planned = latest.meta.hash if latest.meta else latest.artifact_dir.name
    freshness = "[green]fresh" if planned == current.hash else "[yellow]stale"
    print(f"[cyan]Plan {planned} ({freshness}[cyan])")

    actions = data.get("actions", {})
    table = Table("address", "actions", "type")
    for change in data.get("changes", []):
        table.add_row(
            change.get("address", ""),
            ",".join(change.get("actions", [])),
            change.get("type") or "",
        )
    Console().print(table)
    print(
        f"create={actions.get('create', 0)} update={actions.get('update', 0)} "
        f"replace={actions.get('replace', 0)} delete={actions.get('delete', 0)}"
    )
    if data.get("sensitiveOutputs"):
        print(f"[yellow]Sensitive outputs: {', '.join(data['sensitiveOutputs'])}")


if __name__ == "__main__":
    app()

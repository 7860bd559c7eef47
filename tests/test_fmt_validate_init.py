"""Tests for the fmt, validate and init wrappers."""

from planguard.executors import (
    FmtOptions,
    InitOptions,
    ValidateOptions,
    WorkspaceStrategy,
    run_fmt,
    run_init,
    run_validate,
)


def test_fmt_write_mode(ctx, fake_tf):
    fake_tf.stdout["fmt"] = "main.tf\n"
    res = run_fmt(ctx)
    assert res.success
    assert res.changed_files == ["main.tf"]
    assert fake_tf.find("fmt") == [["fmt", "-recursive", "-list=true", "-write=true"]]


def test_fmt_check_reports_unformatted_files(ctx, fake_tf):
    fake_tf.codes["fmt"] = 3
    fake_tf.stdout["fmt"] = f"{ctx.project_dir / 'modules' / 'vpc' / 'main.tf'}\nmain.tf\n"
    res = run_fmt(ctx, FmtOptions(check=True))
    assert not res.success
    assert res.needs_formatting
    assert res.changed_files == ["modules/vpc/main.tf", "main.tf"]
    assert res.changed_count == 2
    assert "-check" in fake_tf.find("fmt")[0]
    assert "-write=false" in fake_tf.find("fmt")[0]


def test_fmt_check_clean(ctx, fake_tf):
    res = run_fmt(ctx, FmtOptions(check=True))
    assert res.success
    assert not res.needs_formatting
    assert res.changed_count == 0


def test_fmt_error(ctx, fake_tf):
    fake_tf.codes["fmt"] = 2
    fake_tf.stderr["fmt"] = "Error: Invalid character"
    res = run_fmt(ctx)
    assert not res.success
    assert not res.needs_formatting
    assert res.error == "Error: Invalid character"


def test_validate_runs_backendless_init_first(ctx, fake_tf):
    res = run_validate(ctx)
    assert res.success
    assert fake_tf.calls == [["init", "-backend=false"], ["validate"]]


def test_validate_aborts_when_init_fails(ctx, fake_tf):
    fake_tf.codes["init"] = 1
    res = run_validate(ctx)
    assert not res.success
    assert "init" in res.error
    assert "validate" not in fake_tf.commands()


def test_validate_without_init(ctx, fake_tf):
    fake_tf.codes["validate"] = 1
    fake_tf.stderr["validate"] = "Error: Missing required argument"
    res = run_validate(ctx, ValidateOptions(no_init=True))
    assert not res.success
    assert res.error == "Error: Missing required argument"
    assert fake_tf.commands() == ["validate"]


def test_init_passes_flags(ctx, fake_tf):
    res = run_init(
        ctx,
        InitOptions(reconfigure=True, backend_config=["bucket=state", "key=network.tfstate"]),
    )
    assert res.success
    assert res.working_directory == ctx.project_dir
    assert not res.workspace_selected
    assert fake_tf.calls == [
        [
            "init",
            "-input=false",
            "-reconfigure",
            "-backend-config=bucket=state",
            "-backend-config=key=network.tfstate",
        ]
    ]


def test_init_derive_creates_then_selects(ctx, fake_tf):
    res = run_init(ctx, InitOptions(env="dev", workspace_strategy=WorkspaceStrategy.DERIVE))
    assert res.workspace_selected
    assert fake_tf.calls[1:] == [["workspace", "new", "dev"], ["workspace", "select", "dev"]]


def test_init_derive_tolerates_existing_workspace(ctx, fake_tf, monkeypatch):
    def scripted(args, cwd, *, inherit=False, binary="terraform"):
        result = fake_tf(args, cwd, inherit=inherit, binary=binary)
        if args[:2] == ["workspace", "new"]:
            result.code = 1
            result.stderr = 'Workspace "dev" already exists'
        return result

    monkeypatch.setattr("planguard.executors.common.run_terraform", scripted)
    res = run_init(ctx, InitOptions(env="dev", workspace_strategy="derive"))
    assert res.success
    assert res.workspace_selected
    assert fake_tf.calls[-1] == ["workspace", "select", "dev"]


def test_init_explicit_only_selects(ctx, fake_tf):
    run_init(ctx, InitOptions(env="dev", workspace_strategy=WorkspaceStrategy.EXPLICIT))
    assert fake_tf.calls[1:] == [["workspace", "select", "dev"]]


def test_init_failure_skips_workspace(ctx, fake_tf):
    fake_tf.codes["init"] = 1
    res = run_init(ctx, InitOptions(env="dev", workspace_strategy="derive"))
    assert not res.success
    assert fake_tf.commands() == ["init"]

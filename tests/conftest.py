"""Shared fixtures: a scripted stand-in for the terraform binary and a sample workspace."""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from planguard.executors.common import ExecutionContext
from planguard.runner import RunCommandResult

SAMPLE_PLAN = {
    "format_version": "1.2",
    "resource_changes": [
        {
            "address": "null_resource.example",
            "type": "null_resource",
            "change": {"actions": ["create"]},
        },
        {
            "address": "aws_eip.ip",
            "type": "aws_eip",
            "change": {"actions": ["delete", "create"]},
        },
    ],
    "planned_values": {
        "outputs": {
            "kubeconfig": {"sensitive": True},
            "cluster_name": {"sensitive": False},
        }
    },
}

SAMPLE_OUTPUTS = {
    "visible_value": {"value": "hello", "sensitive": False, "type": "string"},
    "secret_token": {"value": "shhh", "sensitive": True, "type": "string"},
}


class FakeTerraform:
    """Records every invocation and answers with scripted results per subcommand."""

    def __init__(self) -> None:
        self.calls: list[list[str]] = []
        self.cwds: list[Path] = []
        self.codes: dict[str, int] = {}
        self.stdout: dict[str, str] = {
            "show": json.dumps(SAMPLE_PLAN),
            "output": json.dumps(SAMPLE_OUTPUTS),
            "version": "Terraform v1.6.6\non linux_amd64\n",
        }
        self.stderr: dict[str, str] = {}
        self.codes["plan"] = 2

    def __call__(self, args, cwd, *, inherit=False, binary="terraform") -> RunCommandResult:
        args = list(args)
        self.calls.append(args)
        self.cwds.append(Path(cwd))
        cmd = args[0]
        if cmd == "plan" and "-out" in args:
            out = Path(args[args.index("-out") + 1])
            out.write_bytes(b"fake-plan")
        return RunCommandResult(
            code=self.codes.get(cmd, 0),
            signal=None,
            stdout=self.stdout.get(cmd, ""),
            stderr=self.stderr.get(cmd, ""),
        )

    def commands(self) -> list[str]:
        return [c[0] for c in self.calls]

    def find(self, cmd: str) -> list[list[str]]:
        return [c for c in self.calls if c[0] == cmd]


@pytest.fixture(autouse=True)
def clean_tf_vars(monkeypatch):
    """Keep the caller's TF_VAR_* variables out of fingerprints."""
    for name in list(os.environ):
        if name.startswith("TF_VAR_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_tf(monkeypatch):
    fake = FakeTerraform()
    monkeypatch.setattr("planguard.executors.common.run_terraform", fake)
    return fake


@pytest.fixture
def workspace(tmp_path):
    """Workspace root with one project at ``infra/network`` holding a single main.tf."""
    project_dir = tmp_path / "infra" / "network"
    project_dir.mkdir(parents=True)
    (project_dir / "main.tf").write_text('resource "null_resource" "example" {}\n')
    return tmp_path


@pytest.fixture
def ctx(workspace):
    return ExecutionContext(
        workspace_root=workspace,
        project_name="network",
        project_root="infra/network",
    )

"""Tests for output extraction and masking."""

import json

from planguard.artifacts import OUTPUTS_ENV_FILE, OUTPUTS_JSON_FILE
from planguard.executors import OutputOptions, PlanOptions, run_output, run_plan
from planguard.executors.output import SENSITIVE_MASK, format_value, render_env_lines


def test_masks_sensitive_values_by_default(ctx, fake_tf):
    res = run_output(ctx, OutputOptions(env="dev"))
    assert res.success
    data = json.loads(res.outputs_json_path.read_text())
    assert data["visible_value"]["value"] == "hello"
    assert data["secret_token"]["value"] == "shhh"
    env = res.outputs_env_path.read_text()
    assert "visible_value=hello" in env.splitlines()
    assert f"secret_token={SENSITIVE_MASK}" in env.splitlines()
    assert "shhh" not in env
    assert res.sensitive_count == 1


def test_allow_sensitive(ctx, fake_tf):
    res = run_output(ctx, OutputOptions(env="dev", allow_sensitive=True))
    assert "secret_token=shhh" in res.outputs_env_path.read_text().splitlines()
    assert res.sensitive_count == 0


def test_outputs_live_beside_latest_plan(ctx, fake_tf):
    planned = run_plan(ctx, PlanOptions(env="dev"))
    res = run_output(ctx, OutputOptions(env="dev"))
    assert res.artifact_dir == planned.artifact_dir
    assert res.hash == planned.hash
    assert res.outputs_json_path == planned.artifact_dir / OUTPUTS_JSON_FILE


def test_without_plan_uses_fingerprint_dir(ctx, fake_tf):
    res = run_output(ctx, OutputOptions(env="dev"))
    assert res.artifact_dir.name == res.hash
    assert res.artifact_dir.is_dir()


def test_unparsable_output_writes_nothing(ctx, fake_tf):
    fake_tf.stdout["output"] = "{oops"
    res = run_output(ctx, OutputOptions(env="dev"))
    assert not res.success
    assert "Failed to parse" in res.error
    assert not (res.artifact_dir / OUTPUTS_JSON_FILE).exists()
    assert not (res.artifact_dir / OUTPUTS_ENV_FILE).exists()


def test_non_object_output_is_rejected(ctx, fake_tf):
    fake_tf.stdout["output"] = "[1, 2]"
    res = run_output(ctx, OutputOptions(env="dev"))
    assert not res.success
    assert not (res.artifact_dir / OUTPUTS_JSON_FILE).exists()


def test_output_command_failure(ctx, fake_tf):
    fake_tf.codes["output"] = 1
    fake_tf.stderr["output"] = "Error: No state"
    res = run_output(ctx, OutputOptions(env="dev"))
    assert not res.success
    assert res.error == "Error: No state"


def test_render_env_lines_formats_values():
    outputs = {
        "a": {"value": "x", "sensitive": False},
        "b": {"value": "y", "sensitive": True},
        "tags": {"value": {"env": "dev", "team": "core"}},
        "ports": {"value": [80, 443]},
        "enabled": {"value": True},
        "count": {"value": 3},
        "nothing": {"value": None},
    }
    lines, masked = render_env_lines(outputs)
    assert lines == [
        "a=x",
        f"b={SENSITIVE_MASK}",
        'tags={"env":"dev","team":"core"}',
        "ports=[80,443]",
        "enabled=true",
        "count=3",
        "nothing=null",
    ]
    assert masked == 1


def test_format_value_keeps_strings_verbatim():
    assert format_value('has "quotes"') == 'has "quotes"'


def test_multiline_strings_stay_on_one_line():
    outputs = {"cert": {"value": "line1\nsecret_token=spoof", "sensitive": False}}
    lines, _ = render_env_lines(outputs)
    assert lines == ['cert="line1\\nsecret_token=spoof"']

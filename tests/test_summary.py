"""Tests for plan summarization."""

from planguard.summary import summarize_plan

SAMPLE_PLAN = {
    "resource_changes": [
        {
            "address": "aws_instance.node[0]",
            "type": "aws_instance",
            "change": {"actions": ["create"]},
        },
        {
            "address": "aws_security_group.sg",
            "type": "aws_security_group",
            "change": {"actions": ["update"]},
        },
        {
            "address": "aws_eip.ip",
            "type": "aws_eip",
            "change": {"actions": ["delete", "create"]},
        },
        {
            "address": "aws_s3_bucket.logs",
            "type": "aws_s3_bucket",
            "change": {"actions": ["delete"]},
        },
    ],
    "planned_values": {
        "outputs": {
            "kubeconfig": {"sensitive": True},
            "cluster_name": {"sensitive": False},
        }
    },
}


def test_counts_and_sensitive_outputs():
    summary = summarize_plan(SAMPLE_PLAN)
    assert summary.actions.create == 1
    assert summary.actions.update == 1
    assert summary.actions.replace == 1
    assert summary.actions.delete == 1
    assert summary.sensitive_outputs == ["kubeconfig"]
    assert [c.address for c in summary.changes] == [
        "aws_instance.node[0]",
        "aws_security_group.sg",
        "aws_eip.ip",
        "aws_s3_bucket.logs",
    ]


def test_create_before_destroy_is_a_replace():
    summary = summarize_plan(
        {"resource_changes": [{"address": "a.b", "change": {"actions": ["create", "delete"]}}]}
    )
    assert summary.actions.replace == 1
    assert summary.actions.create == 0
    assert summary.actions.delete == 0


def test_noop_is_listed_but_not_counted():
    summary = summarize_plan(
        {"resource_changes": [{"address": "a.b", "type": "x", "change": {"actions": ["no-op"]}}]}
    )
    assert summary.actions.total == 0
    assert summary.changes[0].actions == ["no-op"]


def test_missing_sections_degrade_to_empty():
    for doc in (None, {}, {"resource_changes": None}, {"planned_values": {}}, []):
        summary = summarize_plan(doc)
        assert summary.actions.total == 0
        assert summary.changes == []
        assert summary.sensitive_outputs == []


def test_change_without_actions_or_type():
    summary = summarize_plan({"resource_changes": [{"address": "a.b"}]})
    assert summary.actions.total == 0
    assert summary.changes[0].actions == []
    assert summary.changes[0].type is None


def test_to_dict_document_shape():
    summary = summarize_plan(SAMPLE_PLAN)
    summary.project = "network"
    summary.environment = "dev"
    data = summary.to_dict()
    assert data["project"] == "network"
    assert data["environment"] == "dev"
    assert data["actions"] == {"create": 1, "update": 1, "delete": 1, "replace": 1}
    assert data["changes"][2] == {
        "address": "aws_eip.ip",
        "actions": ["delete", "create"],
        "type": "aws_eip",
    }
    assert data["sensitiveOutputs"] == ["kubeconfig"]

    untyped = summarize_plan({"resource_changes": [{"address": "a.b"}]}).to_dict()
    assert "project" not in untyped
    assert untyped["changes"] == [{"address": "a.b", "actions": []}]

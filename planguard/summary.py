"""Summaries of ``terraform show -json`` plan documents."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class ActionCounts:
    create: int = 0
    update: int = 0
    delete: int = 0
    replace: int = 0

    @property
    def total(self) -> int:
        return self.create + self.update + self.delete + self.replace


@dataclass
class PlanChange:
    """One resource change as listed in the plan."""

    address: str
    actions: list[str]
    type: str | None = None


@dataclass
class PlanSummary:
    """Action counts, per-resource changes and sensitive output names of a plan."""

    actions: ActionCounts = field(default_factory=ActionCounts)
    changes: list[PlanChange] = field(default_factory=list)
    sensitive_outputs: list[str] = field(default_factory=list)
    project: str | None = None
    environment: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.project is not None:
            out["project"] = self.project
        if self.environment is not None:
            out["environment"] = self.environment
        out["actions"] = asdict(self.actions)
        out["changes"] = [
            {k: v for k, v in asdict(c).items() if v is not None} for c in self.changes
        ]
        out["sensitiveOutputs"] = list(self.sensitive_outputs)
        return out


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def summarize_plan(plan_json: Any) -> PlanSummary:
    """Count create/update/delete/replace actions and collect sensitive outputs.

    A change carrying both ``delete`` and ``create`` counts once as a replace.
    Missing sections yield zero counts rather than errors.
    """
    plan = _as_dict(plan_json)
    resource_changes = plan.get("resource_changes")
    if not isinstance(resource_changes, list):
        resource_changes = []

    summary = PlanSummary()
    counts = summary.actions
    for rc in resource_changes:
        rc = _as_dict(rc)
        acts = _as_dict(rc.get("change")).get("actions")
        acts = [str(a) for a in acts] if isinstance(acts, list) else []
        if "create" in acts and "delete" in acts:
            counts.replace += 1
        elif "create" in acts:
            counts.create += 1
        elif "delete" in acts:
            counts.delete += 1
        elif "update" in acts:
            counts.update += 1
        summary.changes.append(
            PlanChange(address=str(rc.get("address", "")), actions=acts, type=rc.get("type"))
        )

    outputs = _as_dict(_as_dict(plan.get("planned_values")).get("outputs"))
    summary.sensitive_outputs = [
        name for name, out in outputs.items() if _as_dict(out).get("sensitive")
    ]
    return summary

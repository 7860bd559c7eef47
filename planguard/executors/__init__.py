"""Terraform operations for planguard.

Each operation takes an ``ExecutionContext`` plus its options dataclass and
returns a result dataclass; expected failures are reported through
``result.success`` rather than raised:
- plan (fingerprinted, cached plan artifacts)
- apply (refuses stale plans unless forced)
- destroy (warns on drift, never blocks)
- output (JSON plus masked env rendering)
- fmt, validate, init
"""

from .apply import ApplyOptions, ApplyResult, run_apply
from .common import ExecutionContext, WorkspaceStrategy
from .destroy import DestroyOptions, DestroyResult, run_destroy
from .fmt import FmtOptions, FmtResult, run_fmt
from .init import InitOptions, InitResult, run_init
from .output import OutputOptions, OutputResult, run_output
from .plan import PlanOptions, PlanResult, run_plan
from .validate import ValidateOptions, ValidateResult, run_validate

__all__ = [
    "ExecutionContext",
    "WorkspaceStrategy",
    "PlanOptions",
    "PlanResult",
    "run_plan",
    "ApplyOptions",
    "ApplyResult",
    "run_apply",
    "DestroyOptions",
    "DestroyResult",
    "run_destroy",
    "OutputOptions",
    "OutputResult",
    "run_output",
    "FmtOptions",
    "FmtResult",
    "run_fmt",
    "ValidateOptions",
    "ValidateResult",
    "run_validate",
    "InitOptions",
    "InitResult",
    "run_init",
]

"""
Workflows Module
================

Multi-step patterns built on a Context:
- Workflow: abstract base with run() / run_sync()
- EvaluatorWorkflow: generate, evaluate and refine until accepted
"""

from agentcore.workflows.base import Workflow
from agentcore.workflows.evaluator import (
    Evaluation,
    EvaluatorWorkflow,
    IterationRecord,
    WorkflowResult,
    WorkflowState,
    WorkflowStatus,
    parse_evaluation,
    render_template,
)

__all__ = [
    "Workflow",
    "Evaluation",
    "EvaluatorWorkflow",
    "IterationRecord",
    "WorkflowResult",
    "WorkflowState",
    "WorkflowStatus",
    "parse_evaluation",
    "render_template",
]

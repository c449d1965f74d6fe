"""
Evaluator / Optimizer Workflow
==============================

One step generates a response, another scores it and explains what to
improve, and the two alternate until the score is good enough or the
iteration budget runs out.

State Machine:
    GENERATING ──► EVALUATING ──┬── score >= threshold ──────────► ACCEPTED
         ▲                      │
         └── iterations left ◄──┤
                                └── budget spent ────────────────► EXHAUSTED

Exhaustion is not an error: the best-scoring output is returned with
accepted=False (the earliest iteration wins a tie) and the caller decides.

Both steps are pluggable:
    optimizer(input, feedback) -> str
    evaluator(input, output)   -> Evaluation | {"score", "feedback"} | float

Either may be a plain function or a coroutine function. The defaults ask
the model through forks of the workflow's Context, so the caller's
history never sees the intermediate prompts.

Example:
    workflow = EvaluatorWorkflow(context, criteria=["Cites a source"])
    result = await workflow.run("Explain why the sky is blue")
    print(result.output, result.score, result.accepted)
"""

import inspect
import json
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Sequence

from agentcore.agent.context import Context
from agentcore.errors import TransportError
from agentcore.utils.config import get_config
from agentcore.utils.logger import Logger
from agentcore.workflows.base import Workflow

logger = Logger("EvaluatorWorkflow")

Optimizer = Callable[[str, dict], "str | Awaitable[str]"]
Evaluator = Callable[[str, str], Any]


# =============================================================================
# Prompt templates
# =============================================================================

DEFAULT_OPTIMIZER_PROMPT = """Complete the following task as well as you can.

Task:
{input}
{feedback}"""

DEFAULT_EVALUATOR_PROMPT = """Task:
{input}

Response to evaluate:
{output}

Evaluation criteria:
{criteria}"""

EVALUATOR_SYSTEM_PROMPT = """You are a strict evaluator of responses to tasks.

Judge the response against these criteria:
{criteria}

Reply with only a JSON object of the form
{"score": <number from 0.0 to 1.0>, "feedback": "<concrete improvements>"}
where 1.0 means the response fully meets every criterion."""


def render_template(template: str, **values: Any) -> str:
    """
    Substitute {name} placeholders.

    Unknown placeholders and other braces are left alone, so templates can
    contain literal JSON.
    """
    rendered = template
    for key, value in values.items():
        rendered = rendered.replace("{" + key + "}", str(value))
    return rendered


def _format_feedback(feedback: Mapping[str, Any]) -> str:
    if not feedback:
        return ""
    return (
        "\nYour previous attempt:\n"
        f"{feedback.get('output', '')}\n\n"
        f"It scored {feedback.get('score', 0.0):.2f}. Reviewer feedback:\n"
        f"{feedback.get('feedback', '')}\n\n"
        "Write an improved response that addresses the feedback."
    )


# =============================================================================
# Evaluation and state
# =============================================================================

@dataclass
class Evaluation:
    """
    A score for one output.

    Attributes:
        score: Quality from 0.0 to 1.0 (clamped)
        feedback: What to improve
        raw: The evaluator's original reply
    """
    score: float
    feedback: str = ""
    raw: Any = None

    def __post_init__(self):
        score = float(self.score)
        if math.isnan(score):
            score = 0.0
        self.score = min(1.0, max(0.0, score))

    @classmethod
    def from_value(cls, value: Any) -> "Evaluation":
        """
        Accept whatever an evaluator returned.

        Handles Evaluation instances, mappings with score/feedback, bare
        numbers and model reply text.

        Raises:
            TypeError: For any other type
        """
        if isinstance(value, Evaluation):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return cls(score=float(value), raw=value)
        if isinstance(value, Mapping):
            try:
                score = float(value.get("score", 0.0))
            except (TypeError, ValueError):
                logger.warning(f"Unusable score in evaluation: {value.get('score')!r}")
                score = 0.0
            feedback = value.get("feedback", "")
            if not isinstance(feedback, str):
                feedback = json.dumps(feedback, default=str)
            return cls(score=score, feedback=feedback, raw=dict(value))
        if isinstance(value, str):
            return parse_evaluation(value)
        raise TypeError(f"Evaluator returned unsupported type: {type(value).__name__}")

    def to_dict(self) -> dict:
        return {"score": self.score, "feedback": self.feedback}


def parse_evaluation(reply: str) -> Evaluation:
    """
    Parse an evaluator reply leniently.

    Uses the first JSON object in the text that has a score. A reply with
    no such object scores 0.0 and becomes the feedback itself.
    """
    decoder = json.JSONDecoder()
    start = reply.find("{")
    while start != -1:
        try:
            obj, _ = decoder.raw_decode(reply, start)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict) and "score" in obj:
            evaluation = Evaluation.from_value(obj)
            evaluation.raw = reply
            return evaluation
        start = reply.find("{", start + 1)

    logger.warning("Evaluator reply had no JSON score; scoring 0")
    return Evaluation(score=0.0, feedback=reply.strip(), raw=reply)


class WorkflowStatus(str, Enum):
    GENERATING = "generating"
    EVALUATING = "evaluating"
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"


@dataclass
class IterationRecord:
    iteration: int
    output: str
    score: float
    feedback: str

    def to_dict(self) -> dict:
        return {
            "iteration": self.iteration,
            "output": self.output,
            "score": self.score,
            "feedback": self.feedback,
        }


@dataclass
class WorkflowState:
    """
    Mutable state of one run. Only the engine writes to it.

    Attributes:
        iteration: Current cycle, starting at 1
        current_output: Output of the current cycle
        feedback: Latest evaluation, fed to the next generation
        accepted: Whether an output met the threshold
        status: Where the state machine is
        best_output: Highest-scoring output so far
        best_score: Its score (-1.0 before the first evaluation)
        best_iteration: The cycle that produced it
        history: One record per completed cycle
    """
    iteration: int = 0
    current_output: str = ""
    feedback: dict = field(default_factory=dict)
    accepted: bool = False
    status: WorkflowStatus = WorkflowStatus.GENERATING
    best_output: str = ""
    best_score: float = -1.0
    best_iteration: int = 0
    history: list[IterationRecord] = field(default_factory=list)

    def record(self, output: str, evaluation: Evaluation) -> None:
        self.history.append(
            IterationRecord(
                iteration=self.iteration,
                output=output,
                score=evaluation.score,
                feedback=evaluation.feedback,
            )
        )
        # Strictly greater keeps the earliest output on ties
        if evaluation.score > self.best_score:
            self.best_output = output
            self.best_score = evaluation.score
            self.best_iteration = self.iteration


@dataclass
class WorkflowResult:
    """
    Outcome of a run.

    Attributes:
        output: The accepted output, or the best one on exhaustion
        accepted: Whether the output met the threshold
        status: ACCEPTED or EXHAUSTED
        iterations: Cycles performed
        score: Score of the returned output
        best_iteration: Cycle that produced the returned output
        history: One record per cycle
    """
    output: str
    accepted: bool
    status: WorkflowStatus
    iterations: int
    score: float
    best_iteration: int
    history: list[IterationRecord] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "output": self.output,
            "accepted": self.accepted,
            "status": self.status.value,
            "iterations": self.iterations,
            "score": self.score,
            "best_iteration": self.best_iteration,
            "history": [record.to_dict() for record in self.history],
        }


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


# =============================================================================
# Workflow
# =============================================================================

class EvaluatorWorkflow(Workflow):
    """
    Generate, evaluate and refine until the output is good enough.

    The loop is strictly sequential: each generation depends on the
    previous evaluation.
    """

    def __init__(
        self,
        context: Context,
        optimizer_prompt_template: str | None = None,
        evaluator_prompt_template: str | None = None,
        *,
        criteria: Sequence[str] | None = None,
        max_iterations: int | None = None,
        improvement_threshold: float | None = None,
        optimizer: Optimizer | None = None,
        evaluator: Evaluator | None = None,
        evaluator_context: Context | None = None
    ):
        """
        Initialize the workflow.

        Args:
            context: Context used by the default optimizer (and evaluator)
            optimizer_prompt_template: Template with {input} and {feedback}
            evaluator_prompt_template: Template with {input}, {output}
                and {criteria}
            criteria: What the evaluator judges
            max_iterations: Generate/evaluate cycle budget (default from config)
            improvement_threshold: Minimum score to accept (default from config)
            optimizer: Replaces the model-driven generation step
            evaluator: Replaces the model-driven evaluation step
            evaluator_context: Separate Context for the default evaluator
        """
        super().__init__(context)
        config = get_config().workflow

        self.optimizer_prompt_template = optimizer_prompt_template or DEFAULT_OPTIMIZER_PROMPT
        self.evaluator_prompt_template = evaluator_prompt_template or DEFAULT_EVALUATOR_PROMPT
        self.criteria: list[str] = list(criteria or [])
        self.evaluator_context = evaluator_context

        self.max_iterations = config.max_iterations
        self.improvement_threshold = config.improvement_threshold
        if max_iterations is not None:
            self.set_max_iterations(max_iterations)
        if improvement_threshold is not None:
            self.set_improvement_threshold(improvement_threshold)

        self._optimizer: Optimizer = optimizer or self.default_optimizer
        self._evaluator: Evaluator = evaluator or self.default_evaluator

    # ==========================================================================
    # Configuration
    # ==========================================================================

    def set_evaluation_criteria(self, criteria: Sequence[str]) -> None:
        self.criteria = list(criteria)

    def set_max_iterations(self, max_iterations: int) -> None:
        """
        Raises:
            ValueError: If max_iterations is below 1
        """
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be at least 1, got {max_iterations}")
        self.max_iterations = max_iterations

    def set_improvement_threshold(self, threshold: float) -> None:
        """
        Raises:
            ValueError: If threshold is outside [0, 1]
        """
        if not 0.0 <= threshold <= 1.0:
            raise ValueError(f"improvement_threshold must be within [0, 1], got {threshold}")
        self.improvement_threshold = threshold

    def set_minimum_acceptable_score(self, threshold: float) -> None:
        self.set_improvement_threshold(threshold)

    def set_optimizer_prompt_template(self, template: str) -> None:
        self.optimizer_prompt_template = template

    def set_evaluator_prompt_template(self, template: str) -> None:
        self.evaluator_prompt_template = template

    # Shorter names for the template setters
    set_optimizer_prompt = set_optimizer_prompt_template
    set_evaluator_prompt = set_evaluator_prompt_template

    def set_optimizer(self, optimizer: Optimizer | None) -> None:
        """Replace the generation step; None restores the default."""
        self._optimizer = optimizer or self.default_optimizer

    def set_evaluator(self, evaluator: Evaluator | None) -> None:
        """Replace the evaluation step; None restores the default."""
        self._evaluator = evaluator or self.default_evaluator

    # ==========================================================================
    # Default steps
    # ==========================================================================

    def _criteria_text(self) -> str:
        if not self.criteria:
            return "- Overall quality and correctness"
        return "\n".join(f"- {criterion}" for criterion in self.criteria)

    def evaluator_system_prompt(self) -> str:
        return render_template(EVALUATOR_SYSTEM_PROMPT, criteria=self._criteria_text())

    async def default_optimizer(self, input: str, feedback: dict) -> str:
        """Ask the model for a (revised) response on a fork of the context."""
        prompt = render_template(
            self.optimizer_prompt_template,
            input=input,
            feedback=_format_feedback(feedback),
            output=feedback.get("output", ""),
            criteria=self._criteria_text(),
        )
        response = await self.context.fork().chat(prompt)
        if not response.success:
            raise TransportError(f"Optimizer call failed: {response.error}", response.status_code)
        return response.content

    async def default_evaluator(self, input: str, output: str) -> Evaluation:
        """Ask the model to score an output as JSON on a fork of the context."""
        prompt = render_template(
            self.evaluator_prompt_template,
            input=input,
            output=output,
            criteria=self._criteria_text(),
        )
        base = self.evaluator_context or self.context
        response = await base.fork(system_prompt=self.evaluator_system_prompt()).chat(prompt)
        if not response.success:
            raise TransportError(f"Evaluator call failed: {response.error}", response.status_code)
        return parse_evaluation(response.content)

    # ==========================================================================
    # Execution
    # ==========================================================================

    async def run(self, input: str) -> WorkflowResult:
        """
        Run the generate/evaluate loop for one input.

        Raises:
            TransportError: If a default step's model call fails
        """
        state = WorkflowState()
        logger.info(
            f"Starting (max_iterations={self.max_iterations}, "
            f"threshold={self.improvement_threshold})"
        )

        while True:
            state.iteration += 1
            state.status = WorkflowStatus.GENERATING
            logger.info(f"Iteration {state.iteration}/{self.max_iterations}: generating")
            output = await _call(self._optimizer, input, dict(state.feedback))
            state.current_output = output if isinstance(output, str) else str(output)

            state.status = WorkflowStatus.EVALUATING
            logger.info(f"Iteration {state.iteration}/{self.max_iterations}: evaluating")
            evaluation = Evaluation.from_value(
                await _call(self._evaluator, input, state.current_output)
            )
            state.record(state.current_output, evaluation)
            state.feedback = {
                **evaluation.to_dict(),
                "output": state.current_output,
                "iteration": state.iteration,
            }
            logger.info(f"Iteration {state.iteration} scored {evaluation.score:.2f}")

            if evaluation.score >= self.improvement_threshold:
                state.status = WorkflowStatus.ACCEPTED
                state.accepted = True
                logger.info(f"Accepted after {state.iteration} iteration(s)")
                return WorkflowResult(
                    output=state.current_output,
                    accepted=True,
                    status=state.status,
                    iterations=state.iteration,
                    score=evaluation.score,
                    best_iteration=state.iteration,
                    history=state.history,
                )

            if state.iteration >= self.max_iterations:
                state.status = WorkflowStatus.EXHAUSTED
                logger.warning(
                    f"Exhausted after {state.iteration} iteration(s); "
                    f"best score {state.best_score:.2f} from iteration {state.best_iteration}"
                )
                return WorkflowResult(
                    output=state.best_output,
                    accepted=False,
                    status=state.status,
                    iterations=state.iteration,
                    score=state.best_score,
                    best_iteration=state.best_iteration,
                    history=state.history,
                )

            logger.debug("Score below threshold; retrying with feedback")

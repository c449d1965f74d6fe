"""
Tests for the evaluator/optimizer workflow
"""

import pytest

from agentcore.agent import Context
from agentcore.errors import TransportError
from agentcore.llm import LLMResponse
from agentcore.memory import Role
from agentcore.workflows import (
    Evaluation,
    EvaluatorWorkflow,
    WorkflowStatus,
    parse_evaluation,
    render_template,
)

from tests.conftest import ScriptedEndpoint


class Drafts:
    """Deterministic optimizer producing "draft 1", "draft 2", ..."""

    def __init__(self):
        self.feedback_seen = []

    def __call__(self, input, feedback):
        self.feedback_seen.append(feedback)
        return f"draft {len(self.feedback_seen)}"


def scores(*values):
    """Evaluator returning the given scores in order."""
    remaining = list(values)

    def evaluate(input, output):
        return {"score": remaining.pop(0), "feedback": f"improve {output}"}

    return evaluate


@pytest.fixture
def context():
    return Context(model=ScriptedEndpoint())


class TestEvaluatorWorkflow:
    """Test the generate/evaluate loop with stub steps"""

    @pytest.mark.asyncio
    async def test_exhausts_after_max_iterations(self, context):
        """Constant 0.5 below a 0.8 threshold runs exactly three cycles"""
        optimizer = Drafts()
        workflow = EvaluatorWorkflow(
            context,
            max_iterations=3,
            improvement_threshold=0.8,
            optimizer=optimizer,
            evaluator=lambda input, output: 0.5,
        )

        result = await workflow.run("Write a haiku")

        assert len(optimizer.feedback_seen) == 3
        assert result.status is WorkflowStatus.EXHAUSTED
        assert not result.accepted
        assert result.iterations == 3
        assert result.output == "draft 1"
        assert result.best_iteration == 1
        assert result.score == 0.5
        assert [r.output for r in result.history] == ["draft 1", "draft 2", "draft 3"]

    @pytest.mark.asyncio
    async def test_exhaustion_returns_best_output(self, context):
        workflow = EvaluatorWorkflow(
            context,
            max_iterations=3,
            improvement_threshold=0.8,
            optimizer=Drafts(),
            evaluator=scores(0.3, 0.7, 0.5),
        )

        result = await workflow.run("task")

        assert result.output == "draft 2"
        assert result.score == 0.7
        assert result.best_iteration == 2

    @pytest.mark.asyncio
    async def test_accepts_on_first_iteration(self, context):
        optimizer = Drafts()
        workflow = EvaluatorWorkflow(
            context,
            improvement_threshold=0.8,
            optimizer=optimizer,
            evaluator=scores(0.9),
        )

        result = await workflow.run("task")

        assert result.accepted
        assert result.status is WorkflowStatus.ACCEPTED
        assert result.iterations == 1
        assert result.output == "draft 1"
        assert len(optimizer.feedback_seen) == 1

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, context):
        workflow = EvaluatorWorkflow(
            context, improvement_threshold=0.8, optimizer=Drafts(), evaluator=scores(0.8)
        )
        assert (await workflow.run("task")).accepted

    @pytest.mark.asyncio
    async def test_feedback_is_carried_forward(self, context):
        optimizer = Drafts()
        workflow = EvaluatorWorkflow(context, optimizer=optimizer, evaluator=scores(0.2, 0.95))

        result = await workflow.run("task")

        assert result.iterations == 2
        assert optimizer.feedback_seen[0] == {}
        assert optimizer.feedback_seen[1] == {
            "score": 0.2,
            "feedback": "improve draft 1",
            "output": "draft 1",
            "iteration": 1,
        }

    @pytest.mark.asyncio
    async def test_async_steps(self, context):
        async def optimizer(input, feedback):
            return input.upper()

        async def evaluator(input, output):
            return Evaluation(score=1.0, feedback="perfect")

        workflow = EvaluatorWorkflow(context, optimizer=optimizer, evaluator=evaluator)
        result = await workflow.run("shout")

        assert result.output == "SHOUT"
        assert result.history[0].feedback == "perfect"

    @pytest.mark.asyncio
    async def test_defaults_from_config(self, context, monkeypatch):
        monkeypatch.setenv("WORKFLOW_MAX_ITERATIONS", "2")
        monkeypatch.setenv("WORKFLOW_IMPROVEMENT_THRESHOLD", "0.99")
        optimizer = Drafts()
        workflow = EvaluatorWorkflow(context, optimizer=optimizer, evaluator=lambda i, o: 0.9)

        result = await workflow.run("task")

        assert workflow.max_iterations == 2
        assert result.iterations == 2
        assert not result.accepted

    def test_setters_validate(self, context):
        workflow = EvaluatorWorkflow(context)

        with pytest.raises(ValueError):
            workflow.set_max_iterations(0)
        with pytest.raises(ValueError):
            workflow.set_improvement_threshold(1.5)
        with pytest.raises(ValueError):
            workflow.set_minimum_acceptable_score(-0.1)

        workflow.set_max_iterations(5)
        workflow.set_improvement_threshold(0.6)
        workflow.set_evaluation_criteria(["Accuracy"])
        assert workflow.max_iterations == 5
        assert workflow.improvement_threshold == 0.6
        assert workflow.criteria == ["Accuracy"]

    def test_run_sync(self, context):
        workflow = EvaluatorWorkflow(context, optimizer=Drafts(), evaluator=lambda i, o: 1.0)
        result = workflow.run_sync("task")
        assert result.to_dict() == {
            "output": "draft 1",
            "accepted": True,
            "status": "accepted",
            "iterations": 1,
            "score": 1.0,
            "best_iteration": 1,
            "history": [{"iteration": 1, "output": "draft 1", "score": 1.0, "feedback": ""}],
        }


class TestDefaultSteps:
    """Test the model-driven optimizer and evaluator"""

    @pytest.mark.asyncio
    async def test_model_driven_loop(self):
        endpoint = ScriptedEndpoint([
            "Draft about the sky",
            'Score: {"score": 0.4, "feedback": "Mention Rayleigh scattering"}',
            "Rayleigh scattering makes the sky blue",
            '{"score": 0.9, "feedback": "Good"}',
        ])
        context = Context(model=endpoint, system_prompt="Main prompt")
        workflow = EvaluatorWorkflow(context, criteria=["Scientifically accurate"])

        result = await workflow.run("Why is the sky blue?")

        assert result.accepted
        assert result.iterations == 2
        assert result.output == "Rayleigh scattering makes the sky blue"
        assert context.messages == []

        optimizer_call, evaluator_call, second_optimizer_call = endpoint.calls[:3]
        assert optimizer_call[0].text == "Main prompt"
        assert "Why is the sky blue?" in optimizer_call[-1].text

        assert evaluator_call[0].role is Role.SYSTEM
        assert "- Scientifically accurate" in evaluator_call[0].text
        assert '{"score":' in evaluator_call[0].text
        assert "Draft about the sky" in evaluator_call[-1].text

        assert "Mention Rayleigh scattering" in second_optimizer_call[-1].text
        assert "Draft about the sky" in second_optimizer_call[-1].text

    @pytest.mark.asyncio
    async def test_custom_templates(self):
        endpoint = ScriptedEndpoint(["out", '{"score": 1}'])
        workflow = EvaluatorWorkflow(
            Context(model=endpoint),
            optimizer_prompt_template="DO: {input}",
            evaluator_prompt_template="RATE {output} FOR {input}",
        )

        await workflow.run("thing")

        assert endpoint.calls[0][-1].text == "DO: thing"
        assert endpoint.calls[1][-1].text == "RATE out FOR thing"

    @pytest.mark.asyncio
    async def test_prompt_setters(self):
        endpoint = ScriptedEndpoint(["out", '{"score": 1}'])
        workflow = EvaluatorWorkflow(Context(model=endpoint))
        workflow.set_optimizer_prompt("WRITE: {input}")
        workflow.set_evaluator_prompt("JUDGE {output}")

        await workflow.run("poem")

        assert workflow.optimizer_prompt_template == "WRITE: {input}"
        assert endpoint.calls[0][-1].text == "WRITE: poem"
        assert endpoint.calls[1][-1].text == "JUDGE out"

    @pytest.mark.asyncio
    async def test_separate_evaluator_context(self):
        main = ScriptedEndpoint(["candidate"])
        judge = ScriptedEndpoint(['{"score": 0.85, "feedback": "fine"}'])
        workflow = EvaluatorWorkflow(Context(model=main), evaluator_context=Context(model=judge))

        result = await workflow.run("task")

        assert result.accepted
        assert len(main.calls) == 1
        assert len(judge.calls) == 1

    @pytest.mark.asyncio
    async def test_failed_model_call_raises(self):
        endpoint = ScriptedEndpoint([LLMResponse.failed("HTTP 429", status_code=429)])
        workflow = EvaluatorWorkflow(Context(model=endpoint))

        with pytest.raises(TransportError) as exc_info:
            await workflow.run("task")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_setters_restore_defaults(self):
        endpoint = ScriptedEndpoint(["model draft", '{"score": 1.0}'])
        workflow = EvaluatorWorkflow(Context(model=endpoint), optimizer=lambda i, f: "stub")
        workflow.set_optimizer(None)

        result = await workflow.run("task")
        assert result.output == "model draft"


class TestEvaluationParsing:
    """Test lenient evaluation parsing"""

    def test_json_embedded_in_text(self):
        evaluation = parse_evaluation('Here you go: {"score": 0.6, "feedback": "ok"} Thanks!')
        assert evaluation.score == 0.6
        assert evaluation.feedback == "ok"

    def test_skips_objects_without_score(self):
        evaluation = parse_evaluation('{"note": 1} then {"score": 0.3}')
        assert evaluation.score == 0.3

    def test_unparsable_reply_scores_zero(self):
        evaluation = parse_evaluation("Pretty good, maybe 8/10")
        assert evaluation.score == 0.0
        assert evaluation.feedback == "Pretty good, maybe 8/10"

    def test_scores_are_clamped(self):
        assert parse_evaluation('{"score": 1.7}').score == 1.0
        assert Evaluation(score=-2).score == 0.0
        assert Evaluation(score=float("nan")).score == 0.0

    def test_from_value(self):
        assert Evaluation.from_value(0.25).score == 0.25
        assert Evaluation.from_value({"score": "0.5", "feedback": ["a", "b"]}).feedback == '["a", "b"]'
        assert Evaluation.from_value({"score": "high"}).score == 0.0
        with pytest.raises(TypeError):
            Evaluation.from_value(None)

    def test_render_template_leaves_other_braces(self):
        rendered = render_template('{input} -> {"score": 1} {unknown}', input="x")
        assert rendered == 'x -> {"score": 1} {unknown}'

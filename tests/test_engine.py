"""Tests for UploadPipeline."""

import pytest

from mediahub.pipeline.engine import UploadPipeline
from mediahub.pipeline.registry import StepRegistry
from mediahub.pipeline.result import UploadResult
from mediahub.pipeline.step import UploadStep

calls = []


class RecordingStep(UploadStep):
    async def execute(self, ctx):
        calls.append((self.name, dict(ctx.metadata)))
        return self.success(ctx, metadata={self.name: True})


class FirstStep(RecordingStep):
    name = "first"
    priority = 10


class SecondStep(RecordingStep):
    name = "second"
    priority = 20


class FinishStep(UploadStep):
    name = "finish"
    priority = 30

    async def execute(self, ctx):
        calls.append((self.name, dict(ctx.metadata)))
        return UploadResult.succeeded("all done", metadata=ctx.metadata)


class FailStep(UploadStep):
    name = "fail"
    priority = 15

    async def execute(self, ctx):
        calls.append((self.name, dict(ctx.metadata)))
        return self.failure("nope", ["bad input"], ctx)


class ExplodingStep(UploadStep):
    name = "explode"
    priority = 15

    async def execute(self, ctx):
        raise ValueError("kaboom")


class LateStep(RecordingStep):
    name = "late"
    priority = 99


@pytest.fixture(autouse=True)
def clear_calls():
    calls.clear()


def make_pipeline(*classes):
    return UploadPipeline(StepRegistry(step_classes=classes))


@pytest.fixture
def ctx(make_file, make_context):
    return make_context(make_file("a.jpg", b"x"), metadata={"seed": 1})


async def test_steps_run_in_priority_order_with_threaded_metadata(ctx):
    result = await make_pipeline(FinishStep, SecondStep, FirstStep).run(ctx)

    assert [name for name, _ in calls] == ["first", "second", "finish"]
    assert calls[1][1] == {"seed": 1, "first": True}
    assert calls[2][1] == {"seed": 1, "first": True, "second": True}
    assert result.success is True
    assert result.message == "all done"
    assert result.context is None


async def test_failure_stops_chain(ctx):
    result = await make_pipeline(FirstStep, FailStep, SecondStep, FinishStep).run(ctx)

    assert [name for name, _ in calls] == ["first", "fail"]
    assert result.success is False
    assert result.errors == ("bad input",)


async def test_terminal_success_stops_chain(ctx):
    result = await make_pipeline(FirstStep, FinishStep, LateStep).run(ctx)

    assert [name for name, _ in calls] == ["first", "finish"]
    assert result.success is True


async def test_exception_becomes_failure(ctx):
    result = await make_pipeline(FirstStep, ExplodingStep, SecondStep).run(ctx)

    assert [name for name, _ in calls] == ["first"]
    assert result.success is False
    assert result.message == "Step 'explode' failed unexpectedly: kaboom"
    assert result.errors[0]["exception"] == "kaboom"
    assert result.context.get_metadata("first") is True


async def test_no_steps_is_neutral_success(ctx):
    result = await make_pipeline().run(ctx)

    assert result.success is True
    assert result.context is ctx
    assert result.record is None


async def test_chain_ending_while_continuing_returns_last_result(ctx):
    result = await make_pipeline(FirstStep, SecondStep).run(ctx)

    assert result.success is True
    assert result.should_continue()
    assert result.context.get_metadata("second") is True


async def test_disabled_step_is_not_run(make_file, make_context):
    ctx = make_context(make_file("a.jpg", b"x"), configuration={"second": False})

    await make_pipeline(FirstStep, SecondStep, FinishStep).run(ctx)

    assert [name for name, _ in calls] == ["first", "finish"]


async def test_original_context_untouched(ctx):
    await make_pipeline(FirstStep, SecondStep, FinishStep).run(ctx)
    assert dict(ctx.metadata) == {"seed": 1}

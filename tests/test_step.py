"""Tests for the UploadStep base class helpers."""

import pytest
from pydantic import Field

from mediahub.core.constants import DuplicateAction
from mediahub.pipeline.errors import StepConfigurationError
from mediahub.pipeline.step import StepOptions, UploadStep


class SampleOptions(StepOptions):
    retries: int = Field(3, description="How many times")
    mode: DuplicateAction = Field(DuplicateAction.SKIP, description="Mode")
    algorithm: str = Field("sha256", description="Algo", json_schema_extra={"options": ["sha256", "md5"]})
    verbose: bool = Field(False, description="Chatty")
    label: str = "x"


class SampleStep(UploadStep):
    name = "sample"
    description = "Sample step"
    options_model = SampleOptions

    def option_defaults(self, ctx):
        return {"verbose": ctx.is_public}

    async def execute(self, ctx):
        return self.success(ctx, metadata={"ran": True})


@pytest.fixture
def step():
    return SampleStep()


@pytest.fixture
def ctx(make_file, make_context):
    return make_context(make_file("a.jpg", b"x" * 10, mime_type="image/jpeg"))


@pytest.mark.parametrize("size,expected", [
    (0, "0 B"),
    (512, "512 B"),
    (1536, "1.5 KB"),
    (2 * 1024 * 1024, "2 MB"),
    (int(1.25 * 1024 ** 3), "1.25 GB"),
    (1024 * 1024 + 10486, "1.01 MB"),
])
def test_format_file_size(size, expected):
    assert UploadStep.format_file_size(size) == expected


def test_can_handle_reads_enable_flag(step, ctx):
    assert step.can_handle(ctx) is True
    assert step.can_handle(ctx.with_configuration({"sample": False})) is False
    assert step.can_handle(ctx.with_configuration({"sample": None})) is True


def test_disabled_by_default_class_attribute(ctx):
    class OffByDefault(SampleStep):
        name = "off"
        enabled = False

    assert OffByDefault().can_handle(ctx) is False
    assert OffByDefault().can_handle(ctx.with_configuration({"off": True})) is True


def test_options_defaults_and_overrides(step, ctx):
    opts = step.options(ctx)
    assert opts.retries == 3
    assert opts.verbose is True   # from option_defaults

    opts = step.options(ctx.with_configuration({"retries": 5, "verbose": False, "unrelated": 1}))
    assert opts.retries == 5
    assert opts.verbose is False


def test_invalid_options_raise_configuration_error(step, ctx):
    with pytest.raises(StepConfigurationError) as exc_info:
        step.options(ctx.with_configuration({"mode": "explode"}))
    assert exc_info.value.step_name == "sample"
    assert "mode" in exc_info.value.details


def test_configuration_options_schema(step):
    schema = step.configuration_options()
    assert schema["retries"] == {"type": "integer", "default": 3, "description": "How many times"}
    assert schema["mode"]["type"] == "select"
    assert schema["mode"]["options"] == ["reject", "skip", "rename"]
    assert schema["mode"]["default"] == "skip"
    assert schema["algorithm"]["options"] == ["sha256", "md5"]
    assert schema["verbose"]["type"] == "boolean"
    assert schema["label"]["type"] == "string"


async def test_success_folds_metadata(step, ctx):
    result = await step.execute(ctx)
    assert result.should_continue()
    assert result.context.get_metadata("ran") is True
    assert result.metadata == {"ran": True}


def test_failure_builds_failed_result(step, ctx):
    result = step.failure("broken", ["a", "b"], ctx)
    assert result.success is False
    assert result.errors == ("a", "b")


def test_size_and_mime_checks(step, make_file, make_context):
    f = make_file("a.jpg", b"x" * 10, mime_type="image/jpeg")
    assert step.validate_file_size(make_context(f, max_size_bytes=10))
    assert not step.validate_file_size(make_context(f, max_size_bytes=9))
    assert step.validate_mime_type(make_context(f))
    assert step.validate_mime_type(make_context(f, allowed_mime_types=["image/jpeg"]))
    assert not step.validate_mime_type(make_context(f, allowed_mime_types=["image/png"]))


def test_class_path(step):
    assert step.class_path.endswith("SampleStep")

"""Tests for DetectDuplicatesStep."""

import hashlib
import re

import pytest

from mediahub.pipeline.errors import HashCalculationError
from mediahub.pipeline.steps.detect_duplicates import DetectDuplicatesStep, calculate_file_hash
from mediahub.repositories.media import create_media

CONTENT = b"the same bytes every time"
CONTENT_SHA256 = hashlib.sha256(CONTENT).hexdigest()


@pytest.fixture
def step(services):
    return DetectDuplicatesStep(services)


@pytest.fixture
def seed_media(session_factory):
    async def _seed(user_id=1, file_hash=CONTENT_SHA256, name="first.jpg"):
        async with session_factory() as session:
            async with session.begin():
                return await create_media(
                    session,
                    user_id=user_id,
                    name=name,
                    original_name="original.jpg",
                    path=f"uploads/{user_id}/{name}",
                    directory=f"uploads/{user_id}",
                    disk="public",
                    size=len(CONTENT),
                    mime_type="image/jpeg",
                    url=f"http://testserver/storage/uploads/{user_id}/{name}",
                    file_hash=file_hash,
                )

    return _seed


@pytest.fixture
def upload(make_file, make_context):
    def _ctx(**configuration):
        return make_context(
            make_file("holiday.jpg", CONTENT, mime_type="image/jpeg"),
            check_duplicates=True,
            configuration=configuration,
        )

    return _ctx


def test_only_runs_when_duplicates_checked(step, make_file, make_context):
    f = make_file("a.jpg", CONTENT)
    assert step.can_handle(make_context(f)) is False
    assert step.can_handle(make_context(f, check_duplicates=True)) is True
    assert step.can_handle(make_context(
        f, check_duplicates=True, configuration={"duplicate_detection": False},
    )) is False


async def test_no_duplicate_continues_with_hash(step, upload):
    result = await step.execute(upload())

    assert result.success is True
    assert result.should_continue()
    assert result.metadata == {
        "file_hash": CONTENT_SHA256,
        "hash_algorithm": "sha256",
        "duplicate_check_passed": True,
    }


async def test_reject_duplicate(step, upload, seed_media):
    existing = await seed_media()

    result = await step.execute(upload())

    assert result.success is False
    assert result.message == "File already exists (duplicate detected)"
    [error] = result.errors
    assert error["duplicate_detected"] is True
    assert error["existing_file"]["id"] == existing.id
    assert error["existing_file"]["filename"] == "first.jpg"
    assert error["existing_file"]["original_filename"] == "original.jpg"
    assert error["existing_file"]["url"] == existing.url
    assert error["existing_file"]["uploaded_at"]


async def test_skip_duplicate_returns_existing_record(step, upload, seed_media):
    existing = await seed_media()

    result = await step.execute(upload(action_on_duplicate="skip"))

    assert result.success is True
    assert result.context is None
    assert result.record.id == existing.id
    assert result.path == existing.path
    assert result.filename == "first.jpg"
    assert result.metadata["duplicate_skipped"] is True
    assert result.metadata["existing_file_id"] == existing.id


async def test_rename_duplicate_forces_new_filename(step, upload, seed_media):
    existing = await seed_media()

    result = await step.execute(upload(action_on_duplicate="rename"))

    assert result.should_continue()
    ctx = result.context
    forced = ctx.get_configuration("force_filename")
    assert re.fullmatch(r"holiday_duplicate_\d{14}\.jpg", forced)
    assert ctx.get_configuration("duplicate_renamed") is True
    assert ctx.get_configuration("original_duplicate_id") == existing.id
    assert ctx.get_metadata("new_filename") == forced
    assert ctx.get_metadata("file_hash") == CONTENT_SHA256


async def test_user_scope_ignores_other_users(step, upload, seed_media):
    await seed_media(user_id=2)

    result = await step.execute(upload())

    assert result.success is True
    assert result.metadata["duplicate_check_passed"] is True


async def test_global_scope_sees_other_users(step, upload, seed_media):
    await seed_media(user_id=2)

    result = await step.execute(upload(scope="global"))

    assert result.success is False
    assert result.errors[0]["duplicate_detected"] is True


async def test_md5_algorithm(step, upload):
    result = await step.execute(upload(hash_algorithm="md5"))
    assert result.metadata["file_hash"] == hashlib.md5(CONTENT).hexdigest()
    assert result.metadata["hash_algorithm"] == "md5"


async def test_unknown_algorithm_fails(step, upload):
    result = await step.execute(upload(hash_algorithm="crc-zero"))

    assert result.success is False
    assert result.errors == ({"hash_calculation_failed": True},)


async def test_unknown_action_is_configuration_failure(step, upload):
    result = await step.execute(upload(action_on_duplicate="explode"))
    assert result.success is False
    assert "action_on_duplicate" in result.errors[0]


def test_calculate_file_hash_missing_file(tmp_path):
    with pytest.raises(HashCalculationError) as exc_info:
        calculate_file_hash(str(tmp_path / "gone.bin"), "sha256")
    assert exc_info.value.algorithm == "sha256"


def test_schema_lists_choices(step):
    options = step.configuration_options()
    assert options["hash_algorithm"]["options"] == ["sha256", "md5", "sha1"]
    assert options["scope"]["options"] == ["user", "global"]
    assert options["action_on_duplicate"] == {
        "type": "select",
        "default": "reject",
        "description": "Action to take when a duplicate is found",
        "options": ["reject", "skip", "rename"],
    }


async def test_rename_without_extension_has_no_trailing_dot(step, make_file, make_context, seed_media):
    await seed_media()
    ctx = make_context(
        make_file("holiday", CONTENT, mime_type="image/jpeg"),
        check_duplicates=True,
        configuration={"action_on_duplicate": "rename"},
    )

    result = await step.execute(ctx)

    assert re.fullmatch(r"holiday_duplicate_\d{14}", result.context.get_configuration("force_filename"))

"""Tests for UploadContext and UploadedFile."""

import dataclasses

import pytest

from mediahub.core.constants import StorageDisk
from mediahub.pipeline.context import UploadContext, UploadedFile, UploadUser


@pytest.fixture
def ctx(make_file, make_context):
    return make_context(
        make_file("Holiday Photo.JPG", b"abc", mime_type="image/jpeg"),
        metadata={"source": "form"},
        configuration={"validate_size": True},
        allowed_mime_types=["image/jpeg", "image/png", "image/jpeg"],
    )


def test_uploaded_file_from_path_guesses_type(make_file):
    f = make_file("scan.png", b"12345")
    assert f.original_name == "scan.png"
    assert f.size == 5
    assert f.mime_type == "image/png"
    assert f.extension == "png"
    assert f.stem == "scan"


def test_uploaded_file_unknown_type_defaults(make_file):
    f = make_file("blob", b"x")
    assert f.mime_type == "application/octet-stream"
    assert f.extension == ""


def test_uploaded_file_open_reads_bytes(make_file):
    f = make_file("a.txt", b"hello")
    with f.open() as fh:
        assert fh.read() == b"hello"


def test_file_accessors(ctx):
    assert ctx.original_filename == "Holiday Photo.JPG"
    assert ctx.file_size == 3
    assert ctx.mime_type == "image/jpeg"
    assert ctx.extension == "JPG"
    assert ctx.is_image is True


def test_disk_is_coerced_to_enum(ctx):
    assert ctx.disk is StorageDisk.PUBLIC


def test_allowed_mime_types_deduplicated_tuple(ctx):
    assert ctx.allowed_mime_types == ("image/jpeg", "image/png")


def test_with_metadata_leaves_everything_else_unchanged(ctx):
    updated = ctx.with_metadata("width", 640)

    assert updated is not ctx
    assert updated.get_metadata("width") == 640
    assert updated.get_metadata("source") == "form"
    assert "width" not in ctx.metadata

    for f in dataclasses.fields(UploadContext):
        if f.name != "metadata":
            assert getattr(updated, f.name) == getattr(ctx, f.name), f.name


def test_with_configuration_merges(ctx):
    updated = ctx.with_configuration({"force_filename": "x.jpg"})
    assert updated.get_configuration("force_filename") == "x.jpg"
    assert updated.get_configuration("validate_size") is True
    assert ctx.get_configuration("force_filename") is None


def test_with_processing_state(ctx):
    updated = ctx.with_processing_state("hash_done", True)
    assert updated.get_processing_state("hash_done") is True
    assert ctx.get_processing_state("hash_done", "missing") == "missing"


def test_get_configuration_default_for_none(make_file, make_context):
    c = make_context(make_file("a.jpg"), configuration={"flag": None})
    assert c.get_configuration("flag", True) is True
    assert c.get_configuration("absent", 5) == 5


def test_context_is_immutable(ctx):
    with pytest.raises(dataclasses.FrozenInstanceError):
        ctx.directory = "elsewhere"  # type: ignore[misc]
    with pytest.raises(TypeError):
        ctx.metadata["injected"] = True  # type: ignore[index]


def test_maps_are_copied_not_shared(make_file, make_context):
    source = {"a": 1}
    c = make_context(make_file("a.jpg"), metadata=source)
    source["b"] = 2
    assert "b" not in c.metadata


def test_summary_dict(ctx):
    summary = ctx.to_summary_dict()
    assert summary["filename"] == "Holiday Photo.JPG"
    assert summary["user_id"] == 1
    assert summary["disk"] == "public"
    assert summary["metadata_keys"] == ["source"]


def test_invalid_disk_rejected(make_file):
    with pytest.raises(ValueError):
        UploadContext(
            file=make_file("a.jpg"),
            user=UploadUser(id=1),
            disk="ftp",
            directory="x",
        )


def test_uploaded_file_explicit_values():
    f = UploadedFile(path="/tmp/x", original_name="x.gif", size=10, mime_type="image/gif")
    assert f.extension == "gif"

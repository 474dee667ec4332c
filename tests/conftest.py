"""Shared test fixtures."""

import hashlib
import io

import pytest
from PIL import Image

from mediahub.core.config import Settings
from mediahub.db.session import build_engine, build_session_factory, init_models
from mediahub.pipeline.context import UploadContext, UploadedFile, UploadUser
from mediahub.pipeline.dependencies import UploadServices
from mediahub.pipeline.engine import UploadPipeline
from mediahub.pipeline.registry import StepRegistry
from mediahub.service import UploadService
from mediahub.storage.progress import ProgressNotifier


class FakeS3Client:
    """Just enough of a boto3 S3 client for the cloud upload path."""

    def __init__(self):
        self.objects = {}
        self.fail_with = None

    def upload_fileobj(self, fh, bucket, key, ExtraArgs=None, Callback=None, Config=None):
        if self.fail_with is not None:
            raise self.fail_with

        body = b""
        while True:
            chunk = fh.read(256 * 1024)
            if not chunk:
                break
            body += chunk
            if Callback is not None:
                Callback(len(chunk))

        self.objects[(bucket, key)] = {
            "body": body,
            "extra_args": ExtraArgs or {},
            "config": Config,
        }

    def head_object(self, Bucket, Key):
        body = self.objects[(Bucket, Key)]["body"]
        return {"ETag": f'"{hashlib.md5(body).hexdigest()}"', "ContentLength": len(body)}

    def generate_presigned_url(self, operation, Params, ExpiresIn):
        return f"https://presigned.test/{Params['Bucket']}/{Params['Key']}?expires_in={ExpiresIn}"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        APP_URL="http://testserver",
        APP_KEY="test-signing-key",
        STORAGE_ROOT=str(tmp_path / "storage"),
        UPLOAD_DEFAULT_DISK="public",
        DIGITALOCEAN_KEY="do-key",
        DIGITALOCEAN_SECRET="do-secret",
        DIGITALOCEAN_BUCKET="media-bucket",
        DIGITALOCEAN_REGION="nyc3",
        DIGITALOCEAN_URL="https://cdn.test",
        DIGITALOCEAN_ENDPOINT="https://nyc3.digitaloceanspaces.test",
        AWS_BUCKET="aws-bucket",
        AWS_DEFAULT_REGION="eu-west-1",
    )


@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.sqlite3'}")
    await init_models(engine)
    yield build_session_factory(engine=engine)
    await engine.dispose()


@pytest.fixture
def s3_client():
    return FakeS3Client()


@pytest.fixture
def notifier():
    return ProgressNotifier()


@pytest.fixture
def services(settings, session_factory, s3_client, notifier):
    return UploadServices.from_settings(
        settings,
        session_factory=session_factory,
        notifier=notifier,
        client_factory=lambda config: s3_client,
    )


@pytest.fixture
def registry(services):
    return StepRegistry(services)


@pytest.fixture
def pipeline(registry):
    return UploadPipeline(registry)


@pytest.fixture
def service(registry, settings):
    return UploadService(registry, settings)


@pytest.fixture
def user():
    return UploadUser(id=1, name="Alice", email="alice@example.com")


@pytest.fixture
def other_user():
    return UploadUser(id=2, name="Bob", email="bob@example.com")


@pytest.fixture
def make_file(tmp_path):
    """Write ``content`` to a temp file and return its UploadedFile handle."""

    def _make(name, content=b"data", mime_type=None, size=None):
        if size is not None:
            content = content + b"\0" * max(size - len(content), 0)
        folder = tmp_path / "incoming"
        folder.mkdir(exist_ok=True)
        path = folder / name
        path.write_bytes(content)
        return UploadedFile.from_path(path, mime_type=mime_type)

    return _make


@pytest.fixture
def image_bytes():
    """Encode a solid-colour Pillow image."""

    def _encode(fmt="JPEG", size=(64, 48), color=(200, 30, 30), exif=None):
        buffer = io.BytesIO()
        kwargs = {"exif": exif} if exif is not None else {}
        Image.new("RGB", size, color).save(buffer, format=fmt, **kwargs)
        return buffer.getvalue()

    return _encode


@pytest.fixture
def make_image(make_file, image_bytes):
    """UploadedFile holding a real image, optionally padded to ``size`` bytes."""

    def _make(name="photo.jpg", fmt="JPEG", dimensions=(64, 48), size=None, **kwargs):
        Image.init()
        mime_type = Image.MIME[fmt]
        return make_file(name, image_bytes(fmt, dimensions, **kwargs), mime_type=mime_type, size=size)

    return _make


@pytest.fixture
def make_context(user):
    """UploadContext with test-friendly defaults (local public disk)."""

    def _make(file, **overrides):
        values = {
            "file": file,
            "user": user,
            "disk": "public",
            "directory": "uploads/1/2026/10",
            "session_id": "session-1",
        }
        values.update(overrides)
        return UploadContext(**values)

    return _make

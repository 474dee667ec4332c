"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from __future__ import annotations

from dataclasses import dataclass

from pydantic_settings import BaseSettings

from mediahub.core.constants import StorageDisk


@dataclass(frozen=True)
class DiskConfig:
    """Resolved configuration for one named storage disk."""

    name: str
    driver: str                     # "local" | "s3"
    root: str | None = None
    url: str | None = None
    bucket: str | None = None
    key: str | None = None
    secret: str | None = None
    region: str | None = None
    endpoint: str | None = None
    use_path_style_endpoint: bool = False


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = "development"
    APP_URL: str = "http://localhost:8000"
    APP_KEY: str = "change-this-in-production"
    LOG_LEVEL: str = "INFO"

    # ── Database ──────────────────────────────
    POSTGRES_USER: str = "mediahub_user"
    POSTGRES_PASSWORD: str = "mediahub_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "mediahub_db"
    DATABASE_URL_OVERRIDE: str = ""

    @property
    def DATABASE_URL(self) -> str:
        """Async URL for app runtime (asyncpg), unless overridden."""
        if self.DATABASE_URL_OVERRIDE:
            return self.DATABASE_URL_OVERRIDE
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # ── Local storage ─────────────────────────
    STORAGE_ROOT: str = "storage/app"
    FILESYSTEM_DISK: str = "local"

    # ── Amazon S3 ─────────────────────────────
    AWS_ACCESS_KEY_ID: str = ""
    AWS_SECRET_ACCESS_KEY: str = ""
    AWS_DEFAULT_REGION: str = "us-east-1"
    AWS_BUCKET: str = ""
    AWS_URL: str = ""
    AWS_ENDPOINT: str = ""
    AWS_USE_PATH_STYLE_ENDPOINT: bool = False

    # ── DigitalOcean Spaces ───────────────────
    DIGITALOCEAN_KEY: str = ""
    DIGITALOCEAN_SECRET: str = ""
    DIGITALOCEAN_REGION: str = "nyc3"
    DIGITALOCEAN_BUCKET: str = ""
    DIGITALOCEAN_URL: str = ""
    DIGITALOCEAN_ENDPOINT: str = ""
    DIGITALOCEAN_USE_PATH_STYLE: bool = False

    # ── Cloudflare R2 ─────────────────────────
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_REGION: str = "auto"
    R2_BUCKET: str = ""
    R2_URL: str = ""
    R2_ENDPOINT: str = ""
    R2_USE_PATH_STYLE: bool = False

    # ── Upload defaults ───────────────────────
    UPLOAD_MAX_SIZE_MB: int = 50
    UPLOAD_DEFAULT_DISK: str = "spaces"

    model_config = {"env_file": [".env"], "extra": "ignore"}

    def disk_config(self, disk: StorageDisk | str) -> DiskConfig:
        """Return the driver and credentials for a named disk."""
        name = StorageDisk(disk).value
        root = self.STORAGE_ROOT.rstrip("/")

        if name == StorageDisk.LOCAL:
            return DiskConfig(
                name=name,
                driver="local",
                root=f"{root}/private",
                url=f"{self.APP_URL.rstrip('/')}/files",
            )
        if name == StorageDisk.PUBLIC:
            return DiskConfig(
                name=name,
                driver="local",
                root=f"{root}/public",
                url=f"{self.APP_URL.rstrip('/')}/storage",
            )
        if name == StorageDisk.S3:
            return DiskConfig(
                name=name,
                driver="s3",
                url=self.AWS_URL or None,
                bucket=self.AWS_BUCKET,
                key=self.AWS_ACCESS_KEY_ID,
                secret=self.AWS_SECRET_ACCESS_KEY,
                region=self.AWS_DEFAULT_REGION,
                endpoint=self.AWS_ENDPOINT or None,
                use_path_style_endpoint=self.AWS_USE_PATH_STYLE_ENDPOINT,
            )
        if name == StorageDisk.SPACES:
            return DiskConfig(
                name=name,
                driver="s3",
                url=self.DIGITALOCEAN_URL or None,
                bucket=self.DIGITALOCEAN_BUCKET,
                key=self.DIGITALOCEAN_KEY,
                secret=self.DIGITALOCEAN_SECRET,
                region=self.DIGITALOCEAN_REGION,
                endpoint=self.DIGITALOCEAN_ENDPOINT or None,
                use_path_style_endpoint=self.DIGITALOCEAN_USE_PATH_STYLE,
            )
        return DiskConfig(
            name=name,
            driver="s3",
            url=self.R2_URL or None,
            bucket=self.R2_BUCKET,
            key=self.R2_ACCESS_KEY_ID,
            secret=self.R2_SECRET_ACCESS_KEY,
            region=self.R2_REGION,
            endpoint=self.R2_ENDPOINT or None,
            use_path_style_endpoint=self.R2_USE_PATH_STYLE,
        )


settings = Settings()

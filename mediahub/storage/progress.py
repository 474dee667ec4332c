"""
Cloud upload progress events and an in-process subscriber fan-out.

The pipeline does not own a transport.  It publishes CloudUploadProgress
events to a ProgressNotifier; whatever delivers them to browsers
(websocket, SSE, Redis pub/sub) subscribes to the channels it cares
about:

    user.<user_id>.uploads   — every upload of one user
    upload.<session_id>      — one upload session
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass

from mediahub.core.constants import UploadPhase
from mediahub.core.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[["CloudUploadProgress"], None]


@dataclass(frozen=True)
class CloudUploadProgress:
    """One progress sample for an object-storage upload."""

    user_id: int
    session_id: str | None
    filename: str
    bytes_uploaded: int
    total_bytes: int
    percentage: float
    speed: float | None = None          # bytes per second
    eta: int | None = None              # seconds remaining
    phase: str = UploadPhase.UPLOADING

    event_name = "upload.cloud.progress"

    def channels(self) -> list[str]:
        channels = [f"user.{self.user_id}.uploads"]
        if self.session_id:
            channels.append(f"upload.{self.session_id}")
        return channels

    def to_payload(self) -> dict[str, object]:
        """Wire payload for subscribers."""
        return {
            "session_id": self.session_id,
            "filename": self.filename,
            "bytes_uploaded": self.bytes_uploaded,
            "total_bytes": self.total_bytes,
            "percentage": self.percentage,
            "speed": self.speed,
            "eta": self.eta,
            "phase": str(self.phase),
            "formatted_uploaded": _format_bytes(self.bytes_uploaded),
            "formatted_total": _format_bytes(self.total_bytes),
            "formatted_speed": f"{_format_bytes(int(self.speed))}/s" if self.speed else None,
        }


class ProgressNotifier:
    """Routes progress events to callbacks subscribed per channel."""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[ProgressCallback]] = defaultdict(list)

    def subscribe(self, channel: str, callback: ProgressCallback) -> Callable[[], None]:
        """Register ``callback`` on ``channel``.  Returns an unsubscribe function."""
        self._subscribers[channel].append(callback)

        def unsubscribe() -> None:
            callbacks = self._subscribers.get(channel)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._subscribers[channel]

        return unsubscribe

    def publish(self, event: CloudUploadProgress) -> int:
        """Deliver ``event`` to every subscriber of its channels.  Returns deliveries."""
        delivered = 0
        for channel in event.channels():
            for callback in list(self._subscribers.get(channel, [])):
                try:
                    callback(event)
                    delivered += 1
                except Exception as exc:
                    # A broken observer must not abort the upload itself
                    logger.warning(
                        "Progress subscriber failed",
                        channel=channel,
                        filename=event.filename,
                        error=str(exc),
                    )
        return delivered


def _format_bytes(size: int) -> str:
    for unit, factor in (("GB", 1024 ** 3), ("MB", 1024 ** 2), ("KB", 1024)):
        if size >= factor:
            return f"{size / factor:,.2f} {unit}"
    return f"{size} B"

"""Microphone permission handling."""

import inspect
import logging
from dataclasses import dataclass
from enum import Enum

from ..models.platform import PlatformInfo

logger = logging.getLogger(__name__)


class PermissionStatus(str, Enum):
    GRANTED = "granted"
    DENIED = "denied"
    UNDETERMINED = "undetermined"
    RESTRICTED = "restricted"


@dataclass
class PermissionResult:
    """Outcome of a permission request."""
    granted: bool
    can_ask_again: bool
    status: PermissionStatus


class PermissionGate:
    """Acquires microphone authorization before a speech session listens.

    Browser-like hosts ask for media access up front. Native hosts defer
    the check to the backend that actually opens the microphone, so a
    request there is an implicit grant.
    """

    def __init__(self, platform: PlatformInfo):
        self.platform = platform

    async def request(self) -> PermissionResult:
        """Request microphone access. Never raises.

        Returns:
            PermissionResult; any failure is reported as not granted
        """
        if not self.platform.browser_like:
            logger.info("Native target: microphone access is verified when the stream opens")
            return PermissionResult(granted=True, can_ask_again=True, status=PermissionStatus.GRANTED)

        media_access = self.platform.media_access
        if media_access is None:
            logger.warning("Browser-like target has no media access API, cannot request microphone")
            return PermissionResult(granted=False, can_ask_again=False, status=PermissionStatus.RESTRICTED)

        try:
            stream = media_access()
            if inspect.isawaitable(stream):
                stream = await stream
            # Only the permission matters, release the probe stream right away
            close = getattr(stream, "close", None)
            if callable(close):
                close()
        except Exception as e:
            logger.warning(f"Microphone permission denied: {e}")
            return PermissionResult(granted=False, can_ask_again=False, status=PermissionStatus.DENIED)

        logger.info("Microphone permission granted")
        return PermissionResult(granted=True, can_ask_again=False, status=PermissionStatus.GRANTED)

    async def check(self) -> PermissionResult:
        """Query the permission without prompting.

        Neither target can query silently, so the answer is always
        undetermined; callers fall through to request().
        """
        return PermissionResult(granted=False, can_ask_again=True, status=PermissionStatus.UNDETERMINED)

"""Description of the host platform the speech session runs on."""

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class PlatformInfo:
    """Capabilities of the host, decided once when a session starts.

    `browser_like` hosts ask for media access before listening and may
    provide a native recognizer; other hosts open the microphone directly.
    """
    browser_like: bool = False
    recognizer_factory: Optional[Callable[[], Any]] = None
    media_access: Optional[Callable[[], Any]] = None

    @property
    def has_native_recognizer(self) -> bool:
        return self.recognizer_factory is not None

    @classmethod
    def from_config(cls, config, recognizer_factory=None, media_access=None) -> "PlatformInfo":
        return cls(
            browser_like=config.get("platform.browser_like", False),
            recognizer_factory=recognizer_factory,
            media_access=media_access,
        )

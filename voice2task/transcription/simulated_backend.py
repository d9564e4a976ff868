"""Simulated speech recognition for hosts without a real recognizer."""

import logging
import math
import random
from typing import Optional, Sequence

from .base import AbstractTranscriptionBackend, BackendListener
from ..models.speech import SpeechOptions, TranscriptResult
from ..scheduling import Scheduler

logger = logging.getLogger(__name__)

DEFAULT_PHRASES = (
    "Buy groceries and call mom then pick up dry cleaning",
    "Schedule dentist appointment, email the client, finish the report",
    "Pick up kids then go to the bank and pay bills",
    "Book flight and reserve hotel then pack bags",
    "Remember to pick up the kids at 3 PM from school",
)

PARTIAL_CONFIDENCE = 0.7
FINAL_CONFIDENCE = 0.95
PARTIAL_STEPS = 3


class SimulatedBackend(AbstractTranscriptionBackend):
    """Emits a canned phrase as growing partial transcripts, then a final one.

    Timing comes from the injected scheduler and the intervals from a
    seeded random generator, so a manual scheduler replays a cycle
    exactly without waiting on wall-clock time.
    """

    name = "simulated"

    def __init__(
        self,
        scheduler: Scheduler,
        phrases: Optional[Sequence[str]] = None,
        seed: Optional[int] = None,
        min_interval_ms: int = 300,
        max_interval_ms: int = 900,
    ):
        super().__init__()
        if min_interval_ms < 0 or max_interval_ms < min_interval_ms:
            raise ValueError(f"Invalid simulation interval: {min_interval_ms}-{max_interval_ms} ms")
        self.scheduler = scheduler
        self.phrases = tuple(phrases or DEFAULT_PHRASES)
        self.min_interval_ms = min_interval_ms
        self.max_interval_ms = max_interval_ms
        self._random = random.Random(seed)
        self._phrase = ""
        self._words = []
        self._emitted = 0
        self._handle = None

    @classmethod
    def from_config(cls, config, scheduler: Scheduler) -> "SimulatedBackend":
        return cls(
            scheduler,
            seed=config.get("simulation.seed"),
            min_interval_ms=config.get("simulation.min_interval_ms", 300),
            max_interval_ms=config.get("simulation.max_interval_ms", 900),
        )

    @property
    def phrase(self) -> str:
        return self._phrase

    def activate(self, options: SpeechOptions, listener: BackendListener) -> None:
        self._begin(options, listener)
        self._phrase = self._random.choice(self.phrases)
        self._words = self._phrase.split()
        self._emitted = 0
        logger.info(f"Simulating speech: '{self._phrase}'")
        self._schedule_next()

    def finalize(self) -> None:
        if not self.active:
            return
        self._cancel_pending()
        self._emit_final()

    def deactivate(self) -> None:
        self._cancel_pending()
        self.active = False

    def _schedule_next(self) -> None:
        delay = self._random.uniform(self.min_interval_ms, self.max_interval_ms) / 1000.0
        self._handle = self.scheduler.call_later(delay, self._advance)

    def _advance(self) -> None:
        self._handle = None
        if not self.active:
            return

        step = max(1, math.ceil(len(self._words) / PARTIAL_STEPS))
        self._emitted = min(self._emitted + step, len(self._words))
        if self._emitted >= len(self._words):
            self._emit_final()
            return

        partial = " ".join(self._words[:self._emitted])
        logger.debug(f"Simulated partial: '{partial}'")
        self._emit_transcript(TranscriptResult(partial, PARTIAL_CONFIDENCE, False, backend=self.name))
        self._schedule_next()

    def _emit_final(self) -> None:
        self._emit_transcript(TranscriptResult(self._phrase, FINAL_CONFIDENCE, True, backend=self.name))

    def _cancel_pending(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

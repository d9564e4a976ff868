"""Rule-based segmentation of a spoken utterance into task titles.

Several strategies split the preprocessed transcript independently and
are scored with fixed confidences; the best one above the selection
threshold wins. When nothing splits, the whole utterance is kept as a
single low-confidence task so that no speech is lost.
"""

import logging
import re
from typing import List, Optional

from ..models.parsing import ParseOptions, ParseResult, ParseStrategy
from .vocabulary import ENGLISH, Vocabulary, get_vocabulary

logger = logging.getLogger(__name__)

CONJUNCTION_CONFIDENCE = 0.9
PUNCTUATION_CONFIDENCE = 0.7
ACTION_VERB_CONFIDENCE = 0.8
HYBRID_CONFIDENCE = 0.85
FALLBACK_CONFIDENCE = 0.3
SELECTION_THRESHOLD = 0.5

_EDGE_CHARACTERS = " ,;."
_WORD_PUNCTUATION = ",.;:!?\"'"
_SENTENCE_ENDINGS = (".", ";", "!", "?")
_LEADING_CONJUNCTION = re.compile(r"^(?:and|then|also|plus|next|afterwards)(?:\s+|$)", re.IGNORECASE)
_TRAILING_CONJUNCTION = re.compile(r"\s+(?:and|then|also|plus)$", re.IGNORECASE)


class TaskSegmenter:
    """Splits one final transcript into an ordered list of task titles."""

    def __init__(self, options: Optional[ParseOptions] = None):
        """Initialize the segmenter.

        Args:
            options: Parsing options; defaults are used when omitted
        """
        self.options = options or ParseOptions()
        self.vocabulary: Vocabulary = get_vocabulary(self.options.language)

        conjunctions = sorted(self.vocabulary.conjunctions, key=len, reverse=True)
        self._conjunction_pattern = re.compile(
            r"\s*(?<!\w)(" + "|".join(re.escape(c) for c in conjunctions) + r")(?!\w)\s*"
        )
        self._filler_pattern = re.compile(
            r"^(?:" + "|".join(re.escape(p) for p in self.vocabulary.filler_prefixes) + r")\s+",
            re.IGNORECASE,
        )
        # A task ending in "remember to", "note to self" ... still waits for its object
        self._open_ending_pattern = re.compile(
            r"(?:^|\s)(?:" + "|".join(re.escape(i) for i in self.vocabulary.single_task_indicators)
            + r")(?:\s+to)?:?$"
        )
        self._single_verbs = frozenset(v for v in self.vocabulary.action_verbs if " " not in v)
        self._two_word_verbs = frozenset(self.vocabulary.two_word_verbs)

    def parse(self, text: str, options: Optional[ParseOptions] = None) -> ParseResult:
        """Segment a transcript into tasks. Never raises.

        Args:
            text: Final transcript text
            options: Per-call options overriding the segmenter's own

        Returns:
            ParseResult of the winning strategy, the fallback, or a failure
        """
        if options is not None and options != self.options:
            return TaskSegmenter(options).parse(text)

        original_text = text or ""
        if not original_text.strip():
            logger.debug("Empty transcript, nothing to segment")
            return self._failure(original_text)

        clean_text = self.preprocess(original_text)
        if not clean_text:
            return self._failure(original_text)

        best: Optional[ParseResult] = None
        for candidate in self.evaluate(clean_text):
            logger.debug(
                f"Strategy {candidate.strategy.value}: success={candidate.success} "
                f"confidence={candidate.confidence} tasks={candidate.tasks}"
            )
            if not candidate.success or candidate.confidence <= SELECTION_THRESHOLD:
                continue
            if best is None or candidate.confidence > best.confidence:
                best = candidate

        if best is None:
            return self._fallback(original_text, clean_text)

        tasks = self._post_filter(best.tasks)
        logger.info(f"Segmented transcript into {len(tasks)} task(s) using {best.strategy.value}")
        return ParseResult(
            tasks=tasks,
            original_text=original_text,
            confidence=best.confidence,
            strategy=best.strategy,
            success=bool(tasks),
        )

    def evaluate(self, clean_text: str) -> List[ParseResult]:
        """Run every splitting strategy on preprocessed text, in attempt order."""
        conjunction = self._split_by_conjunctions(clean_text)
        return [
            conjunction,
            self._split_by_punctuation(clean_text),
            self._split_by_action_verbs(clean_text),
            self._split_hybrid(clean_text, conjunction),
        ]

    def preprocess(self, text: str) -> str:
        """Lowercase, collapse whitespace and strip speech fillers."""
        text = text.strip().lower().replace("’", "'")
        text = re.sub(r"\s+", " ", text)
        # "milk, and eggs" / "milk. then eggs" are transcription artifacts of one pause
        text = re.sub(r"\s*[,;.]\s*(and|then)\s+", r" \1 ", text)
        text = re.sub(r"\s*\bthen\s+", " then ", text)
        text = self._filler_pattern.sub("", text.strip())
        return text.strip()

    def clean_task(self, task: str) -> str:
        """Normalize one candidate task title."""
        task = task.strip(_EDGE_CHARACTERS)
        task = _LEADING_CONJUNCTION.sub("", task)
        task = _TRAILING_CONJUNCTION.sub("", task).strip(_EDGE_CHARACTERS)
        task = re.sub(r"\s+", " ", task)
        return task[:1].upper() + task[1:]

    def has_single_task_indicator(self, text: str) -> bool:
        lowered = text.lower()
        return any(indicator in lowered for indicator in self.vocabulary.single_task_indicators)

    # Strategies

    def _split_by_conjunctions(self, text: str) -> ParseResult:
        tasks = self._valid_tasks(self._conjunction_segments(text))
        if len(tasks) >= 2:
            return self._success(tasks, text, CONJUNCTION_CONFIDENCE, ParseStrategy.CONJUNCTION_SPLIT)
        return self._failure(text, ParseStrategy.CONJUNCTION_SPLIT)

    def _split_by_punctuation(self, text: str) -> ParseResult:
        if self.has_single_task_indicator(text):
            return self._failure(text, ParseStrategy.PUNCTUATION_SPLIT)
        tasks = self._valid_tasks(re.split(r"[,.;]", text))
        if len(tasks) >= 2:
            return self._success(tasks, text, PUNCTUATION_CONFIDENCE, ParseStrategy.PUNCTUATION_SPLIT)
        return self._failure(text, ParseStrategy.PUNCTUATION_SPLIT)

    def _split_by_action_verbs(self, text: str) -> ParseResult:
        words = text.split(" ")
        # Only utterances phrased as commands are scanned
        if not self._action_verb_at(words, 0):
            return self._failure(text, ParseStrategy.ACTION_VERB_SPLIT)
        split_sentences = not self.has_single_task_indicator(text)
        pieces: List[str] = []
        current: List[str] = []

        index = 0
        while index < len(words):
            verb_length = self._action_verb_at(words, index)
            if verb_length and current and not self._holds_task_open(current):
                pieces.append(" ".join(current))
                current = []
            step = max(verb_length, 1)
            current.extend(words[index:index + step])
            index += step
            if split_sentences and current[-1].endswith(_SENTENCE_ENDINGS):
                pieces.append(" ".join(current))
                current = []

        if current:
            pieces.append(" ".join(current))

        tasks = self._valid_tasks(pieces)
        if len(tasks) >= 2:
            return self._success(tasks, text, ACTION_VERB_CONFIDENCE, ParseStrategy.ACTION_VERB_SPLIT)
        return self._failure(text, ParseStrategy.ACTION_VERB_SPLIT)

    def _split_hybrid(self, text: str, conjunction: ParseResult) -> ParseResult:
        if not conjunction.success:
            return self._failure(text, ParseStrategy.HYBRID)

        refined: List[str] = []
        for task in conjunction.tasks:
            if "," in task and not self.has_single_task_indicator(task):
                refined.extend(self._valid_tasks(task.split(",")))
            else:
                refined.append(task)

        if len(refined) > len(conjunction.tasks):
            return self._success(refined, text, HYBRID_CONFIDENCE, ParseStrategy.HYBRID)
        return self._failure(text, ParseStrategy.HYBRID)

    # Helpers

    def _conjunction_segments(self, text: str) -> List[str]:
        """Split on conjunctions, keeping list items attached to their list.

        Once a segment introduces a single multi-item task ("groceries:"),
        following segments that do not start with an action verb are
        joined back onto it together with their conjunction.
        """
        parts = self._conjunction_pattern.split(text)
        segments: List[str] = []
        pending = ""
        # parts alternates segment, conjunction, segment, ...
        for index in range(0, len(parts), 2):
            segment = parts[index].strip()
            conjunction = parts[index - 1] if index else ""
            joiner = f"{pending} {conjunction}".strip()
            if not segment:
                pending = joiner
                continue
            pending = ""
            if (segments and self.has_single_task_indicator(segments[-1])
                    and not self._action_verb_at(segment.split(" "), 0)):
                segments[-1] = f"{segments[-1]} {joiner} {segment}"
            else:
                segments.append(segment)
        return segments

    def _action_verb_at(self, words: List[str], index: int) -> int:
        """Number of words forming an action verb at `index` (0 if none)."""
        word = words[index].strip(_WORD_PUNCTUATION)
        if index + 1 < len(words):
            pair = f"{word} {words[index + 1].strip(_WORD_PUNCTUATION)}"
            if pair in self._two_word_verbs:
                return 2
        return 1 if word in self._single_verbs else 0

    def _holds_task_open(self, words: List[str]) -> bool:
        tail = " ".join(words).rstrip(" ,;")
        return bool(self._open_ending_pattern.search(tail))

    def _valid_tasks(self, segments: List[str]) -> List[str]:
        cleaned = (self.clean_task(segment) for segment in segments)
        return [task for task in cleaned if len(task) >= self.options.min_task_length]

    def _post_filter(self, tasks: List[str]) -> List[str]:
        return self._valid_tasks(tasks)[:self.options.max_tasks]

    def _fallback(self, original_text: str, clean_text: str) -> ParseResult:
        segments = self._conjunction_segments(clean_text)
        if not segments:
            logger.debug("Transcript holds nothing but conjunctions")
            return self._failure(original_text)
        if len(segments) >= 2 and not self._valid_tasks(segments):
            logger.debug("Every conjunction segment is too short, not preserving the utterance")
            return self._failure(original_text)

        if not self.options.preserve_original_on_failure:
            logger.info("No strategy split the transcript and preservation is disabled")
            return self._failure(original_text)

        # Keep the speaker's own casing and punctuation for the preserved task
        preserved = re.sub(r"\s+", " ", original_text.strip().replace("’", "'"))
        preserved = self.clean_task(self._filler_pattern.sub("", preserved))
        if len(preserved) < self.options.min_task_length:
            return self._failure(original_text)

        logger.info("No strategy split the transcript, preserving it as a single task")
        return ParseResult(
            tasks=[preserved],
            original_text=original_text,
            confidence=FALLBACK_CONFIDENCE,
            strategy=ParseStrategy.FALLBACK,
            success=True,
        )

    @staticmethod
    def _success(tasks: List[str], text: str, confidence: float, strategy: ParseStrategy) -> ParseResult:
        return ParseResult(tasks=tasks, original_text=text, confidence=confidence,
                           strategy=strategy, success=True)

    @staticmethod
    def _failure(text: str, strategy: ParseStrategy = ParseStrategy.FALLBACK) -> ParseResult:
        return ParseResult(tasks=[], original_text=text, confidence=0.0, strategy=strategy, success=False)


def create_task_segmenter(options: Optional[ParseOptions] = None, **overrides) -> TaskSegmenter:
    """Create a segmenter, optionally overriding individual option fields.

    Args:
        options: Base options (defaults when omitted)
        **overrides: Field values such as max_tasks=5

    Returns:
        Configured TaskSegmenter
    """
    if overrides:
        base = options or ParseOptions()
        options = ParseOptions(**{**base.model_dump(), **overrides})
    return TaskSegmenter(options)


def parse_tasks_from_speech(text: str, options: Optional[ParseOptions] = None, **overrides) -> List[str]:
    """Segment a transcript and return only the task titles."""
    return create_task_segmenter(options, **overrides).parse(text).tasks


def could_contain_multiple_tasks(text: str, vocabulary: Vocabulary = ENGLISH) -> bool:
    """Cheap check for whether a transcript is worth segmenting.

    True when the text has a conjunction between words, any `,` `.` `;`,
    or more than one action verb.
    """
    if not text or not text.strip():
        return False

    lowered = re.sub(r"\s+", " ", text.strip().lower())
    padded = f" {lowered} "
    if any(f" {conjunction} " in padded for conjunction in vocabulary.conjunctions):
        return True
    if re.search(r"[,.;]", lowered):
        return True

    words = [w.strip(_WORD_PUNCTUATION) for w in lowered.split(" ")]
    verbs = set(vocabulary.action_verbs)
    verb_count = 0
    index = 0
    while index < len(words):
        if index + 1 < len(words) and f"{words[index]} {words[index + 1]}" in verbs:
            verb_count += 1
            index += 2
            continue
        if words[index] in verbs:
            verb_count += 1
        index += 1
    return verb_count > 1

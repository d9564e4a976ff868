"""Task segmentation for final transcripts."""

from .task_segmenter import (
    TaskSegmenter,
    create_task_segmenter,
    parse_tasks_from_speech,
    could_contain_multiple_tasks,
)
from .vocabulary import Vocabulary, get_vocabulary

__all__ = [
    "TaskSegmenter",
    "create_task_segmenter",
    "parse_tasks_from_speech",
    "could_contain_multiple_tasks",
    "Vocabulary",
    "get_vocabulary",
]

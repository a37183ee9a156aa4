# Transcript Segment Writer
# Per-contact transcript persistence, translation and notification

from .models import PersistedSegment, TranscriptEvent, TranscriptResult
from .queue_client import QueueClient
from .segment_store import SegmentStore
from .translate_client import TranslateClient
from .writer import SegmentWriter, WriterConfig

__all__ = [
    "PersistedSegment",
    "TranscriptEvent",
    "TranscriptResult",
    "QueueClient",
    "SegmentStore",
    "TranslateClient",
    "SegmentWriter",
    "WriterConfig",
]

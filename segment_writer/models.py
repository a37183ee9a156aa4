"""
Canonical data models for transcript segment writing.
"""

from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, Optional
import hashlib
import logging
import uuid

logger = logging.getLogger(__name__)

# Namespace for deterministic point ids (contact_id, start_time)
SEGMENT_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "segment-writer/segments")


def _pick(data: dict, *keys: str, default: Any = None) -> Any:
    """Return the first key present in data (PascalCase, camelCase, snake_case)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


@dataclass
class TranscriptAlternative:
    """One candidate transcription of a result."""
    transcript: str

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptAlternative":
        text = _pick(data, "Transcript", "transcript", default="")
        return cls(transcript=text or "")


@dataclass
class TranscriptResult:
    """
    One span of recognized speech as delivered by the stream.

    The same span can arrive several times while partial; each revision
    carries its own result_id.
    """
    result_id: str
    start_time: float  # seconds into the audio stream
    end_time: float
    is_partial: bool
    alternatives: list[TranscriptAlternative] = field(default_factory=list)

    @property
    def first_transcript(self) -> str:
        """Text of the highest-confidence alternative, or empty."""
        if not self.alternatives:
            return ""
        return self.alternatives[0].transcript

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptResult":
        """
        Build from a raw stream result.

        Raises:
            KeyError, ValueError, TypeError: On malformed input
        """
        start_time = float(_pick(data, "StartTime", "startTime", "start_time"))
        end_time = float(_pick(data, "EndTime", "endTime", "end_time", default=start_time))
        if end_time < start_time:
            raise ValueError(f"end_time {end_time} precedes start_time {start_time}")
        result_id = _pick(data, "ResultId", "resultId", "result_id")
        if result_id is None:
            raise KeyError("ResultId")
        is_partial = _pick(data, "IsPartial", "isPartial", "is_partial", default=False)
        alternatives = [
            TranscriptAlternative.from_dict(alt)
            for alt in _pick(data, "Alternatives", "alternatives", default=[]) or []
        ]
        return cls(
            result_id=str(result_id),
            start_time=start_time,
            end_time=end_time,
            is_partial=bool(is_partial),
            alternatives=alternatives,
        )


@dataclass
class TranscriptEvent:
    """A single transcription event: zero or more results."""
    results: list[TranscriptResult] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "TranscriptEvent":
        """
        Normalize a raw streaming event.

        Expected raw format:
        {
            "Transcript": {
                "Results": [
                    {
                        "ResultId": "...",
                        "StartTime": 1.0,
                        "EndTime": 2.5,
                        "IsPartial": false,
                        "Alternatives": [{"Transcript": "..."}]
                    }
                ]
            }
        }

        A bare {"Results": [...]} is accepted too. Malformed results are
        skipped with a warning.
        """
        transcript = _pick(data, "Transcript", "transcript", default=data)
        if not isinstance(transcript, dict):
            transcript = data
        raw_results = _pick(transcript, "Results", "results", default=[]) or []

        results = []
        for item in raw_results:
            try:
                results.append(TranscriptResult.from_dict(item))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(f"Failed to parse transcript result: {e}, item={item}")
                continue
        return cls(results=results)

    def summary(self) -> str:
        """Short description for log lines."""
        parts = [
            f"{r.result_id}[{r.start_time:.3f}-{r.end_time:.3f}"
            f"{' partial' if r.is_partial else ''}] \"{r.first_transcript}\""
            for r in self.results
        ]
        return f"{len(self.results)} result(s): " + "; ".join(parts)


@dataclass(frozen=True)
class PersistedSegment:
    """
    Stored representation of one result revision.

    Keyed on (contact_id, start_time); later revisions of the same span
    overwrite earlier ones.
    """
    contact_id: str
    start_time: float
    segment_id: str
    end_time: float
    transcript: str
    is_partial: bool
    logged_on: str  # ISO-8601 capture time
    expires_after: int  # epoch milliseconds

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return asdict(self)

    def compute_id(self) -> str:
        """Deterministic storage id for the composite key."""
        return compute_point_id(self.contact_id, self.start_time)

    def deduplication_id(self) -> str:
        """
        Deterministic message deduplication id.
        Based on (contact_id, start_time, segment_id).
        """
        key = f"{self.contact_id}:{float(self.start_time)!r}:{self.segment_id}"
        return hashlib.sha256(key.encode()).hexdigest()

    @classmethod
    def from_dict(cls, data: dict) -> "PersistedSegment":
        """Reconstruct from dictionary."""
        return cls(
            contact_id=data["contact_id"],
            start_time=float(data["start_time"]),
            segment_id=data["segment_id"],
            end_time=float(data["end_time"]),
            transcript=data["transcript"],
            is_partial=bool(data["is_partial"]),
            logged_on=data["logged_on"],
            expires_after=int(data["expires_after"]),
        )


def compute_point_id(contact_id: str, start_time: float) -> str:
    """UUID string for a (contact_id, start_time) composite key."""
    return str(uuid.uuid5(SEGMENT_NAMESPACE, f"{contact_id}:{float(start_time)!r}"))


class StepStatus(str, Enum):
    SUCCESS = "success"
    FALLBACK = "fallback"  # recovered, value holds the fallback
    FAILED = "failed"  # fatal for this event


@dataclass
class StepOutcome:
    """Result of one side effect within an event."""
    status: StepStatus
    value: Any = None
    error: Optional[str] = None
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is StepStatus.SUCCESS

    @classmethod
    def success(cls, value: Any = None, elapsed_ms: float = 0.0) -> "StepOutcome":
        return cls(StepStatus.SUCCESS, value=value, elapsed_ms=elapsed_ms)

    @classmethod
    def fallback(cls, value: Any, error: str, elapsed_ms: float = 0.0) -> "StepOutcome":
        return cls(StepStatus.FALLBACK, value=value, error=error, elapsed_ms=elapsed_ms)

    @classmethod
    def failed(cls, error: str, elapsed_ms: float = 0.0) -> "StepOutcome":
        return cls(StepStatus.FAILED, error=error, elapsed_ms=elapsed_ms)


@dataclass
class EventOutcome:
    """What happened to one event. Informational only."""
    skipped: bool = False
    segment: Optional[PersistedSegment] = None
    translation: Optional[StepOutcome] = None
    notification: Optional[StepOutcome] = None
    storage: Optional[StepOutcome] = None
    dropped: bool = False
    error: Optional[str] = None

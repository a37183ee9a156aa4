"""
Transcription event sources.

Reads recorded events from JSON lines, or simulates a live stream.
"""

import json
import logging
import random
from typing import IO, Iterator, Optional

from .models import TranscriptAlternative, TranscriptEvent, TranscriptResult

logger = logging.getLogger(__name__)


def read_events(stream: IO[str]) -> Iterator[TranscriptEvent]:
    """
    Yield events from a JSON-lines stream, one event per line.

    Blank lines are ignored; lines that are not a JSON object are logged
    and skipped.
    """
    for line_no, line in enumerate(stream, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping line {line_no}: invalid JSON ({e})")
            continue
        if not isinstance(raw, dict):
            logger.warning(f"Skipping line {line_no}: expected an object, got {type(raw).__name__}")
            continue
        yield TranscriptEvent.from_dict(raw)


class MockTranscriptSource:
    """
    Simulated recognizer output for local runs.

    Each span is revealed word by word as partial results, then
    committed as a final result with the same start time.
    """

    _sample_texts = [
        "Thanks for calling, how can I help you today?",
        "I would like to check the status of my order.",
        "Sure, can you give me the order number please?",
        "It is four five six seven eight.",
        "Thank you, one moment while I look that up.",
    ]

    def __init__(self, num_spans: int = 5, seed: Optional[int] = None):
        self.num_spans = num_spans
        self._random = random.Random(seed)
        logger.info("MockTranscriptSource initialized for testing")

    def events(self) -> Iterator[TranscriptEvent]:
        start = 0.0
        for span in range(self.num_spans):
            words = self._random.choice(self._sample_texts).split()
            end = start
            for count in range(1, len(words) + 1):
                end = start + 0.35 * count
                is_final = count == len(words)
                yield TranscriptEvent(results=[
                    TranscriptResult(
                        result_id=f"span-{span}-rev-{count}",
                        start_time=round(start, 3),
                        end_time=round(end, 3),
                        is_partial=not is_final,
                        alternatives=[TranscriptAlternative(" ".join(words[:count]))],
                    )
                ])
            start = round(end + self._random.uniform(0.2, 1.0), 3)

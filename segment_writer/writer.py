"""
Per-contact transcript segment writer.

Turns each transcription event into a stored segment and, for finalized
text, a translated notification on the contact's queue.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .models import (
    EventOutcome,
    PersistedSegment,
    StepOutcome,
    TranscriptEvent,
    TranscriptResult,
)
from .queue_client import QueueClient, QueueMessage
from .segment_store import SegmentStore
from .translate_client import TranslateClient

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_SECONDS = 7 * 24 * 3600


@dataclass
class WriterConfig:
    """Settings for one SegmentWriter."""
    save_partial_transcripts: bool = False
    console_log_transcript: bool = False
    source_language: str = "en"
    target_language: str = "es"
    retention_seconds: int = DEFAULT_RETENTION_SECONDS


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _elapsed_ms(started: float) -> float:
    return (time.monotonic() - started) * 1000


class SegmentWriter:
    """
    Writes transcript segments for a single contact.

    Events are handled one at a time, in arrival order:
    filter -> build segment -> (final only) translate -> (final only)
    enqueue -> store. Nothing raises out of process_event(); failures
    show up in logs, in the returned EventOutcome and in stats.

    One writer per contact. Writers share no state, so separate contacts
    can run in separate threads without locking.
    """

    def __init__(
        self,
        contact_id: str,
        segment_store: SegmentStore,
        translate_client: TranslateClient,
        queue_client: QueueClient,
        config: Optional[WriterConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize the writer.

        Args:
            contact_id: The contact whose transcript this writer owns
            segment_store: Store for persisting segments
            translate_client: Client used to translate finalized text
            queue_client: Client for the contact's notification queue
            config: Writer settings (defaults to WriterConfig())
            clock: Optional source of the current UTC time
        """
        if not contact_id:
            raise ValueError("contact_id is required")
        if segment_store is None:
            raise ValueError("segment_store is required")
        self._contact_id = contact_id
        self.segment_store = segment_store
        self.translate_client = translate_client
        self.queue_client = queue_client
        self.config = config or WriterConfig()
        self._clock = clock or _utc_now

        self._stats = {
            "events": 0,
            "skipped": 0,
            "segments_stored": 0,
            "translations_failed": 0,
            "notifications_failed": 0,
            "events_dropped": 0,
        }

        logger.info(
            f"SegmentWriter initialized: contact={contact_id}, "
            f"save_partial={self.config.save_partial_transcripts}, "
            f"languages={self.config.source_language}->{self.config.target_language}"
        )

    @property
    def contact_id(self) -> str:
        return self._contact_id

    def process_event(self, event: TranscriptEvent, table_name: str) -> EventOutcome:
        """
        Handle one transcription event end to end.

        Args:
            event: The event as received from the stream
            table_name: Storage table to write into

        Returns:
            What happened, for observability. Never raises.
        """
        self._stats["events"] += 1
        outcome = EventOutcome()
        try:
            logger.info(f"table name: {table_name}")
            logger.info(f"Transcription event: {event.summary()}")

            result = self.select_result(event)
            if result is None:
                outcome.skipped = True
                self._stats["skipped"] += 1
                return outcome

            segment = self.build_segment(result)
            outcome.segment = segment
            if segment is None:
                outcome.skipped = True
                self._stats["skipped"] += 1
                return outcome

            if not segment.is_partial:
                logger.info(f"Final untranslated transcript: {segment.transcript}")
                outcome.translation = self.translate_text(
                    self.config.source_language,
                    self.config.target_language,
                    segment.transcript,
                )
                outcome.notification = self.send_to_queue(
                    segment, outcome.translation.value
                )

            outcome.storage = self.put_segment(segment, table_name)
            if not outcome.storage.ok:
                outcome.dropped = True
                outcome.error = outcome.storage.error
                self._stats["events_dropped"] += 1
                logger.error(
                    f"Dropping event for segment {segment.segment_id}: {outcome.storage.error}"
                )
            return outcome

        except Exception as e:
            logger.error(f"Exception while writing segment for contact {self._contact_id}: {e}")
            outcome.dropped = True
            outcome.error = str(e)
            self._stats["events_dropped"] += 1
            return outcome

    def select_result(self, event: TranscriptEvent) -> Optional[TranscriptResult]:
        """
        Pick the result this event contributes, if any.

        Only the first result of an event is considered. Partial results
        pass only when save_partial_transcripts is enabled.
        """
        if not event.results:
            return None
        result = event.results[0]
        if result.is_partial and not self.config.save_partial_transcripts:
            logger.debug(f"Skipping partial result {result.result_id}")
            return None
        return result

    def build_segment(self, result: TranscriptResult) -> Optional[PersistedSegment]:
        """
        Map a result to its stored shape.

        Returns None when the first alternative has no text.
        """
        logger.info("Creating segment record")
        started = time.monotonic()

        transcript = result.first_transcript
        if not transcript:
            logger.info(f"No transcript text in result {result.result_id}, nothing to store")
            return None

        now = self._clock().astimezone(timezone.utc)
        expires = now + timedelta(seconds=self.config.retention_seconds)
        segment = PersistedSegment(
            contact_id=self._contact_id,
            start_time=result.start_time,
            segment_id=result.result_id,
            end_time=result.end_time,
            transcript=transcript,
            is_partial=result.is_partial,
            logged_on=now.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            expires_after=int(expires.timestamp() * 1000),
        )

        if self.config.console_log_transcript:
            logger.info(
                f"Thread {threading.current_thread().name} "
                f"{int(now.timestamp() * 1000)}: "
                f"[{result.start_time:.3f}, {result.end_time:.3f}] - {transcript}"
            )

        logger.info(f"Segment record created (milli): {_elapsed_ms(started):.1f}")
        return segment

    def translate_text(
        self,
        source_language: str,
        target_language: str,
        text: str,
    ) -> StepOutcome:
        """
        Translate text, falling back to the original on any failure.

        The returned outcome's value is always usable text.
        """
        logger.info(f"Starting translation: {text}")
        started = time.monotonic()
        try:
            translated = self.translate_client.translate_text(
                text, source_language, target_language
            )
        except Exception as e:
            elapsed = _elapsed_ms(started)
            self._stats["translations_failed"] += 1
            logger.error(f"Exception while translating transcript: {e}")
            logger.info("Unable to translate. Returning untranslated text")
            return StepOutcome.fallback(text, str(e), elapsed_ms=elapsed)

        elapsed = _elapsed_ms(started)
        logger.info(f"Translation: {translated}")
        logger.info(f"Translation time (milli): {elapsed:.1f}")
        return StepOutcome.success(translated, elapsed_ms=elapsed)

    def send_to_queue(self, segment: PersistedSegment, message: str) -> StepOutcome:
        """
        Enqueue a message for a finalized segment.

        The deduplication id is derived from the segment's identity, so a
        retry of the same segment is recognised by the queue. Failures are
        logged and reported as a fallback; they never stop the store step.
        """
        logger.info("Sending message to queue")
        started = time.monotonic()
        try:
            message_id = self.queue_client.send_message(
                QueueMessage(
                    body=message,
                    group_id=self._contact_id,
                    deduplication_id=segment.deduplication_id(),
                )
            )
        except Exception as e:
            self._stats["notifications_failed"] += 1
            logger.error(f"Exception while sending message to queue: {e}")
            return StepOutcome.fallback(None, str(e), elapsed_ms=_elapsed_ms(started))

        elapsed = _elapsed_ms(started)
        logger.info(f"Sending message to queue time (milli): {elapsed:.1f}")
        return StepOutcome.success(message_id, elapsed_ms=elapsed)

    def put_segment(self, segment: PersistedSegment, table_name: str) -> StepOutcome:
        """Write the segment. A failure here is fatal for the event."""
        logger.info("Putting segment in store")
        started = time.monotonic()
        try:
            self.segment_store.put_segment(segment, table_name)
        except Exception as e:
            return StepOutcome.failed(f"Exception while writing to store: {e}", elapsed_ms=_elapsed_ms(started))

        elapsed = _elapsed_ms(started)
        self._stats["segments_stored"] += 1
        logger.info(f"Segment in store (milli): {elapsed:.1f}")
        return StepOutcome.success(elapsed_ms=elapsed)

    def log_final_stats(self):
        """Log statistics, typically when the stream ends."""
        logger.info(
            f"SegmentWriter stopped for contact {self._contact_id}. Stats: "
            f"events={self._stats['events']}, "
            f"skipped={self._stats['skipped']}, "
            f"stored={self._stats['segments_stored']}, "
            f"translations_failed={self._stats['translations_failed']}, "
            f"notifications_failed={self._stats['notifications_failed']}, "
            f"dropped={self._stats['events_dropped']}"
        )

    @property
    def stats(self) -> dict:
        """Get current writer statistics."""
        return self._stats.copy()

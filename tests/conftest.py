from datetime import datetime, timezone

import pytest

from segment_writer.models import TranscriptAlternative, TranscriptEvent, TranscriptResult
from segment_writer.writer import SegmentWriter, WriterConfig

FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.tables: dict[str, dict[str, object]] = {}
        self.writes = []

    def put_segment(self, segment, table_name):
        if self.fail:
            raise RuntimeError("store unavailable")
        self.writes.append((table_name, segment))
        self.tables.setdefault(table_name, {})[segment.compute_id()] = segment


class FakeTranslator:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def translate_text(self, text, source_language, target_language):
        self.calls.append((text, source_language, target_language))
        if self.fail:
            raise TimeoutError("translation timed out")
        return f"ES:{text}"


class FakeQueue:
    def __init__(self, fail: bool = False, log: list = None):
        self.fail = fail
        self.messages = []
        self.log = log

    def send_message(self, message):
        if self.log is not None:
            self.log.append("notify")
        if self.fail:
            raise ConnectionError("queue unreachable")
        self.messages.append(message)
        return f"msg-{len(self.messages)}"


def make_event(result_id="r1", start=1.0, end=2.5, partial=False, text="hello world"):
    alternatives = [] if text is None else [TranscriptAlternative(text)]
    return TranscriptEvent(results=[
        TranscriptResult(
            result_id=result_id,
            start_time=start,
            end_time=end,
            is_partial=partial,
            alternatives=alternatives,
        )
    ])


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def translator():
    return FakeTranslator()


@pytest.fixture
def queue():
    return FakeQueue()


@pytest.fixture
def make_writer(store, translator, queue):
    def _make(**overrides):
        config = overrides.pop("config", None) or WriterConfig()
        kwargs = {
            "contact_id": "contact-1",
            "segment_store": store,
            "translate_client": translator,
            "queue_client": queue,
            "config": config,
            "clock": lambda: FIXED_NOW,
        }
        kwargs.update(overrides)
        return SegmentWriter(**kwargs)

    return _make

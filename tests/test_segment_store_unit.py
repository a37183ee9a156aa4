import pytest
from qdrant_client import QdrantClient

from segment_writer.models import PersistedSegment
from segment_writer.segment_store import SegmentStore, SegmentStoreError

TABLE = "segments"


def _segment(contact_id="c-1", start_time=1.0, segment_id="r1", transcript="hello", partial=False, expires=2_000):
    return PersistedSegment(
        contact_id=contact_id,
        start_time=start_time,
        segment_id=segment_id,
        end_time=start_time + 1.0,
        transcript=transcript,
        is_partial=partial,
        logged_on="2026-03-01T12:00:00.000Z",
        expires_after=expires,
    )


@pytest.fixture
def segment_store():
    store = SegmentStore(location=":memory:")
    yield store
    store.close()


def test_put_then_get_returns_segment(segment_store) -> None:
    segment = _segment()

    segment_store.put_segment(segment, TABLE)

    assert segment_store.get_segment(TABLE, "c-1", 1.0) == segment
    assert segment_store.get_segment(TABLE, "c-1", 9.0) is None


def test_same_composite_key_overwrites(segment_store) -> None:
    segment_store.put_segment(_segment(segment_id="r1", transcript="good", partial=True), TABLE)
    segment_store.put_segment(_segment(segment_id="r2", transcript="good morning"), TABLE)

    segments = segment_store.list_segments(TABLE, "c-1")

    assert len(segments) == 1
    assert segments[0].segment_id == "r2"
    assert segments[0].is_partial is False


def test_list_segments_is_per_contact_and_ordered(segment_store) -> None:
    segment_store.put_segment(_segment(start_time=5.0, segment_id="late"), TABLE)
    segment_store.put_segment(_segment(start_time=0.5, segment_id="early"), TABLE)
    segment_store.put_segment(_segment(contact_id="c-2", segment_id="other"), TABLE)

    assert [s.segment_id for s in segment_store.list_segments(TABLE, "c-1")] == ["early", "late"]
    assert [s.segment_id for s in segment_store.list_segments(TABLE, "c-2")] == ["other"]


def test_tables_are_independent(segment_store) -> None:
    segment_store.put_segment(_segment(), "table_a")

    assert segment_store.list_segments("table_b", "c-1") == []


def test_queries_on_unknown_table_do_not_create_it() -> None:
    client = QdrantClient(location=":memory:")
    store = SegmentStore(client=client)

    assert store.get_segment("missing", "c-1", 1.0) is None
    assert store.list_segments("missing", "c-1") == []
    assert store.purge_expired("missing", now_ms=10)
    assert store.delete_contact("missing", "c-1")

    assert not client.collection_exists("missing")


def test_table_created_by_another_writer_between_check_and_create() -> None:
    client = QdrantClient(location=":memory:")
    stale_view = client.get_collections()
    SegmentStore(client=client).put_segment(_segment(contact_id="c-a"), TABLE)

    client.get_collections = lambda: stale_view
    late_store = SegmentStore(client=client)
    late_store.put_segment(_segment(contact_id="c-b"), TABLE)

    assert len(late_store.list_segments(TABLE, "c-b")) == 1
    assert len(late_store.list_segments(TABLE, "c-a")) == 1


def test_purge_expired_removes_only_expired(segment_store) -> None:
    segment_store.put_segment(_segment(start_time=1.0, segment_id="old", expires=1_000), TABLE)
    segment_store.put_segment(_segment(start_time=2.0, segment_id="fresh", expires=5_000), TABLE)

    assert segment_store.purge_expired(TABLE, now_ms=2_000)

    assert [s.segment_id for s in segment_store.list_segments(TABLE, "c-1")] == ["fresh"]


def test_delete_contact(segment_store) -> None:
    segment_store.put_segment(_segment(), TABLE)
    segment_store.put_segment(_segment(contact_id="c-2"), TABLE)

    assert segment_store.delete_contact(TABLE, "c-1")

    assert segment_store.list_segments(TABLE, "c-1") == []
    assert len(segment_store.list_segments(TABLE, "c-2")) == 1


def test_upsert_failure_raises_store_error() -> None:
    client = QdrantClient(location=":memory:")

    def boom(**kwargs):
        raise RuntimeError("disk full")

    client.upsert = boom
    store = SegmentStore(client=client)

    with pytest.raises(SegmentStoreError, match="disk full"):
        store.put_segment(_segment(), TABLE)

"""
Qdrant-backed storage for transcript segments.

Each table is a Qdrant collection. Points are keyed on the
(contact_id, start_time) composite key, so writing a later revision of a
span replaces the earlier one.
"""

import logging
from typing import Optional

from qdrant_client import QdrantClient
from qdrant_client.http import models as qdrant_models
from qdrant_client.http.exceptions import UnexpectedResponse

from .models import PersistedSegment, compute_point_id

logger = logging.getLogger(__name__)

# Constants
DEFAULT_TABLE_NAME = "contact_transcript_segments"
# Segments are looked up by key, not by similarity; every point carries
# the same one-dimensional placeholder vector.
VECTOR_SIZE = 1
PLACEHOLDER_VECTOR = [1.0]
DISTANCE = qdrant_models.Distance.DOT
SCROLL_PAGE_SIZE = 256


class SegmentStore:
    """
    Durable store for PersistedSegment records.

    Collections are created on first write to a given table name.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 6333,
        location: Optional[str] = None,
        client: Optional[QdrantClient] = None,
    ):
        """
        Initialize segment store.

        Args:
            host: Qdrant server host
            port: Qdrant server port
            location: Optional Qdrant location (e.g. ":memory:"); overrides host/port
            client: Optional pre-built client; overrides everything else
        """
        if client is not None:
            self._client = client
            target = "injected client"
        elif location is not None:
            self._client = QdrantClient(location=location)
            target = location
        else:
            self._client = QdrantClient(host=host, port=port)
            target = f"{host}:{port}"
        self._known_tables: set[str] = set()

        logger.info(f"SegmentStore initialized: {target}")

    def _ensure_table_exists(self, table_name: str):
        """Create the collection if it doesn't exist."""
        if table_name in self._known_tables:
            return
        try:
            collections = self._client.get_collections().collections
            exists = any(c.name == table_name for c in collections)

            if not exists:
                self._client.create_collection(
                    collection_name=table_name,
                    vectors_config=qdrant_models.VectorParams(
                        size=VECTOR_SIZE,
                        distance=DISTANCE,
                    ),
                )
                logger.info(f"Created Qdrant collection: {table_name}")
            else:
                logger.info(f"Using existing Qdrant collection: {table_name}")

        except Exception as e:
            # Another writer may have created it between the check and the create
            if not self._collection_exists(table_name):
                logger.error(f"Failed to ensure collection exists: {e}")
                raise SegmentStoreError(f"Collection setup failed for {table_name}: {e}") from e
            logger.info(f"Using Qdrant collection created concurrently: {table_name}")
        self._known_tables.add(table_name)

    def _collection_exists(self, table_name: str) -> bool:
        try:
            return self._client.collection_exists(table_name)
        except Exception:
            return False

    def _table_exists(self, table_name: str) -> bool:
        """Check for a table without creating it."""
        if table_name in self._known_tables:
            return True
        try:
            exists = self._client.collection_exists(table_name)
        except Exception as e:
            raise SegmentStoreError(f"Collection lookup failed for {table_name}: {e}") from e
        if exists:
            self._known_tables.add(table_name)
        return exists

    def put_segment(self, segment: PersistedSegment, table_name: str):
        """
        Write a segment at its composite key, replacing any earlier revision.

        Raises:
            SegmentStoreError: If the write fails
        """
        self._ensure_table_exists(table_name)
        point = qdrant_models.PointStruct(
            id=segment.compute_id(),
            vector=PLACEHOLDER_VECTOR,
            payload=segment.to_dict(),
        )
        try:
            self._client.upsert(
                collection_name=table_name,
                points=[point],
                wait=True,
            )
        except UnexpectedResponse as e:
            raise SegmentStoreError(f"Qdrant upsert failed: {e}") from e
        except Exception as e:
            raise SegmentStoreError(f"Unexpected error during upsert: {e}") from e
        logger.debug(
            f"Stored segment {segment.segment_id} at "
            f"({segment.contact_id}, {segment.start_time}) in {table_name}"
        )

    def get_segment(
        self,
        table_name: str,
        contact_id: str,
        start_time: float,
    ) -> Optional[PersistedSegment]:
        """Fetch the current revision stored at a composite key."""
        if not self._table_exists(table_name):
            return None
        try:
            records = self._client.retrieve(
                collection_name=table_name,
                ids=[compute_point_id(contact_id, start_time)],
                with_payload=True,
            )
        except Exception as e:
            raise SegmentStoreError(f"Retrieve failed: {e}") from e
        if not records:
            return None
        return PersistedSegment.from_dict(records[0].payload)

    def list_segments(self, table_name: str, contact_id: str) -> list[PersistedSegment]:
        """All segments stored for a contact, ordered by start time."""
        if not self._table_exists(table_name):
            return []
        segments = []
        offset = None
        try:
            while True:
                records, offset = self._client.scroll(
                    collection_name=table_name,
                    scroll_filter=_contact_filter(contact_id),
                    limit=SCROLL_PAGE_SIZE,
                    offset=offset,
                    with_payload=True,
                    with_vectors=False,
                )
                segments.extend(PersistedSegment.from_dict(r.payload) for r in records)
                if offset is None:
                    break
        except Exception as e:
            raise SegmentStoreError(f"Scroll failed: {e}") from e
        return sorted(segments, key=lambda s: s.start_time)

    def purge_expired(self, table_name: str, now_ms: int) -> bool:
        """
        Delete segments whose retention window has passed.

        Returns:
            True if successful
        """
        try:
            if not self._table_exists(table_name):
                return True
            self._client.delete(
                collection_name=table_name,
                points_selector=qdrant_models.FilterSelector(
                    filter=qdrant_models.Filter(
                        must=[
                            qdrant_models.FieldCondition(
                                key="expires_after",
                                range=qdrant_models.Range(lt=now_ms),
                            )
                        ]
                    )
                ),
            )
            logger.info(f"Purged segments expired before {now_ms} from {table_name}")
            return True
        except Exception as e:
            logger.error(f"Failed to purge expired segments from {table_name}: {e}")
            return False

    def delete_contact(self, table_name: str, contact_id: str) -> bool:
        """
        Delete all segments for a specific contact.

        Returns:
            True if successful
        """
        try:
            if not self._table_exists(table_name):
                return True
            self._client.delete(
                collection_name=table_name,
                points_selector=qdrant_models.FilterSelector(
                    filter=_contact_filter(contact_id)
                ),
            )
            logger.info(f"Deleted segments for contact: {contact_id}")
            return True
        except Exception as e:
            logger.error(f"Failed to delete contact {contact_id}: {e}")
            return False

    def close(self):
        """Close the Qdrant client connection."""
        self._client.close()
        logger.info("SegmentStore connection closed")


class SegmentStoreError(Exception):
    """Exception raised for segment store errors."""
    pass


def _contact_filter(contact_id: str) -> qdrant_models.Filter:
    return qdrant_models.Filter(
        must=[
            qdrant_models.FieldCondition(
                key="contact_id",
                match=qdrant_models.MatchValue(value=contact_id),
            )
        ]
    )

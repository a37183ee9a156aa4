"""
Message queue client for downstream notifications.

Posts transcript messages to a FIFO-style HTTP queue endpoint.
"""

import logging
from dataclasses import dataclass
from typing import Optional
import requests

logger = logging.getLogger(__name__)

# FIFO queues cap deduplication and group ids at 128 characters
MAX_ID_LENGTH = 128


@dataclass
class QueueMessage:
    """A message as handed to the queue."""
    body: str
    group_id: str
    deduplication_id: str


class QueueClient:
    """
    Client for an HTTP message queue.

    Each send is a POST of {"body", "group_id", "deduplication_id"} to the
    queue URL. The queue is expected to drop messages whose deduplication
    id it has already accepted.
    """

    def __init__(
        self,
        queue_url: str,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize queue client.

        Args:
            queue_url: Address of the destination queue
            api_key: Optional API key, sent as X-API-Key
            timeout: Request timeout in seconds
        """
        if not queue_url:
            raise QueueAPIError("queue_url is required")
        self.queue_url = queue_url
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self._session.headers["X-API-Key"] = api_key
        logger.info(f"QueueClient initialized, queue_url={self.queue_url}")

    def send_message(self, message: QueueMessage) -> Optional[str]:
        """
        Enqueue one message.

        Returns:
            The message id assigned by the queue, if it reports one

        Raises:
            QueueAPIError: On invalid ids or transport errors
        """
        _check_id("group_id", message.group_id)
        _check_id("deduplication_id", message.deduplication_id)

        try:
            response = self._session.post(
                self.queue_url,
                json={
                    "body": message.body,
                    "group_id": message.group_id,
                    "deduplication_id": message.deduplication_id,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise QueueAPIError(f"Failed to send message: {e}") from e

        try:
            data = response.json()
        except ValueError:
            return None
        return data.get("message_id") if isinstance(data, dict) else None

    def close(self):
        """Close the HTTP session."""
        self._session.close()
        logger.info("QueueClient session closed")


class QueueAPIError(Exception):
    """Exception raised for queue API errors."""
    pass


def _check_id(name: str, value: str):
    if not value or len(value) > MAX_ID_LENGTH:
        raise QueueAPIError(f"{name} must be 1-{MAX_ID_LENGTH} characters, got {len(value or '')}")


# --- Mock client for testing without a queue ---

class MockQueueClient(QueueClient):
    """
    In-process queue for local runs.

    Keeps accepted messages and honours deduplication ids.
    """

    def __init__(self, queue_url: str = "mock://queue"):
        self.queue_url = queue_url
        self.messages: list[QueueMessage] = []
        self._seen_ids: set[str] = set()
        logger.info("MockQueueClient initialized for testing")

    def send_message(self, message: QueueMessage) -> Optional[str]:
        _check_id("group_id", message.group_id)
        _check_id("deduplication_id", message.deduplication_id)
        if message.deduplication_id in self._seen_ids:
            logger.debug(f"Duplicate message dropped: {message.deduplication_id}")
            return None
        self._seen_ids.add(message.deduplication_id)
        self.messages.append(message)
        return str(len(self.messages))

    def close(self):
        logger.info("MockQueueClient closed")

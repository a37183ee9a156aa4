from unittest.mock import Mock

import pytest
import requests

from segment_writer.queue_client import MockQueueClient, QueueAPIError, QueueClient, QueueMessage
from segment_writer.translate_client import TranslateAPIError, TranslateClient


def _response(payload=None, status_error=None, json_error=None):
    response = Mock()
    response.raise_for_status = Mock(side_effect=status_error)
    if json_error is not None:
        response.json = Mock(side_effect=json_error)
    else:
        response.json = Mock(return_value=payload)
    return response


def test_translate_posts_request_and_returns_text() -> None:
    client = TranslateClient(base_url="http://mt.local/")
    client._session.post = Mock(return_value=_response({"translated_text": "hola mundo", "confidence": 0.9}))

    assert client.translate_text("hello world", "en", "es") == "hola mundo"

    args, kwargs = client._session.post.call_args
    assert args[0] == "http://mt.local/translate"
    assert kwargs["json"] == {"text": "hello world", "source_lang": "en", "target_lang": "es"}
    assert kwargs["timeout"] == client.timeout


def test_translate_wraps_transport_errors() -> None:
    client = TranslateClient()
    client._session.post = Mock(side_effect=requests.exceptions.ConnectTimeout("slow"))

    with pytest.raises(TranslateAPIError, match="slow"):
        client.translate_text("hi", "en", "es")


def test_translate_rejects_malformed_response() -> None:
    client = TranslateClient()
    client._session.post = Mock(return_value=_response({"detail": "nope"}))

    with pytest.raises(TranslateAPIError, match="translated_text"):
        client.translate_text("hi", "en", "es")


def test_translate_http_error() -> None:
    client = TranslateClient()
    client._session.post = Mock(return_value=_response(status_error=requests.exceptions.HTTPError("500")))

    with pytest.raises(TranslateAPIError):
        client.translate_text("hi", "en", "es")


def test_queue_send_posts_message() -> None:
    client = QueueClient(queue_url="http://queue.local/contact-transcripts", api_key="k")
    client._session.post = Mock(return_value=_response({"message_id": "m-1"}))

    message_id = client.send_message(QueueMessage(body="hola", group_id="c-1", deduplication_id="d" * 64))

    assert message_id == "m-1"
    args, kwargs = client._session.post.call_args
    assert args[0] == "http://queue.local/contact-transcripts"
    assert kwargs["json"] == {"body": "hola", "group_id": "c-1", "deduplication_id": "d" * 64}
    assert client._session.headers["X-API-Key"] == "k"


def test_queue_send_without_json_body_returns_none() -> None:
    client = QueueClient(queue_url="http://queue.local/q")
    client._session.post = Mock(return_value=_response(json_error=ValueError("no body")))

    assert client.send_message(QueueMessage(body="x", group_id="g", deduplication_id="d")) is None


def test_queue_wraps_transport_errors() -> None:
    client = QueueClient(queue_url="http://queue.local/q")
    client._session.post = Mock(side_effect=requests.exceptions.ConnectionError("refused"))

    with pytest.raises(QueueAPIError, match="refused"):
        client.send_message(QueueMessage(body="x", group_id="g", deduplication_id="d"))


def test_queue_rejects_oversized_ids() -> None:
    client = QueueClient(queue_url="http://queue.local/q")
    client._session.post = Mock()

    with pytest.raises(QueueAPIError):
        client.send_message(QueueMessage(body="x", group_id="g" * 129, deduplication_id="d"))
    client._session.post.assert_not_called()


def test_queue_url_is_required() -> None:
    with pytest.raises(QueueAPIError):
        QueueClient(queue_url="")


def test_mock_queue_drops_duplicates() -> None:
    client = MockQueueClient()

    client.send_message(QueueMessage(body="a", group_id="g", deduplication_id="same"))
    client.send_message(QueueMessage(body="a again", group_id="g", deduplication_id="same"))

    assert [m.body for m in client.messages] == ["a"]

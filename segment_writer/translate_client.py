"""
Machine translation API client.

Sends finalized transcript text to an HTTP translation service and
returns the translated text.
"""

import logging
from typing import Optional
import requests

logger = logging.getLogger(__name__)


class TranslateClient:
    """
    Client for an HTTP machine translation service.

    Expects a POST /translate endpoint that accepts
    {"text", "source_lang", "target_lang"} and answers
    {"translated_text": "..."}.
    """

    DEFAULT_BASE_URL = "http://localhost:8766"

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize translation client.

        Args:
            base_url: Optional custom API base URL
            api_key: Optional API key, sent as X-API-Key
            timeout: Request timeout in seconds
        """
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})
        if api_key:
            self._session.headers["X-API-Key"] = api_key
        logger.info(f"TranslateClient initialized, base_url={self.base_url}")

    def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        """
        Translate text between two language codes.

        Raises:
            TranslateAPIError: On transport errors or a malformed response
        """
        endpoint = f"{self.base_url}/translate"
        payload = {
            "text": text,
            "source_lang": source_language,
            "target_lang": target_language,
        }

        try:
            response = self._session.post(
                endpoint,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise TranslateAPIError(f"Translation request failed: {e}") from e
        except ValueError as e:
            raise TranslateAPIError(f"Translation response is not JSON: {e}") from e

        translated = data.get("translated_text") if isinstance(data, dict) else None
        if not isinstance(translated, str):
            raise TranslateAPIError(f"Translation response missing translated_text: {data}")
        return translated

    def close(self):
        """Close the HTTP session."""
        self._session.close()
        logger.info("TranslateClient session closed")


class TranslateAPIError(Exception):
    """Exception raised for translation API errors."""
    pass


# --- Mock client for testing without a translation service ---

class MockTranslateClient(TranslateClient):
    """
    Mock translation client for local runs.

    Tags the text with the target language instead of translating.
    """

    def __init__(self):
        self.calls: list[tuple[str, str, str]] = []
        logger.info("MockTranslateClient initialized for testing")

    def translate_text(
        self,
        text: str,
        source_language: str,
        target_language: str,
    ) -> str:
        self.calls.append((text, source_language, target_language))
        return f"[{target_language}] {text}"

    def close(self):
        logger.info("MockTranslateClient closed")

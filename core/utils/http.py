# core/utils/http.py
import logging
from typing import Any, Dict, Optional

import requests

from core.config import get_settings
from core.errors import NetworkError, NotFoundError, ProviderError, RequestTimeoutError

logger = logging.getLogger(__name__)


class IsbnDbClient:
    """Thin client for the ISBNdb bibliographic metadata API"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.isbndb_api_key
        self.base_url = (base_url or settings.isbndb_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.metadata_timeout
        self.session = session or requests.Session()
        if not self.api_key:
            logger.warning("ISBNDB_API_KEY is not set, metadata lookups will likely fail")

    def fetch_book(self, isbn: str) -> Dict[str, Any]:
        """
        Fetch a single book record.

        Args:
            isbn: A cleaned ISBN-10 or ISBN-13

        Returns:
            The provider's ``book`` object

        Raises:
            RequestTimeoutError: The provider did not answer within the timeout
            NetworkError: The provider could not be reached
            NotFoundError: The provider has no record for this ISBN
            ProviderError: Any other non-2xx answer
        """
        url = f"{self.base_url}/book/{isbn}"
        headers = {
            "Authorization": self.api_key or "",
            "Content-Type": "application/json",
        }
        logger.info(f"Fetching metadata for ISBN {isbn}")

        try:
            response = self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.Timeout as e:
            logger.warning(f"Metadata request for {isbn} timed out after {self.timeout}s")
            raise RequestTimeoutError(f"Metadata lookup timed out after {self.timeout:g}s") from e
        except requests.RequestException as e:
            logger.warning(f"Metadata request for {isbn} failed: {e}")
            raise NetworkError(f"Could not reach metadata provider: {e}") from e

        logger.info(f"Metadata response for {isbn}: {response.status_code}")

        if response.status_code == 404:
            raise NotFoundError(f"No book found for ISBN {isbn}")
        if not response.ok:
            logger.error(f"Metadata provider returned {response.status_code} for {isbn}: {response.text[:500]}")
            raise ProviderError(
                f"Metadata provider returned {response.status_code}: {response.reason}",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError("Metadata provider returned invalid JSON", status_code=response.status_code) from e

        book = payload.get("book") if isinstance(payload, dict) else None
        if not book:
            raise NotFoundError(f"No book found for ISBN {isbn}")
        return book

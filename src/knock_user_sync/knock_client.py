"""HTTP client for the Knock users API."""

from typing import Any, Optional

import requests

from .config import DEFAULT_TIMEOUT_SECONDS, Config
from .exceptions import BulkIdentifyError, DirectoryFetchError

# HTTP Status codes
HTTP_OK = 200
HTTP_CREATED = 201

BULK_IDENTIFY_SUCCESS = (HTTP_OK, HTTP_CREATED)


class KnockClient:
    """Synchronous client for the two Knock endpoints the sync needs."""

    def __init__(self, config: Config, session: Optional[requests.Session] = None):
        """
        Initialize Knock client.

        Args:
            config: Configuration with API URL, key and timeout
            session: Optional pre-built session (a new one is created otherwise)
        """
        self.config = config
        self.api_url = config.api_url.rstrip("/")
        self.timeout = config.timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        self.session = session
        self._owns_session = session is None

    def __enter__(self):
        """Context manager entry - create the HTTP session."""
        if self.session is None:
            self.session = requests.Session()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit - close the HTTP session if we created it."""
        self.close()
        return False

    def close(self):
        """Close the HTTP session."""
        if self.session is not None and self._owns_session:
            self.session.close()
            self.session = None

    def _headers(self, content_type: Optional[str] = None) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.knock_api_key}",
            "Accept": "application/json",
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _session(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
            self._owns_session = True
        return self.session

    def list_users(self) -> str:
        """
        Fetch the Knock user directory.

        Returns:
            Raw response body

        Raises:
            DirectoryFetchError: On any status other than 200, or a transport error
        """
        url = f"{self.api_url}/users"
        try:
            response = self._session().get(url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            msg = f"Failed to fetch Knock users: {e}"
            raise DirectoryFetchError(msg) from e

        if response.status_code != HTTP_OK:
            msg = f"Failed to fetch Knock users (HTTP {response.status_code})"
            raise DirectoryFetchError(msg, status_code=response.status_code, body=response.text)

        return response.text

    def bulk_identify(self, payload: dict[str, Any]) -> str:
        """
        Create or update many users in one call.

        Args:
            payload: Complete request body, ``{"users": [...]}``

        Returns:
            Raw response body

        Raises:
            BulkIdentifyError: On any status other than 200/201, or a transport error
        """
        url = f"{self.api_url}/users/bulk/identify"
        try:
            response = self._session().post(
                url,
                json=payload,
                headers=self._headers(content_type="application/json"),
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            msg = f"Failed to bulk identify users: {e}"
            raise BulkIdentifyError(msg) from e

        if response.status_code not in BULK_IDENTIFY_SUCCESS:
            msg = f"Failed to bulk identify users (HTTP {response.status_code})"
            raise BulkIdentifyError(msg, status_code=response.status_code, body=response.text)

        return response.text

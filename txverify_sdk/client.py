"""
HTTP client for the transaction encode API.
"""
import logging
import os
import urllib.parse
from typing import Any, Dict, Optional, Tuple

import requests
from pydantic import BaseModel
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .engine import VerificationEngine
from .exceptions import APIConnectionError, APIError
from .models import VerificationResult

API_URL_ENV = "TXVERIFY_API_URL"
API_KEY_ENV = "TXVERIFY_API_KEY"


def _check_url(name: str, url: str) -> None:
    parsed = urllib.parse.urlparse(url)
    host = parsed.netloc.split(":")[0]
    is_local = host in ("localhost", "127.0.0.1")
    if parsed.scheme != "https" and not is_local:
        raise ValueError(f"{name} must use https:// for security (got: {parsed.scheme}://)")


class EncodeAPIClient:
    """
    Client for ``POST {base_url}/{chainId}/transaction/encode``.

    The client only transports data; nothing it returns is trusted until it
    has been through VerificationEngine.verify.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: int = 30,
        retry_count: int = 3,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the client

        Args:
            base_url: API base URL (defaults to $TXVERIFY_API_URL)
            api_key: API key sent in the Authorization header (defaults to $TXVERIFY_API_KEY)
            timeout: Timeout for HTTP requests in seconds
            retry_count: Number of retries for connection errors and 5xx responses
            logger: Optional logger instance to use for debug/info logging

        Raises:
            ValueError: If no base URL is configured, or it does not use https
                (unless it is localhost/127.0.0.1)
        """
        base_url = base_url or os.environ.get(API_URL_ENV)
        if not base_url:
            raise ValueError(f"base_url must be provided or set via {API_URL_ENV}")
        _check_url("base_url", base_url)

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key or os.environ.get(API_KEY_ENV)
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = self.api_key
        return headers

    def test_connection(self) -> Tuple[bool, str]:
        """
        Check that the API answers at ``base_url`` and accepts the API key.

        Never raises; failures are described in the returned message.

        Returns:
            (success, message)
        """
        try:
            response = self.session.get(self.base_url, headers=self._headers(), timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.warning(f"Encode API connection check failed: {e}")
            return False, str(e)

        if not response.ok:
            return False, f"HTTP {response.status_code}: {response.reason}"
        return True, "Connection successful"

    def encode_transaction(self, chain_id: str, intent: Any) -> Dict[str, Any]:
        """
        Ask the API to encode a transaction.

        Args:
            chain_id: Chain identifier, e.g. "ethereum"
            intent: Transaction intent as a dict or intent model

        Returns:
            The decoded JSON response

        Raises:
            APIConnectionError: If the API cannot be reached
            APIError: If the API answers with an error status or invalid JSON
        """
        if isinstance(intent, BaseModel):
            intent = intent.model_dump(by_alias=True, exclude_none=True)
        url = f"{self.base_url}/{urllib.parse.quote(chain_id, safe='')}/transaction/encode"
        self.logger.debug(f"Requesting {intent.get('mode')} encoding from {url}")

        try:
            response = self.session.post(
                url,
                json={"transaction": {"data": intent}},
                headers=self._headers(),
                timeout=self.timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as e:
            self.logger.error(f"Encode API request failed: {e}")
            raise APIConnectionError(f"Could not reach encode API: {e}") from e
        except requests.RequestException as e:
            self.logger.error(f"Encode API request failed: {e}")
            raise APIError(f"Encode API request failed: {e}") from e

        if response.status_code >= 400:
            self.logger.error(f"Encode API returned {response.status_code}: {response.text[:200]}")
            raise APIError(
                f"Encode API returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        try:
            result = response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON response from encode API: {e}", status_code=response.status_code) from e
        if not isinstance(result, dict):
            raise APIError("Encode API response is not a JSON object", status_code=response.status_code)
        return result

    def encode_and_verify(
        self, chain_id: str, intent: Any, engine: Optional[VerificationEngine] = None
    ) -> VerificationResult:
        """
        Encode a transaction and verify the response against the intent.

        Args:
            chain_id: Chain identifier
            intent: Transaction intent
            engine: VerificationEngine to use (a default engine if omitted)
        """
        if engine is None:
            engine = VerificationEngine(logger=self.logger)
        response = self.encode_transaction(chain_id, intent)
        return engine.verify(intent, response)

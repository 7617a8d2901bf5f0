"""HTTP client for a REST blob store (HEAD/GET/PUT on `<base_url>/<key>`)."""

import time
import uuid
from typing import Optional

import httpx

from common.logging_config import get_logger
from engine.exceptions import BlobNotFoundError, BlobStoreError

logger = get_logger(__name__)


class HttpBlobStore:
    """HTTP blob store client with retry logic and error handling."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30,
        max_retries: int = 0,
        retry_backoff_multiplier: float = 2,
        api_token: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize blob store client.

        Args:
            base_url: URL prefix blobs live under (e.g. "http://host:8080/blobs")
            timeout: Per-request timeout in seconds
            max_retries: Retries on 5xx responses and network failures (0 disables)
            retry_backoff_multiplier: Delay before retry n is multiplier ** n seconds
            api_token: Optional bearer token
            transport: Optional httpx transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.retry_backoff_multiplier = retry_backoff_multiplier
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self.session = httpx.Client(
            base_url=self.base_url + "/",
            timeout=timeout,
            headers=headers,
            transport=transport,
        )
        logger.info(f"Initialized HttpBlobStore [base_url={self.base_url}]")

    def _request_with_retry(self, method: str, key: str, **kwargs) -> httpx.Response:
        """
        Make HTTP request with retry logic on 5xx errors and network failures.

        Args:
            method: HTTP method (HEAD, GET, PUT)
            key: Blob key, relative to base_url
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            HTTP response object (any status below 500, or the last 5xx)

        Raises:
            BlobStoreError: If the connection fails after all retries
        """
        request_id = str(uuid.uuid4())
        headers = kwargs.pop("headers", {})
        headers["X-Request-ID"] = request_id

        last_exception = None
        for attempt in range(self.max_retries + 1):
            try:
                response = self.session.request(method, key, headers=headers, **kwargs)
                logger.debug(
                    f"Response received: {method} {key} status={response.status_code} [request_id={request_id}]"
                )

                if response.status_code >= 500 and attempt < self.max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Server error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {key} status={response.status_code}, retrying in {delay}s [request_id={request_id}]"
                    )
                    time.sleep(delay)
                    continue

                return response

            except httpx.TransportError as e:
                last_exception = e
                if attempt < self.max_retries:
                    delay = self.retry_backoff_multiplier ** attempt
                    logger.warning(
                        f"Network error (attempt {attempt + 1}/{self.max_retries + 1}): "
                        f"{method} {key} error={type(e).__name__}, retrying in {delay}s [request_id={request_id}]"
                    )
                    time.sleep(delay)
                    continue
                logger.error(
                    f"Network error (max retries exceeded): {method} {key} error={e} [request_id={request_id}]"
                )

        if isinstance(last_exception, httpx.TimeoutException):
            raise BlobStoreError(f"{method} {key} timed out") from last_exception
        if isinstance(last_exception, httpx.ConnectError):
            raise BlobStoreError(f"Cannot connect to blob store at {self.base_url}") from last_exception
        raise BlobStoreError(f"{method} {key} failed: {last_exception}") from last_exception

    @staticmethod
    def _fail(response: httpx.Response, method: str, key: str) -> BlobStoreError:
        return BlobStoreError(f"{method} {key} failed with status {response.status_code}")

    def exists(self, key: str) -> bool:
        response = self._request_with_retry("HEAD", key)
        if response.status_code == 200:
            return True
        if response.status_code == 404:
            return False
        raise self._fail(response, "HEAD", key)

    def read(self, key: str) -> bytes:
        """
        Download a blob.

        Raises:
            BlobNotFoundError: If the store answers 404
            BlobStoreError: On any other failure
        """
        response = self._request_with_retry("GET", key)
        if response.status_code == 200:
            return response.content
        if response.status_code == 404:
            raise BlobNotFoundError(f"Blob not found: {key}")
        raise self._fail(response, "GET", key)

    def write(self, key: str, data: bytes) -> str:
        """
        Upload a blob.

        Returns:
            URL of the written blob
        """
        response = self._request_with_retry(
            "PUT",
            key,
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if response.status_code not in (200, 201, 204):
            raise self._fail(response, "PUT", key)
        return f"{self.base_url}/{key}"

    def close(self) -> None:
        """Close the HTTP session."""
        self.session.close()

    def __repr__(self) -> str:
        return f"HttpBlobStore({self.base_url!r})"

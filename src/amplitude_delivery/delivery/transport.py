"""
Module: transport.py
Description: HTTP transport for the Amplitude APIs.

Performs exactly one HTTP round trip per call over a shared, pooled
httpx client. Retrying is left to the callers' RetryPolicy.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from amplitude_delivery.exceptions import TransportFailure
from amplitude_delivery.utils.logger import get_logger

logger = get_logger(__name__)

JSON_HEADERS = {'Content-Type': 'application/json'}
FORM_HEADERS = {'Content-Type': 'application/x-www-form-urlencoded'}


@dataclass(frozen=True)
class TransportResponse:
    """
    Status and parsed body of one HTTP round trip.

    Attributes:
        status_code: HTTP status code
        body: Parsed JSON object, or None when the body is not a JSON object
        text: Raw response text
        payload_size: Size of the request body in bytes
    """

    status_code: int
    body: Optional[Dict[str, Any]]
    text: str
    payload_size: int


class HttpTransport:
    """
    Pooled HTTP client shared by all drivers.

    Certificates are validated unless verify_ssl is explicitly disabled.
    The instance holds no per-request state and may be shared across
    drivers and threads.

    Example:
        >>> with HttpTransport(timeout_seconds=5) as transport:
        ...     response = transport.post_json(url, {'api_key': key, 'events': []})
    """

    def __init__(
        self,
        timeout_seconds: float = 5,
        verify_ssl: bool = True,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the transport.

        Args:
            timeout_seconds: Default timeout applied when a call sets none
            verify_ssl: Validate TLS certificates
            client: Pre-built httpx client (for custom pools or testing)
        """
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.timeout_seconds = timeout_seconds
        self.verify_ssl = verify_ssl
        self._owns_client = client is None
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout_seconds),
            verify=verify_ssl
        )

        if not verify_ssl:
            logger.warning("TLS certificate verification disabled")

        logger.info(
            "HTTP transport initialized",
            timeout_seconds=timeout_seconds,
            verify_ssl=verify_ssl
        )

    def post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        timeout_seconds: Optional[float] = None
    ) -> TransportResponse:
        """
        POST a JSON body.

        Raises:
            TransportFailure: On timeout, network or protocol error
        """
        return self._post(url, timeout_seconds, json=payload, headers=JSON_HEADERS)

    def post_form(
        self,
        url: str,
        data: Dict[str, str],
        timeout_seconds: Optional[float] = None
    ) -> TransportResponse:
        """
        POST a form-encoded body.

        Raises:
            TransportFailure: On timeout, network or protocol error
        """
        return self._post(url, timeout_seconds, data=data, headers=FORM_HEADERS)

    def _post(self, url: str, timeout_seconds: Optional[float], **kwargs: Any) -> TransportResponse:
        timeout = httpx.Timeout(timeout_seconds or self.timeout_seconds)

        logger.debug("Sending request", url=url, timeout_seconds=timeout.read)

        try:
            response = self.client.post(url, timeout=timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("Request timeout", url=url, error=str(e))
            raise TransportFailure(f"Request timed out: {e}") from e
        except httpx.HTTPError as e:
            logger.warning(
                "Request network error",
                url=url,
                error=str(e),
                error_type=type(e).__name__
            )
            raise TransportFailure(f"Network error: {e}") from e

        try:
            body = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            body = None
        if not isinstance(body, dict):
            body = None

        logger.debug("Response received", url=url, status_code=response.status_code)

        return TransportResponse(
            status_code=response.status_code,
            body=body,
            text=response.text[:2000],
            payload_size=len(response.request.content)
        )

    def close(self) -> None:
        """Close the connection pool if this transport created it."""
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "HttpTransport":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

"""
Module: exceptions.py
Description: Error types raised by the delivery client.

Only pre-flight input problems and unrecoverable bulk failures are
raised; single-call paths report failure through ResponseRecord.

Key Components:
- DeliveryError: Base error carrying code and remote payload
- RecordValidationError: Record rejected before any I/O
- RecordTypeError: Wrong record type handed to a send call
- TransportFailure: Network or timeout failure of one HTTP round trip
- BatchDeliveryError: Terminal chunk failure with partial progress

Dependencies: typing
Author: Analytics Platform Team
"""

from typing import Any, Dict, Optional


class DeliveryError(Exception):
    """
    Base error for analytics delivery.

    Attributes:
        message: Human-readable description
        code: HTTP status or transport-inferred code, if any
        response_data: Remote payload kept for diagnostics
    """

    def __init__(
        self,
        message: str = "",
        code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.response_data = response_data

    def __str__(self) -> str:
        if self.code:
            return f"{self.message} (code={self.code})"
        return self.message


class RecordValidationError(DeliveryError, ValueError):
    """Record failed validation at send time."""


class RecordTypeError(DeliveryError, TypeError):
    """Item passed to a send call is not the expected record type."""


class TransportFailure(DeliveryError):
    """
    One HTTP round trip failed before a status code was received.

    The originating httpx exception is chained as __cause__.
    """


class BatchDeliveryError(DeliveryError):
    """
    A chunk of a bulk send failed terminally.

    Attributes:
        chunk_index: Zero-based index of the failing chunk
        chunks_total: Number of chunks the input was split into
        chunks_delivered: Chunks acknowledged before the failure surfaced
        events_ingested: Events ingested by the delivered chunks
        payload_size_bytes: Payload bytes reported by the delivered chunks
    """

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        response_data: Optional[Dict[str, Any]] = None,
        *,
        chunk_index: int,
        chunks_total: int,
        chunks_delivered: int = 0,
        events_ingested: int = 0,
        payload_size_bytes: int = 0
    ):
        super().__init__(message, code, response_data)
        self.chunk_index = chunk_index
        self.chunks_total = chunks_total
        self.chunks_delivered = chunks_delivered
        self.events_ingested = events_ingested
        self.payload_size_bytes = payload_size_bytes

    def progress(self) -> Dict[str, int]:
        """Partial progress summary suitable for logging."""
        return {
            'chunk_index': self.chunk_index,
            'chunks_total': self.chunks_total,
            'chunks_delivered': self.chunks_delivered,
            'events_ingested': self.events_ingested,
            'payload_size_bytes': self.payload_size_bytes,
        }

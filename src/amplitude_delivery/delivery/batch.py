"""
Module: batch.py
Description: Bulk delivery through the Batch API.

Splits large event lists into fixed-size chunks and sends each chunk
under the RetryPolicy. Unlike the realtime driver, an unrecoverable
chunk failure is raised as BatchDeliveryError carrying the progress
made by the chunks that were delivered.

Key Components:
- BatchDriver: Chunked sender with per-chunk retry isolation
- Sequential sending by default, optional bounded thread pool

Dependencies: concurrent.futures, tenacity (via RetryPolicy), httpx (via HttpTransport)
Author: Analytics Platform Team
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence, Tuple

from amplitude_delivery.delivery.base import DriverBase, ensure_events
from amplitude_delivery.delivery.formatter import format_event
from amplitude_delivery.delivery.retry import CLIENT_ERROR_CODES, RetryPolicy
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import BatchDeliveryError, DeliveryError, TransportFailure
from amplitude_delivery.models.event import EventRecord
from amplitude_delivery.models.response import RETRYABLE_CODES, ResponseRecord
from amplitude_delivery.utils.batch_helpers import chunk_list, sum_counters
from amplitude_delivery.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINT = 'https://api2.amplitude.com/batch'

ChunkOutcome = Tuple[Optional[ResponseRecord], Optional[DeliveryError]]


class BatchDriver(DriverBase):
    """
    Chunked bulk event driver for high-volume and backfill loads.

    Attributes:
        api_key: Amplitude project API key
        endpoint: Batch API URL
        policy: Retry policy applied to every chunk independently
        batch_size: Events per request
        timeout_seconds: Per-request timeout
        max_workers: Chunks in flight at once (1 sends sequentially)

    Example:
        >>> driver = BatchDriver(api_key, transport, RetryPolicy(), batch_size=1000)
        >>> driver.send_events(events).events_ingested
        2500
    """

    name = 'batch'
    option_names = ('endpoint', 'timeout_seconds', 'batch_size', 'max_workers')

    def __init__(
        self,
        api_key: str,
        transport: HttpTransport,
        policy: Optional[RetryPolicy] = None,
        endpoint: str = DEFAULT_ENDPOINT,
        batch_size: int = 1000,
        timeout_seconds: float = 60,
        max_workers: int = 1
    ):
        super().__init__(api_key, endpoint, transport, timeout_seconds)
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if max_workers <= 0:
            raise ValueError("max_workers must be positive")

        self.policy = policy or RetryPolicy()
        self.batch_size = batch_size
        self.max_workers = max_workers

    def send_events(self, events: Sequence[EventRecord]) -> ResponseRecord:
        """
        Send events chunk by chunk.

        Args:
            events: Non-empty list of events

        Returns:
            Aggregated ResponseRecord with summed counters

        Raises:
            DeliveryError: When events is empty
            BatchDeliveryError: When a chunk fails terminally
        """
        ensure_events(events)

        chunks = chunk_list(list(events), self.batch_size)
        logger.info(
            "Starting bulk delivery",
            events=len(events),
            chunks=len(chunks),
            batch_size=self.batch_size,
            max_workers=self.max_workers
        )

        if self.max_workers == 1 or len(chunks) == 1:
            outcomes = self._send_sequential(chunks)
        else:
            outcomes = self._send_concurrent(chunks)

        delivered = [response for response, _ in outcomes if response is not None]
        for index, (_, error) in enumerate(outcomes):
            if error is not None:
                raise self._chunk_error(error, index, len(chunks), delivered) from error

        totals = self._totals(delivered)
        result = ResponseRecord(
            code=200,
            events_ingested=totals['events_ingested'],
            payload_size_bytes=totals['payload_size_bytes'],
            server_upload_time=delivered[-1].server_upload_time
        )

        logger.info(
            "Bulk delivery completed",
            events=len(events),
            chunks=len(chunks),
            events_ingested=result.events_ingested,
            payload_size_bytes=result.payload_size_bytes
        )
        return result

    def _send_sequential(self, chunks: List[List[EventRecord]]) -> List[ChunkOutcome]:
        outcomes: List[ChunkOutcome] = []
        for index, chunk in enumerate(chunks):
            outcome = self._attempt_chunk(index, chunk)
            outcomes.append(outcome)
            if outcome[1] is not None:
                break
        return outcomes

    def _send_concurrent(self, chunks: List[List[EventRecord]]) -> List[ChunkOutcome]:
        # Results are read back in chunk order so aggregation is deterministic.
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [
                pool.submit(self._attempt_chunk, index, chunk)
                for index, chunk in enumerate(chunks)
            ]
            return [future.result() for future in futures]

    def _attempt_chunk(self, index: int, chunk: List[EventRecord]) -> ChunkOutcome:
        try:
            return self.send_chunk(index, chunk), None
        except DeliveryError as e:
            logger.error(
                "Chunk delivery failed",
                chunk_index=index,
                events=len(chunk),
                status_code=e.code,
                error=e.message
            )
            return None, e
        except Exception as e:
            logger.error(
                "Chunk delivery failed",
                chunk_index=index,
                events=len(chunk),
                error=str(e),
                error_type=type(e).__name__
            )
            error = DeliveryError(str(e), None, {'last_error': str(e)})
            error.__cause__ = e
            return None, error

    def send_chunk(self, index: int, chunk: List[EventRecord]) -> ResponseRecord:
        """
        Send one chunk under the retry policy.

        Raises:
            DeliveryError: On a client error, an unexpected status or
                exhausted retries, carrying the last observed failure
        """
        payload: Dict[str, Any] = {
            'api_key': self.api_key,
            'events': [format_event(event) for event in chunk],
        }

        try:
            response = self.policy.call(
                lambda: self.transport.post_json(self.endpoint, payload, self.timeout_seconds)
            )
        except TransportFailure as e:
            raise DeliveryError(
                f'Failed to send chunk after {self.policy.retry_count} retries',
                e.code,
                {'last_error': e.message}
            ) from e

        status = response.status_code
        body = response.body if isinstance(response.body, dict) else {'response_body': response.text}

        if status == 200:
            result = ResponseRecord.from_body(
                200,
                response.body,
                default_ingested=len(chunk),
                default_payload_size=response.payload_size
            )
            logger.info(
                "Chunk delivered",
                chunk_index=index,
                events=len(chunk),
                events_ingested=result.events_ingested
            )
            return result

        if status in CLIENT_ERROR_CODES:
            raise DeliveryError(body.get('error') or 'Bad request', status, body)
        if status in RETRYABLE_CODES:
            raise DeliveryError(
                f'Failed to send chunk after {self.policy.retry_count} retries',
                status,
                body
            )
        raise DeliveryError('Unexpected response status', status, body)

    @staticmethod
    def _totals(delivered: List[ResponseRecord]) -> Dict[str, int]:
        return sum_counters(
            (response.model_dump() for response in delivered),
            ('events_ingested', 'payload_size_bytes')
        )

    def _chunk_error(
        self,
        error: DeliveryError,
        index: int,
        chunks_total: int,
        delivered: List[ResponseRecord]
    ) -> BatchDeliveryError:
        totals = self._totals(delivered)
        return BatchDeliveryError(
            f'Chunk {index + 1} of {chunks_total} failed: {error.message}',
            error.code,
            error.response_data,
            chunk_index=index,
            chunks_total=chunks_total,
            chunks_delivered=len(delivered),
            events_ingested=totals['events_ingested'],
            payload_size_bytes=totals['payload_size_bytes']
        )

"""
Module: realtime.py
Description: Realtime delivery through the HTTP V2 API.

Sends all events in one request with no retries. Failures never
propagate: they are reported as a non-success ResponseRecord.
"""

from typing import Any, Dict, Optional, Sequence

from amplitude_delivery.delivery.base import DriverBase, ensure_events
from amplitude_delivery.delivery.formatter import format_event
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import DeliveryError
from amplitude_delivery.models.event import EventRecord
from amplitude_delivery.models.response import ResponseRecord
from amplitude_delivery.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINT = 'https://api2.amplitude.com/2/httpapi'


class RealtimeDriver(DriverBase):
    """
    Single-call event driver.

    Attributes:
        api_key: Amplitude project API key
        endpoint: HTTP V2 API URL
        timeout_seconds: Request timeout
        min_id_length: Forwarded as options.min_id_length when set
    """

    name = 'realtime'
    option_names = ('endpoint', 'timeout_seconds', 'min_id_length')

    def __init__(
        self,
        api_key: str,
        transport: HttpTransport,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_seconds: float = 5,
        min_id_length: Optional[int] = 5
    ):
        super().__init__(api_key, endpoint, transport, timeout_seconds)
        self.min_id_length = min_id_length

    def build_payload(self, events: Sequence[EventRecord]) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            'api_key': self.api_key,
            'events': [format_event(event) for event in events],
        }
        if self.min_id_length is not None:
            payload['options'] = {'min_id_length': self.min_id_length}
        return payload

    def send_events(self, events: Sequence[EventRecord]) -> ResponseRecord:
        """
        Send events in one HTTP V2 request.

        Args:
            events: Non-empty list of events

        Returns:
            ResponseRecord; code 200 on success, otherwise the remote or
            transport code (500 when none is known) with an error message

        Raises:
            DeliveryError: Only when events is empty
        """
        ensure_events(events)

        try:
            payload = self.build_payload(events)
            response = self.transport.post_json(self.endpoint, payload, self.timeout_seconds)

            if response.status_code == 200:
                result = ResponseRecord.from_body(
                    200,
                    response.body,
                    default_ingested=len(events),
                    default_payload_size=response.payload_size
                )
                logger.info(
                    "Events delivered",
                    driver=self.name,
                    events=len(events),
                    events_ingested=result.events_ingested
                )
                return result

            raise DeliveryError(
                'Unexpected response status',
                response.status_code,
                response.body or {'response_body': response.text}
            )

        except DeliveryError as e:
            logger.warning(
                "Event delivery failed",
                driver=self.name,
                events=len(events),
                status_code=e.code,
                error=e.message
            )
            return ResponseRecord.failure(e.code, e.message, e.response_data)

        except Exception as e:
            logger.error(
                "Event delivery failed",
                driver=self.name,
                events=len(events),
                error=str(e),
                error_type=type(e).__name__
            )
            return ResponseRecord.failure(500, str(e))

"""
Module: identify.py
Description: User property updates through the Identify API.

The Identify API takes a form-encoded body whose ``identification``
field is a JSON string, unlike the JSON bodies of the event APIs.
Delivery failures are reported as a non-success ResponseRecord.
"""

import json

from amplitude_delivery.delivery.base import DriverBase
from amplitude_delivery.delivery.formatter import format_identify
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import DeliveryError, RecordTypeError
from amplitude_delivery.models.event import now_millis
from amplitude_delivery.models.identity import IdentityRecord
from amplitude_delivery.models.response import ResponseRecord
from amplitude_delivery.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_ENDPOINT = 'https://api2.amplitude.com/identify'


class IdentifyDriver(DriverBase):
    """Single-call identify sender."""

    name = 'identify'

    def __init__(
        self,
        api_key: str,
        transport: HttpTransport,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_seconds: float = 5
    ):
        super().__init__(api_key, endpoint, transport, timeout_seconds)

    def send_identify(self, identify: IdentityRecord) -> ResponseRecord:
        """
        Send one identify update.

        Args:
            identify: Identify record with at least one property operation

        Returns:
            ResponseRecord with events_ingested=1 on success

        Raises:
            RecordTypeError: If identify is not an IdentityRecord
            RecordValidationError: If the record is not sendable
        """
        if not isinstance(identify, IdentityRecord):
            raise RecordTypeError('identify must be an IdentityRecord instance')
        identify.validate_for_send()

        try:
            payload = {
                'api_key': self.api_key,
                'identification': json.dumps(format_identify(identify)),
            }
            response = self.transport.post_form(self.endpoint, payload, self.timeout_seconds)

            if response.status_code == 200:
                logger.info(
                    "Identify delivered",
                    user_id=identify.user_id,
                    device_id=identify.device_id
                )
                # The Identify API returns no counters.
                return ResponseRecord(
                    code=200,
                    events_ingested=1,
                    payload_size_bytes=len(json.dumps(payload).encode('utf-8')),
                    server_upload_time=now_millis()
                )

            raise DeliveryError(
                'Unexpected response status',
                response.status_code,
                response.body or {'response_body': response.text}
            )

        except DeliveryError as e:
            logger.warning(
                "Identify delivery failed",
                user_id=identify.user_id,
                status_code=e.code,
                error=e.message
            )
            return ResponseRecord.failure(e.code, e.message, e.response_data)

        except Exception as e:
            logger.error(
                "Identify delivery failed",
                user_id=identify.user_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return ResponseRecord.failure(500, str(e))

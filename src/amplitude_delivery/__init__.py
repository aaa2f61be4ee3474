"""
Package: amplitude_delivery
Description: Analytics event and identify delivery for the Amplitude APIs.

Builds validated event and identify records, formats them into sparse
wire payloads and sends them through a realtime, batch or identify
driver with bounded retries.
"""

from .config.settings import AmplitudeSettings, get_settings
from .delivery.result import Err, Ok
from .delivery.router import DeliveryRouter
from .exceptions import (
    BatchDeliveryError,
    DeliveryError,
    RecordTypeError,
    RecordValidationError,
    TransportFailure,
)
from .models import EventRecord, IdentityRecord, ResponseRecord

__version__ = "0.3.0"

__all__ = [
    "AmplitudeSettings",
    "BatchDeliveryError",
    "DeliveryError",
    "DeliveryRouter",
    "Err",
    "EventRecord",
    "IdentityRecord",
    "Ok",
    "RecordTypeError",
    "RecordValidationError",
    "ResponseRecord",
    "TransportFailure",
    "get_settings",
]

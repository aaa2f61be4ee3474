"""Common driver interface and helpers."""

import copy
from typing import Any, ClassVar, Optional, Protocol, Sequence, Tuple, TypeVar

from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import DeliveryError
from amplitude_delivery.models.event import EventRecord
from amplitude_delivery.models.response import ResponseRecord

D = TypeVar('D', bound='DriverBase')


class DeliveryDriver(Protocol):
    """Strategy for sending a list of events."""

    name: str

    def send_events(self, events: Sequence[EventRecord]) -> ResponseRecord:
        ...


class DriverBase:
    """
    Shared construction and reconfiguration for HTTP drivers.

    Drivers are read-only after construction; with_options() and
    with_api_key() return reconfigured copies sharing the same transport.
    """

    name: ClassVar[str] = ''
    option_names: ClassVar[Tuple[str, ...]] = ('endpoint', 'timeout_seconds')

    def __init__(self, api_key: str, endpoint: str, transport: HttpTransport, timeout_seconds: float):
        if not api_key or not isinstance(api_key, str):
            raise ValueError("api_key must be a non-empty string")
        if not endpoint or not endpoint.startswith(('http://', 'https://')):
            raise ValueError("endpoint must be a valid HTTP/HTTPS URL")
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self.api_key = api_key
        self.endpoint = endpoint
        self.transport = transport
        self.timeout_seconds = timeout_seconds

    def with_options(self: D, **overrides: Any) -> D:
        """Return a copy with the given options replaced."""
        unknown = set(overrides) - set(self.option_names)
        if unknown:
            raise ValueError(f"Unknown driver options: {', '.join(sorted(unknown))}")
        clone = copy.copy(self)
        for key, value in overrides.items():
            setattr(clone, key, value)
        return clone

    def with_api_key(self: D, api_key: str) -> D:
        """Return a copy sending with another project API key."""
        if not api_key:
            raise ValueError("api_key must be a non-empty string")
        clone = copy.copy(self)
        clone.api_key = api_key
        return clone


def ensure_events(events: Optional[Sequence[EventRecord]]) -> None:
    """
    Reject empty input before any network attempt.

    Raises:
        DeliveryError: If there is nothing to send
    """
    if not events:
        raise DeliveryError('No events to send')

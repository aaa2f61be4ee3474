"""
Module: router.py
Description: Driver selection and public entry point.

DeliveryRouter owns one shared HttpTransport, builds the realtime,
batch and identify drivers from AmplitudeSettings, type-checks input
and exposes the record-construction helpers.

Key Components:
- DeliveryRouter: send_event/send_events/using/send_identify
- deliver(): Never-raising boundary returning Ok or Err
- build_event()/build_identify(): Records from flat key/value input

Dependencies: pydantic, httpx (via HttpTransport), structlog
Author: Analytics Platform Team
"""

import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from amplitude_delivery.config.settings import DRIVER_ALIASES, AmplitudeSettings
from amplitude_delivery.delivery.base import DeliveryDriver
from amplitude_delivery.delivery.batch import BatchDriver
from amplitude_delivery.delivery.identify import IdentifyDriver
from amplitude_delivery.delivery.realtime import RealtimeDriver
from amplitude_delivery.delivery.result import DeliveryResult, Err, Ok
from amplitude_delivery.delivery.retry import RetryPolicy
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import DeliveryError, RecordTypeError, RecordValidationError
from amplitude_delivery.models.event import EventRecord
from amplitude_delivery.models.identity import IdentityRecord
from amplitude_delivery.models.response import ResponseRecord
from amplitude_delivery.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)

Record = Union[EventRecord, IdentityRecord]


class DeliveryRouter:
    """
    Entry point for analytics delivery.

    Drivers are created lazily from settings, or injected through
    ``drivers`` to replace the built-in strategies.

    Example:
        >>> router = DeliveryRouter(get_settings())
        >>> event = router.build_event({'userId': 'u-1', 'eventType': 'favorites_add'})
        >>> router.send_event(event).is_success()
        True
    """

    def __init__(
        self,
        settings: AmplitudeSettings,
        transport: Optional[HttpTransport] = None,
        drivers: Optional[Mapping[str, DeliveryDriver]] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the router.

        Args:
            settings: Delivery settings
            transport: Shared transport; created from settings when omitted
            drivers: Pre-built drivers keyed by name
            sleep: Sleep function used between bulk retries
        """
        self.settings = settings
        configure_logging(settings.log_level)
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(
            timeout_seconds=settings.realtime_timeout,
            verify_ssl=settings.verify_ssl
        )
        self.sleep = sleep
        self._factories: Dict[str, Callable[[], DeliveryDriver]] = {
            'realtime': self._create_realtime_driver,
            'batch': self._create_batch_driver,
        }
        self._drivers: Dict[str, DeliveryDriver] = dict(drivers or {})
        self._identify_driver: Optional[IdentifyDriver] = None

    def _create_realtime_driver(self) -> RealtimeDriver:
        return RealtimeDriver(
            self.settings.api_key,
            self.transport,
            endpoint=self.settings.realtime_endpoint,
            timeout_seconds=self.settings.realtime_timeout,
            min_id_length=self.settings.min_id_length
        )

    def _create_batch_driver(self) -> BatchDriver:
        policy = RetryPolicy(
            retry_count=self.settings.retry_count,
            retry_delay_ms=self.settings.retry_delay,
            throttle_cooldown_seconds=self.settings.throttle_cooldown,
            jitter_ms=self.settings.retry_jitter,
            sleep=self.sleep
        )
        return BatchDriver(
            self.settings.api_key,
            self.transport,
            policy,
            endpoint=self.settings.batch_endpoint,
            batch_size=self.settings.batch_size,
            timeout_seconds=self.settings.batch_timeout,
            max_workers=self.settings.batch_max_workers
        )

    def driver(self, name: Optional[str] = None) -> DeliveryDriver:
        """
        Return the driver registered under name (default driver when None).

        Raises:
            ValueError: If no driver is known by that name
        """
        key = name or self.settings.default_driver
        key = DRIVER_ALIASES.get(key, key)

        if key not in self._drivers:
            factory = self._factories.get(key)
            if factory is None:
                raise ValueError(f"Driver [{name}] not supported")
            self._drivers[key] = factory()
        return self._drivers[key]

    def register(self, name: str, driver: DeliveryDriver) -> None:
        """Register or replace a driver."""
        self._drivers[name] = driver

    def identify_driver(self) -> IdentifyDriver:
        if self._identify_driver is None:
            self._identify_driver = IdentifyDriver(
                self.settings.api_key,
                self.transport,
                endpoint=self.settings.identify_endpoint,
                timeout_seconds=self.settings.identify_timeout
            )
        return self._identify_driver

    @staticmethod
    def _check_events(events: Sequence[Any]) -> List[EventRecord]:
        if isinstance(events, (str, bytes, Mapping)) or not isinstance(events, Sequence):
            raise RecordTypeError('events must be a list of EventRecord instances')
        for event in events:
            if not isinstance(event, EventRecord):
                raise RecordTypeError('All events must be instance of EventRecord')
        return list(events)

    def send_event(self, event: EventRecord) -> ResponseRecord:
        """Send one event through the default driver."""
        return self.driver().send_events(self._check_events([event]))

    def send_events(self, events: Sequence[EventRecord]) -> ResponseRecord:
        """
        Send events through the default driver.

        Raises:
            RecordTypeError: If any item is not an EventRecord
        """
        return self.driver().send_events(self._check_events(events))

    def using(self, name: str, events: Sequence[EventRecord]) -> ResponseRecord:
        """Send events through the named driver."""
        return self.driver(name).send_events(self._check_events(events))

    def send_identify(self, identify: IdentityRecord) -> ResponseRecord:
        """Send one identify update."""
        return self.identify_driver().send_identify(identify)

    def build_event(self, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> EventRecord:
        """
        Build an EventRecord from flat key/value input.

        Raises:
            pydantic.ValidationError: If identity or event_type is missing
        """
        return EventRecord.model_validate({**(data or {}), **fields})

    def build_identify(self, data: Optional[Mapping[str, Any]] = None, **fields: Any) -> IdentityRecord:
        """
        Build an IdentityRecord from flat key/value input.

        Raises:
            pydantic.ValidationError: If identity is missing
        """
        return IdentityRecord.model_validate({**(data or {}), **fields})

    def deliver(
        self,
        record: Union[Record, Sequence[EventRecord]],
        driver: Optional[str] = None
    ) -> DeliveryResult:
        """
        Send without ever raising.

        Args:
            record: Event, identify record or list of events
            driver: Driver name for events (default driver when None)

        Returns:
            Ok with the response, or Err describing the failure. Err is
            logged here; callers may drop it.
        """
        try:
            if isinstance(record, IdentityRecord):
                response = self.send_identify(record)
            elif isinstance(record, EventRecord):
                response = self.using(driver or self.settings.default_driver, [record])
            else:
                response = self.using(driver or self.settings.default_driver, record)
        except (DeliveryError, ValueError, TypeError) as e:
            error = e if isinstance(e, DeliveryError) else RecordValidationError(str(e))
            logger.error(
                "Delivery failed",
                error=str(error),
                error_type=type(e).__name__,
                response_data=error.response_data,
                progress=e.progress() if hasattr(e, 'progress') else None
            )
            return Err(error)
        except Exception as e:
            logger.error(
                "Delivery failed",
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True
            )
            return Err(DeliveryError(str(e), None, {'error_type': type(e).__name__}))

        if response.is_success():
            return Ok(response)

        logger.warning(
            "Delivery not accepted",
            status_code=response.code,
            error=response.error_details(),
            throttled=response.is_throttled(),
            silenced=response.is_silenced()
        )
        return Err(
            DeliveryError(response.error or 'Delivery failed', response.code, response.to_dict()),
            response
        )

    def close(self) -> None:
        """Release the shared transport if this router created it."""
        if self._owns_transport:
            self.transport.close()

    def __enter__(self) -> "DeliveryRouter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

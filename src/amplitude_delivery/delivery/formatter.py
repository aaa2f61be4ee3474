"""
Module: formatter.py
Description: Wire payload formatting for event and identify records.

Pure functions turning records into the sparse dictionaries expected by
the Amplitude APIs. Required keys are always present; every optional
attribute is emitted only when it carries a value.

Key Components:
- format_event(): EventRecord to event payload
- format_identify(): IdentityRecord to identification payload
- check_properties(): Property value kind validation

Dependencies: typing, models
Author: Analytics Platform Team
"""

from typing import Any, Dict, Mapping, Tuple

from amplitude_delivery.exceptions import RecordValidationError
from amplitude_delivery.models.event import EventRecord, now_millis
from amplitude_delivery.models.identity import IdentityRecord

# Maps emitted only when non-empty.
EVENT_PROPERTY_FIELDS = ('event_properties', 'user_properties', 'groups', 'group_properties')

# (attribute, wire key) pairs emitted when not None, in payload order.
EVENT_SCALAR_FIELDS: Tuple[Tuple[str, str], ...] = (
    ('app_version', 'app_version'),
    ('platform', 'platform'),
    ('os_name', 'os_name'),
    ('os_version', 'os_version'),
    ('device_brand', 'device_brand'),
    ('device_manufacturer', 'device_manufacturer'),
    ('device_model', 'device_model'),
    ('carrier', 'carrier'),
    ('country', 'country'),
    ('region', 'region'),
    ('city', 'city'),
    ('dma', 'dma'),
    ('language', 'language'),
    ('price', 'price'),
    ('quantity', 'quantity'),
    ('revenue', 'revenue'),
    ('product_id', 'productId'),
    ('revenue_type', 'revenueType'),
    ('location_lat', 'location_lat'),
    ('location_lng', 'location_lng'),
    ('ip', 'ip'),
    ('idfa', 'idfa'),
    ('idfv', 'idfv'),
    ('adid', 'adid'),
    ('android_id', 'android_id'),
    ('event_id', 'event_id'),
    ('session_id', 'session_id'),
    ('insert_id', 'insert_id'),
    ('user_agent', 'user_agent'),
)

IDENTIFY_SCALAR_FIELDS = (
    'groups',
    'app_version',
    'platform',
    'os_name',
    'os_version',
    'device_brand',
    'device_model',
    'carrier',
    'country',
    'language',
    'ip',
)

_SCALARS = (str, int, float, bool)


def check_properties(field: str, value: Any, path: str = '') -> None:
    """
    Ensure a property value is a JSON-friendly kind.

    Accepted kinds are strings, numbers, booleans, None, lists of
    accepted kinds and string-keyed mappings of accepted kinds.

    Raises:
        RecordValidationError: On any other value kind
    """
    location = path or field
    if value is None or isinstance(value, _SCALARS):
        return
    if isinstance(value, (list, tuple)):
        for index, item in enumerate(value):
            check_properties(field, item, f"{location}[{index}]")
        return
    if isinstance(value, Mapping):
        for key, item in value.items():
            if not isinstance(key, str):
                raise RecordValidationError(
                    f"{location} keys must be strings, got {type(key).__name__}"
                )
            check_properties(field, item, f"{location}.{key}")
        return
    raise RecordValidationError(
        f"{location} has unsupported value type {type(value).__name__}"
    )


def _add_if_not_none(payload: Dict[str, Any], key: str, value: Any) -> None:
    if value is not None:
        payload[key] = value


def format_event(event: EventRecord) -> Dict[str, Any]:
    """
    Format an event for the HTTP V2 and Batch APIs.

    Args:
        event: Event to format

    Returns:
        Sparse event payload

    Raises:
        RecordValidationError: If a property map holds unsupported values
    """
    payload: Dict[str, Any] = {
        'user_id': event.user_id,
        'device_id': event.device_id,
        'event_type': event.event_type,
        'time': event.time or now_millis(),
    }

    for field in EVENT_PROPERTY_FIELDS:
        value = getattr(event, field)
        if value:
            check_properties(field, value)
            payload[field] = value

    for attribute, key in EVENT_SCALAR_FIELDS:
        _add_if_not_none(payload, key, getattr(event, attribute))

    if event.plan:
        check_properties('plan', event.plan)
        payload['plan'] = event.plan

    return payload


def format_identify(identify: IdentityRecord) -> Dict[str, Any]:
    """
    Format an identify record for the Identify API.

    Args:
        identify: Identify record to format

    Returns:
        Sparse identification payload
    """
    check_properties('user_properties', identify.user_properties)

    payload: Dict[str, Any] = {
        'user_id': identify.user_id,
        'device_id': identify.device_id,
        'user_properties': identify.user_properties,
        'time': identify.time or now_millis(),
    }

    for field in IDENTIFY_SCALAR_FIELDS:
        _add_if_not_none(payload, field, getattr(identify, field))

    return payload

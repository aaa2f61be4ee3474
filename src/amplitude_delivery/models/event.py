"""
Module: event.py
Description: Event record model for analytics delivery.

Defines the immutable EventRecord sent to the Amplitude event APIs,
with construction-time validation of identity and event type and
automatic time and insert_id defaults.

Key Components:
- EventRecord: One analytics event, frozen after construction
- generate_insert_id(): Deduplication token derivation
- Well-known event type constants

Dependencies: pydantic, hashlib, uuid, time, typing
Author: Analytics Platform Team
"""

import hashlib
import time as _time
import uuid
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

INQUIRY_SUBMITTED = 'inquiry_submitted'
Z_MEMBER_LEVEL_UP = 'z_member_level_up'
AGENT_SIGNUP_COMPLETE = 'agent_signup_complete'
FAVORITES_ADD = 'favorites_add'


def now_millis() -> int:
    """Current time in epoch milliseconds."""
    return int(_time.time() * 1000)


def is_blank(value: Any) -> bool:
    """True for None, empty or whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def pick(data: Dict[str, Any], name: str) -> Any:
    """Read a field from raw input by snake_case name or camelCase alias."""
    if name in data:
        return data[name]
    return data.get(to_camel(name))


def put(data: Dict[str, Any], name: str, value: Any) -> None:
    """Write a field into raw input, replacing any alias spelling."""
    data.pop(to_camel(name), None)
    data[name] = value


def normalize_identity(data: Dict[str, Any]) -> None:
    """
    Coerce numeric ids to strings and enforce the identity invariant.

    Raises:
        ValueError: If neither user_id nor device_id is present
    """
    for name in ('user_id', 'device_id'):
        value = pick(data, name)
        if isinstance(value, int) and not isinstance(value, bool):
            put(data, name, str(value))
        elif value is not None and is_blank(value):
            put(data, name, None)

    if is_blank(pick(data, 'user_id')) and is_blank(pick(data, 'device_id')):
        raise ValueError("Either user_id or device_id is required")


def generate_insert_id(
    user_id: Optional[str],
    device_id: Optional[str],
    event_type: str,
    time: int
) -> str:
    """
    Derive a deduplication token for an event.

    A random nonce is mixed in, so two logically identical events
    constructed separately never share an insert_id.

    Returns:
        32-character hexadecimal digest
    """
    components = [
        user_id or '',
        device_id or '',
        event_type or '',
        str(time),
        uuid.uuid4().hex,
    ]
    return hashlib.md5('_'.join(components).encode('utf-8')).hexdigest()


class EventRecord(BaseModel):
    """
    Immutable analytics event.

    Accepts snake_case field names or their camelCase aliases
    (``userId``, ``eventType``), so flat key/value input from any
    caller validates the same way.

    Attributes:
        user_id: Application user identifier
        device_id: Device identifier
        event_type: Event kind (e.g., 'favorites_add')
        time: Epoch milliseconds, defaults to construction time
        insert_id: Deduplication token, derived when absent
        event_properties: Event-scoped properties
        user_properties: User properties updated with the event
    """

    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore"
    )

    user_id: Optional[str] = None
    device_id: Optional[str] = None
    event_type: str = Field(..., min_length=1, max_length=1024)
    time: int = Field(..., ge=0, description="Event time in epoch milliseconds")
    insert_id: str = Field(..., min_length=1, max_length=128)

    # Properties
    event_properties: Optional[Dict[str, Any]] = None
    user_properties: Optional[Dict[str, Any]] = None
    groups: Optional[Dict[str, Any]] = None
    group_properties: Optional[Dict[str, Any]] = None

    # Device and app
    app_version: Optional[str] = None
    platform: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_brand: Optional[str] = None
    device_manufacturer: Optional[str] = None
    device_model: Optional[str] = None
    carrier: Optional[str] = None

    # Location
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    dma: Optional[str] = None
    language: Optional[str] = None
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    ip: Optional[str] = None

    # Revenue
    price: Optional[float] = None
    quantity: Optional[int] = None
    revenue: Optional[float] = None
    product_id: Optional[str] = None
    revenue_type: Optional[str] = None

    # Advertising identifiers
    idfa: Optional[str] = None
    idfv: Optional[str] = None
    adid: Optional[str] = None
    android_id: Optional[str] = None

    event_id: Optional[int] = None
    session_id: Optional[int] = None
    user_agent: Optional[str] = None
    plan: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Tracking plan descriptor (branch, source, version)"
    )

    @model_validator(mode='before')
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        """Validate identity and event type, then fill time and insert_id."""
        if not isinstance(data, dict):
            raise ValueError("event input must be a mapping")
        data = dict(data)

        normalize_identity(data)

        event_type = pick(data, 'event_type')
        if is_blank(event_type):
            raise ValueError("event_type is required")

        if not pick(data, 'time'):
            put(data, 'time', now_millis())

        if is_blank(pick(data, 'insert_id')):
            put(data, 'insert_id', generate_insert_id(
                pick(data, 'user_id'),
                pick(data, 'device_id'),
                str(event_type),
                pick(data, 'time')
            ))

        return data

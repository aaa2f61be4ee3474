"""
Module: identity.py
Description: Identify record model for user property updates.

Defines IdentityRecord, the payload of an identify call. Unlike events,
identify records are assembled incrementally with builder methods and
checked once more right before they are sent.

Key Components:
- IdentityRecord: User property mutation with set/add/unset/append
- validate(): Send-time invariant check

Dependencies: pydantic, typing
Author: Analytics Platform Team
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from amplitude_delivery.exceptions import RecordValidationError
from amplitude_delivery.models.event import is_blank, normalize_identity, now_millis, pick, put

SET = '$set'
ADD = '$add'
UNSET = '$unset'
APPEND = '$append'


class IdentityRecord(BaseModel):
    """
    User property update without an associated event.

    Attributes:
        user_id: Application user identifier
        device_id: Device identifier
        user_properties: Operation name ('$set', '$add', ...) to property map
        time: Epoch milliseconds, defaults to construction time

    Example:
        >>> record = IdentityRecord(user_id="u-1").set("plan", "pro").add("logins", 1)
        >>> record.user_properties
        {'$set': {'plan': 'pro'}, '$add': {'logins': 1}}
    """

    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore"
    )

    user_id: Optional[str] = None
    device_id: Optional[str] = None
    user_properties: Dict[str, Any] = Field(default_factory=dict)
    time: int = Field(..., ge=0, description="Update time in epoch milliseconds")

    groups: Optional[Dict[str, Any]] = None
    app_version: Optional[str] = None
    platform: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_brand: Optional[str] = None
    device_model: Optional[str] = None
    carrier: Optional[str] = None
    country: Optional[str] = None
    language: Optional[str] = None
    ip: Optional[str] = None

    @model_validator(mode='before')
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        """Validate identity and fill time."""
        if not isinstance(data, dict):
            raise ValueError("identify input must be a mapping")
        data = dict(data)

        normalize_identity(data)

        if not pick(data, 'time'):
            put(data, 'time', now_millis())
        if pick(data, 'user_properties') is None:
            put(data, 'user_properties', {})

        return data

    def _merge(self, operation: str, prop: str, value: Any) -> "IdentityRecord":
        if not prop:
            raise ValueError("property name must be a non-empty string")
        self.user_properties.setdefault(operation, {})[prop] = value
        return self

    def set(self, prop: str, value: Any) -> "IdentityRecord":
        """Set a user property to value."""
        return self._merge(SET, prop, value)

    def add(self, prop: str, value: Any) -> "IdentityRecord":
        """Increment a numeric user property by value."""
        return self._merge(ADD, prop, value)

    def unset(self, prop: str) -> "IdentityRecord":
        """Remove a user property."""
        return self._merge(UNSET, prop, '-')

    def append(self, prop: str, value: Any) -> "IdentityRecord":
        """Append value to a list user property."""
        return self._merge(APPEND, prop, value)

    def validate_for_send(self) -> bool:
        """
        Check the record is sendable.

        Raises:
            RecordValidationError: If identity or user_properties is missing
        """
        if is_blank(self.user_id) and is_blank(self.device_id):
            raise RecordValidationError("Either user_id or device_id is required")
        if not self.user_properties:
            raise RecordValidationError("user_properties is required for identify")
        return True

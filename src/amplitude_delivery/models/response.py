"""
Module: response.py
Description: Delivery response model.

Defines ResponseRecord, the single result of every send call. It
normalizes the remote API body into counters plus optional diagnostic
lists and classifies the outcome.

Key Components:
- ResponseRecord: Normalized response with classification predicates
- RETRYABLE_CODES: Status codes worth retrying

Dependencies: pydantic, json, typing
Author: Analytics Platform Team
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from amplitude_delivery.models.event import now_millis

RETRYABLE_CODES = frozenset({429, 500, 502, 503, 504})

# Remote body keys copied verbatim onto the record.
DIAGNOSTIC_KEYS = (
    'error',
    'events_with_invalid_fields',
    'events_with_missing_fields',
    'silenced_devices',
    'silenced_events',
    'throttled_devices',
    'throttled_users',
    'throttled_events',
    'eps_threshold',
)


class ResponseRecord(BaseModel):
    """
    Outcome of one top-level send call.

    Attributes:
        code: Normalized status code (200 on success)
        events_ingested: Events accepted by the remote API
        payload_size_bytes: Request payload size reported or computed
        server_upload_time: Remote upload timestamp in epoch milliseconds
        error: Error message, if any
        events_with_invalid_fields: Field name to offending event indices
        events_with_missing_fields: Field name to offending event indices
        silenced_devices: Devices suppressed by the remote API
        silenced_events: Event indices suppressed by the remote API
        throttled_devices: Device to events-per-second map
        throttled_users: User to events-per-second map
        throttled_events: Event indices dropped by throttling
        eps_threshold: Remote events-per-second threshold
    """

    model_config = ConfigDict(frozen=True)

    code: int = Field(..., description="Normalized status code")
    events_ingested: int = Field(default=0, ge=0)
    payload_size_bytes: int = Field(default=0, ge=0)
    server_upload_time: int = Field(default_factory=now_millis)

    error: Optional[str] = None
    events_with_invalid_fields: Optional[Dict[str, Any]] = None
    events_with_missing_fields: Optional[Dict[str, Any]] = None
    silenced_devices: Optional[List[Any]] = None
    silenced_events: Optional[List[Any]] = None
    throttled_devices: Optional[Dict[str, Any]] = None
    throttled_users: Optional[Dict[str, Any]] = None
    throttled_events: Optional[List[Any]] = None
    eps_threshold: Optional[int] = None

    @classmethod
    def from_body(
        cls,
        status_code: int,
        body: Optional[Dict[str, Any]],
        default_ingested: int = 0,
        default_payload_size: int = 0
    ) -> "ResponseRecord":
        """
        Build a record from a parsed remote response body.

        Counters missing from the body fall back to the given defaults;
        diagnostic lists are carried only when the body reports them.
        """
        body = body or {}
        fields: Dict[str, Any] = {
            'code': body.get('code') or status_code,
            'events_ingested': body.get('events_ingested', default_ingested),
            'payload_size_bytes': body.get('payload_size_bytes', default_payload_size),
        }
        if body.get('server_upload_time') is not None:
            fields['server_upload_time'] = body['server_upload_time']
        for key in DIAGNOSTIC_KEYS:
            if body.get(key) is not None:
                fields[key] = body[key]
        return cls(**fields)

    @classmethod
    def failure(cls, code: Optional[int], error: str, body: Optional[Dict[str, Any]] = None) -> "ResponseRecord":
        """Build a non-success record, keeping any remote diagnostics."""
        try:
            record = cls.from_body(code or 500, body)
        except ValidationError:
            record = cls(code=code or 500)
        return record.model_copy(update={
            'code': code or 500,
            'error': record.error or error,
            'events_ingested': 0,
            'payload_size_bytes': 0,
        })

    def is_success(self) -> bool:
        return self.code == 200

    def is_throttled(self) -> bool:
        return (
            self.code == 429
            or bool(self.throttled_devices)
            or bool(self.throttled_users)
            or bool(self.throttled_events)
        )

    def is_silenced(self) -> bool:
        return bool(self.silenced_devices) or bool(self.silenced_events)

    def is_retryable(self) -> bool:
        return self.code in RETRYABLE_CODES

    def error_details(self) -> str:
        """Human-readable summary of everything the remote API reported."""
        details = []
        if self.error:
            details.append(f"Error: {self.error}")
        if self.events_with_invalid_fields:
            details.append(f"Invalid fields: {json.dumps(self.events_with_invalid_fields)}")
        if self.events_with_missing_fields:
            details.append(f"Missing fields: {json.dumps(self.events_with_missing_fields)}")
        if self.silenced_devices:
            details.append(f"Silenced devices: {', '.join(str(d) for d in self.silenced_devices)}")
        if self.throttled_devices:
            details.append(f"Throttled devices: {json.dumps(self.throttled_devices)}")
        if self.throttled_users:
            details.append(f"Throttled users: {json.dumps(self.throttled_users)}")
        return '; '.join(details)

    def to_dict(self) -> Dict[str, Any]:
        """Sparse dictionary form for logging."""
        return self.model_dump(exclude_none=True)

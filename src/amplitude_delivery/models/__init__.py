"""
Module: models
Description: Package initialization for Pydantic data models.

This package contains the records exchanged with the delivery drivers:
- EventRecord: Immutable analytics event
- IdentityRecord: User property update
- ResponseRecord: Normalized delivery outcome

All models are exported here for convenient importing.
"""

from .event import EventRecord
from .identity import IdentityRecord
from .response import ResponseRecord

__all__ = [
    "EventRecord",
    "IdentityRecord",
    "ResponseRecord",
]

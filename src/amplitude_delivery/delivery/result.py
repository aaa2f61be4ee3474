"""
Module: result.py
Description: Result type returned at the delivery boundary.

Callers that must never be interrupted by analytics delivery receive
Ok or Err instead of exceptions and decide what to do with Err.
"""

from dataclasses import dataclass
from typing import Optional, Union

from amplitude_delivery.exceptions import DeliveryError
from amplitude_delivery.models.response import ResponseRecord


@dataclass(frozen=True)
class Ok:
    """Delivery succeeded."""

    response: ResponseRecord

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """
    Delivery failed.

    Attributes:
        error: Raised or synthesized failure
        response: Non-success response, when the driver produced one
    """

    error: DeliveryError
    response: Optional[ResponseRecord] = None

    @property
    def is_ok(self) -> bool:
        return False


DeliveryResult = Union[Ok, Err]

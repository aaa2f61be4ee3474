"""
Module: test_event.py
Description: Unit tests for EventRecord validation.

Tests identity and event type invariants, time and insert_id defaults,
alias handling and immutability of the EventRecord model.
"""

import re

import pytest
from pydantic import ValidationError

from amplitude_delivery.models.event import EventRecord, generate_insert_id

HEX_DIGEST = re.compile(r'^[0-9a-f]{32}$')


class TestEventRecord:
    """Test cases for EventRecord construction."""

    def test_valid_event_creation(self, sample_event):
        """Test creating a valid EventRecord from camelCase input."""
        assert sample_event.user_id == 'user-1001'
        assert sample_event.device_id == 'device-abc'
        assert sample_event.event_type == 'favorites_add'
        assert sample_event.event_properties == {'house_id': 42, 'source': 'map'}
        assert sample_event.platform == 'iOS'

    def test_snake_case_input(self):
        """Test field names are accepted as well as aliases."""
        event = EventRecord(device_id='device-1', event_type='z_member_level_up')
        assert event.device_id == 'device-1'
        assert event.user_id is None

    def test_identity_required(self):
        """Test construction fails without user_id and device_id."""
        invalid_inputs = [
            {'event_type': 'favorites_add'},
            {'user_id': '', 'device_id': None, 'event_type': 'favorites_add'},
            {'userId': '   ', 'event_type': 'favorites_add'},
        ]
        for data in invalid_inputs:
            with pytest.raises(ValidationError, match="Either user_id or device_id is required"):
                EventRecord(**data)

    def test_event_type_required(self):
        """Test construction fails without event_type."""
        for data in [{'user_id': 'u-1'}, {'user_id': 'u-1', 'event_type': ''}, {'userId': 'u-1', 'eventType': None}]:
            with pytest.raises(ValidationError, match="event_type is required"):
                EventRecord(**data)

    def test_either_identity_is_enough(self):
        """Test a user_id alone or a device_id alone is valid."""
        assert EventRecord(user_id='u-1', event_type='x').user_id == 'u-1'
        assert EventRecord(device_id='d-1', event_type='x').device_id == 'd-1'

    def test_numeric_user_id_coerced(self):
        """Test integer ids from database rows become strings."""
        event = EventRecord(userId=1001, eventType='inquiry_submitted')
        assert event.user_id == '1001'

    def test_time_defaults_to_now(self):
        """Test time is filled with the current epoch milliseconds."""
        event = EventRecord(user_id='u-1', event_type='x')
        assert isinstance(event.time, int)
        assert event.time > 1_600_000_000_000

    def test_explicit_time_kept(self):
        event = EventRecord(user_id='u-1', event_type='x', time=1700000000123)
        assert event.time == 1700000000123

    def test_insert_id_generated(self):
        """Test insert_id is a hex digest when not supplied."""
        event = EventRecord(user_id='u-1', event_type='x', time=1700000000000)
        assert HEX_DIGEST.match(event.insert_id)

    def test_insert_id_unique_per_construction(self):
        """Test identical inputs still yield different insert_ids."""
        data = {'user_id': 'u-1', 'device_id': 'd-1', 'event_type': 'x', 'time': 1700000000000}
        first = EventRecord(**data)
        second = EventRecord(**data)
        assert first.insert_id != second.insert_id
        assert HEX_DIGEST.match(first.insert_id)
        assert HEX_DIGEST.match(second.insert_id)

    def test_explicit_insert_id_kept(self):
        event = EventRecord(user_id='u-1', event_type='x', insertId='order-991-created')
        assert event.insert_id == 'order-991-created'

    def test_generate_insert_id(self):
        assert generate_insert_id('u', None, 'x', 1) != generate_insert_id('u', None, 'x', 1)

    def test_event_is_immutable(self, sample_event):
        """Test records cannot be modified after construction."""
        with pytest.raises(ValidationError):
            sample_event.event_type = 'other'

    def test_optional_attributes_default_to_none(self, sample_event):
        assert sample_event.revenue is None
        assert sample_event.plan is None
        assert sample_event.location_lat is None

    def test_non_mapping_input_rejected(self):
        with pytest.raises(ValidationError):
            EventRecord.model_validate(['user_id', 'u-1'])

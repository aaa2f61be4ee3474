"""
Module: conftest.py
Description: Shared pytest fixtures for delivery client tests.

Provides test settings, sample records and a scripted fake of the
Amplitude HTTP APIs built on httpx.MockTransport, so tests run without
network access and without waiting on retry sleeps.
"""

import json
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from amplitude_delivery.config.settings import AmplitudeSettings
from amplitude_delivery.delivery.retry import RetryPolicy
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.models.event import EventRecord
from amplitude_delivery.models.identity import IdentityRecord


class FakeAmplitudeAPI:
    """
    Scripted stand-in for the Amplitude endpoints.

    Responses are queued in order; once the queue is empty every request
    gets a 200 with counters derived from the request body.
    """

    def __init__(self):
        self.responses: List[Any] = []
        self.requests: List[httpx.Request] = []

    def queue(self, status_code: int = 200, body: Optional[Dict[str, Any]] = None, text: str = '') -> None:
        self.responses.append((status_code, body, text))

    def fail_with(self, exc: Exception) -> None:
        self.responses.append(exc)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.responses:
            scripted = self.responses.pop(0)
            if isinstance(scripted, Exception):
                raise scripted
            status_code, body, text = scripted
            if body is not None:
                return httpx.Response(status_code, json=body)
            return httpx.Response(status_code, text=text)

        if request.headers.get('content-type', '').startswith('application/json'):
            events = json.loads(request.content).get('events', [])
            return httpx.Response(200, json={
                'code': 200,
                'events_ingested': len(events),
                'payload_size_bytes': len(request.content),
                'server_upload_time': 1700000000000 + len(self.requests),
            })
        return httpx.Response(200, text='success')

    def json_bodies(self) -> List[Dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests]

    def form_bodies(self) -> List[Dict[str, str]]:
        return [
            {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
            for request in self.requests
        ]


@pytest.fixture
def test_settings():
    """Settings that ignore the environment and .env files."""
    return AmplitudeSettings(api_key='test-api-key', _env_file=None)


@pytest.fixture
def fake_api():
    return FakeAmplitudeAPI()


@pytest.fixture
def transport(fake_api):
    """HttpTransport wired to the fake API."""
    client = httpx.Client(transport=httpx.MockTransport(fake_api.handler))
    http_transport = HttpTransport(timeout_seconds=5, client=client)
    yield http_transport
    client.close()


@pytest.fixture
def sleeps():
    """Recorded retry sleeps."""
    return []


@pytest.fixture
def retry_policy(sleeps):
    """RetryPolicy with default timings that records instead of sleeping."""
    return RetryPolicy(retry_count=3, retry_delay_ms=2000, sleep=sleeps.append)


@pytest.fixture
def sample_event_data():
    return {
        'userId': 'user-1001',
        'deviceId': 'device-abc',
        'eventType': 'favorites_add',
        'eventProperties': {'house_id': 42, 'source': 'map'},
        'platform': 'iOS',
    }


@pytest.fixture
def sample_event(sample_event_data):
    return EventRecord(**sample_event_data)


@pytest.fixture
def make_events():
    """Factory for n distinct events."""
    def _make(n: int) -> List[EventRecord]:
        return [
            EventRecord(user_id=f'user-{i:05d}', event_type='inquiry_submitted', time=1700000000000 + i)
            for i in range(n)
        ]
    return _make


@pytest.fixture
def sample_identify():
    return IdentityRecord(user_id='user-1001', user_properties={'$set': {'plan': 'pro'}})

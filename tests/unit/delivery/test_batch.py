"""
Module: test_batch.py
Description: Unit tests for the chunked bulk driver.

Covers chunking, per-chunk retry isolation, aggregation of counters and
the partial progress carried by BatchDeliveryError.
"""

import json

import httpx
import pytest

from amplitude_delivery.delivery.batch import BatchDriver
from amplitude_delivery.delivery.transport import HttpTransport
from amplitude_delivery.exceptions import BatchDeliveryError, DeliveryError

ENDPOINT = 'https://api.test/batch'


@pytest.fixture
def driver(transport, retry_policy):
    return BatchDriver('test-api-key', transport, retry_policy, endpoint=ENDPOINT, batch_size=1000)


class TestBatchDriver:
    """Test cases for BatchDriver.send_events()."""

    def test_splits_into_chunks(self, driver, fake_api, make_events):
        """Test 2500 events become chunks of 1000, 1000 and 500."""
        response = driver.send_events(make_events(2500))

        sizes = [len(body['events']) for body in fake_api.json_bodies()]
        assert sizes == [1000, 1000, 500]
        assert response.is_success()
        assert response.events_ingested == 2500

    def test_payload_size_summed(self, driver, fake_api, make_events):
        response = driver.send_events(make_events(2500))
        assert response.payload_size_bytes == sum(len(r.content) for r in fake_api.requests)

    def test_server_upload_time_from_last_chunk(self, driver, fake_api, make_events):
        fake_api.queue(200, {'code': 200, 'events_ingested': 1000, 'payload_size_bytes': 10, 'server_upload_time': 111})
        fake_api.queue(200, {'code': 200, 'events_ingested': 500, 'payload_size_bytes': 5, 'server_upload_time': 222})

        response = driver.send_events(make_events(1500))

        assert response.server_upload_time == 222
        assert response.payload_size_bytes == 15

    def test_no_min_id_length_option(self, driver, fake_api, make_events):
        driver.send_events(make_events(1))
        body = fake_api.json_bodies()[0]
        assert set(body) == {'api_key', 'events'}

    def test_empty_input_raises(self, driver, fake_api):
        with pytest.raises(DeliveryError, match='No events to send'):
            driver.send_events([])
        assert fake_api.requests == []

    def test_transient_failure_retried_per_chunk(self, driver, fake_api, make_events, sleeps):
        fake_api.queue(200, {'code': 200, 'events_ingested': 1000})
        fake_api.queue(503, {'code': 503})
        fake_api.fail_with(httpx.ConnectError('reset'))

        response = driver.send_events(make_events(2000))

        assert response.events_ingested == 2000
        assert len(fake_api.requests) == 4
        assert sleeps == [2.0, 2.0]

    def test_throttled_chunk_waits_cooldown(self, driver, fake_api, make_events, sleeps):
        fake_api.queue(429, {'code': 429, 'error': 'Too many requests'})

        response = driver.send_events(make_events(10))

        assert response.is_success()
        assert sleeps == [30]

    def test_client_error_on_second_chunk_raises_with_progress(self, driver, fake_api, make_events, sleeps):
        """Test a terminal chunk failure surfaces the delivered chunk's counts."""
        fake_api.queue(200, {'code': 200, 'events_ingested': 1000, 'payload_size_bytes': 4096})
        fake_api.queue(400, {'code': 400, 'error': 'Request missing required field', 'missing_field': 'api_key'})

        with pytest.raises(BatchDeliveryError) as exc_info:
            driver.send_events(make_events(2500))

        error = exc_info.value
        assert error.code == 400
        assert 'Request missing required field' in error.message
        assert error.response_data['missing_field'] == 'api_key'
        assert error.chunk_index == 1
        assert error.chunks_total == 3
        assert error.chunks_delivered == 1
        assert error.events_ingested == 1000
        assert error.payload_size_bytes == 4096
        assert len(fake_api.requests) == 2
        assert sleeps == []

    def test_unexpected_exception_raises_with_progress(self, driver, fake_api, make_events, sleeps):
        """Test a non-delivery exception still reports the delivered chunks."""
        fake_api.queue(200, {'code': 200, 'events_ingested': 1000, 'payload_size_bytes': 4096})
        fake_api.fail_with(RuntimeError('serializer exploded'))

        with pytest.raises(BatchDeliveryError, match='Chunk 2 of 3 failed: serializer exploded') as exc_info:
            driver.send_events(make_events(2500))

        error = exc_info.value
        assert error.chunk_index == 1
        assert error.chunks_delivered == 1
        assert error.events_ingested == 1000
        assert error.response_data == {'last_error': 'serializer exploded'}
        assert isinstance(error.__cause__.__cause__, RuntimeError)
        assert len(fake_api.requests) == 2
        assert sleeps == []

    def test_undecodable_response_retried_then_raised(self, retry_policy, make_events, sleeps):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, headers={'content-encoding': 'gzip'}, content=b'not-gzip')

        client = httpx.Client(transport=httpx.MockTransport(handler))
        driver = BatchDriver('k', HttpTransport(client=client), retry_policy, endpoint=ENDPOINT)

        with pytest.raises(BatchDeliveryError) as exc_info:
            driver.send_events(make_events(5))

        assert exc_info.value.chunks_delivered == 0
        assert 'last_error' in exc_info.value.response_data
        assert len(requests) == 4
        assert sleeps == [2.0, 2.0, 2.0]
        client.close()

    def test_exhausted_retries_raise_last_failure(self, driver, fake_api, make_events, sleeps):
        for _ in range(4):
            fake_api.queue(503, {'code': 503, 'error': 'Service unavailable'})

        with pytest.raises(BatchDeliveryError) as exc_info:
            driver.send_events(make_events(5))

        error = exc_info.value
        assert error.code == 503
        assert 'after 3 retries' in error.message
        assert error.response_data['error'] == 'Service unavailable'
        assert error.events_ingested == 0
        assert len(fake_api.requests) == 4
        assert sleeps == [2.0, 2.0, 2.0]

    def test_exhausted_transport_failures_raise(self, driver, fake_api, make_events):
        for _ in range(4):
            fake_api.fail_with(httpx.ConnectError('connection refused'))

        with pytest.raises(BatchDeliveryError) as exc_info:
            driver.send_events(make_events(5))

        assert 'connection refused' in exc_info.value.response_data['last_error']
        assert isinstance(exc_info.value.__cause__, DeliveryError)

    def test_unexpected_status_not_retried(self, driver, fake_api, make_events):
        fake_api.queue(404, text='not found')

        with pytest.raises(BatchDeliveryError, match='Unexpected response status') as exc_info:
            driver.send_events(make_events(5))

        assert exc_info.value.response_data == {'response_body': 'not found'}
        assert len(fake_api.requests) == 1

    def test_concurrent_chunks_aggregate_deterministically(self, transport, retry_policy, fake_api, make_events):
        driver = BatchDriver('test-api-key', transport, retry_policy, endpoint=ENDPOINT, batch_size=100, max_workers=4)

        response = driver.send_events(make_events(950))

        assert response.events_ingested == 950
        assert len(fake_api.requests) == 10
        assert response.payload_size_bytes == sum(len(r.content) for r in fake_api.requests)

    def test_concurrent_failure_reports_other_chunks(self, transport, retry_policy, fake_api, make_events):
        def handler(request):
            events = json.loads(request.content)['events']
            if events[0]['user_id'] == 'user-00100':
                return httpx.Response(413, json={'code': 413, 'error': 'Payload too large'})
            return httpx.Response(200, json={'code': 200, 'events_ingested': len(events)})

        client = httpx.Client(transport=httpx.MockTransport(handler))
        transport.client = client
        driver = BatchDriver('test-api-key', transport, retry_policy, endpoint=ENDPOINT, batch_size=100, max_workers=3)

        with pytest.raises(BatchDeliveryError) as exc_info:
            driver.send_events(make_events(300))

        error = exc_info.value
        assert error.chunk_index == 1
        assert error.code == 413
        assert error.chunks_delivered == 2
        assert error.events_ingested == 200
        client.close()

    def test_invalid_batch_size(self, transport):
        with pytest.raises(ValueError, match='batch_size'):
            BatchDriver('k', transport, batch_size=0)

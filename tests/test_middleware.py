"""Testes para xgate_sdk.middleware.

Cobre: AuthMiddleware, RetryMiddleware (backoff, exaustão, cancelamento)
e LoggingMiddleware (mascaramento de dados sensíveis).
"""

import json
import logging
import threading

import pytest

from conftest import FakeTransport, json_response

from xgate_sdk.exceptions import ApiError, NetworkError, RequestCancelledError
from xgate_sdk.middleware import (
    REDACTED, AuthMiddleware, LoggingMiddleware, RetryMiddleware,
    sanitize_body, sanitize_data, sanitize_headers
)
from xgate_sdk.models import HttpRequest, HttpResponse
from xgate_sdk.pipeline import PipelineBuilder


def make_request(path: str = '/deposit', body=None, cancel_event=None, timeout=None) -> HttpRequest:
    return HttpRequest(
        method='POST' if body is not None else 'GET',
        url=f"https://api.test{path}",
        path=path,
        headers={'Accept': 'application/json'},
        body=body,
        timeout=timeout,
        cancel_event=cancel_event
    )


class TestAuthMiddleware:
    """Testes para AuthMiddleware."""

    def test_adds_bearer_header(self, transport: FakeTransport) -> None:
        transport.queue(json_response(200, {}))
        AuthMiddleware(lambda: 'tok').handle(make_request(), transport.send)
        assert transport.requests[0].headers['Authorization'] == 'Bearer tok'

    def test_auth_endpoints_skip_token(self, transport: FakeTransport) -> None:
        calls = []

        def provider():
            calls.append(1)
            return 'tok'

        transport.queue(json_response(200, {}))
        AuthMiddleware(provider).handle(make_request('/auth/token', {}), transport.send)
        assert 'Authorization' not in transport.requests[0].headers
        assert calls == []

    def test_no_token_sends_without_header(self, transport: FakeTransport) -> None:
        transport.queue(json_response(200, {}))
        AuthMiddleware(lambda: None).handle(make_request(), transport.send)
        assert 'Authorization' not in transport.requests[0].headers

    def test_original_request_is_not_mutated(self, transport: FakeTransport) -> None:
        request = make_request()
        transport.queue(json_response(200, {}))
        AuthMiddleware(lambda: 'tok').handle(request, transport.send)
        assert 'Authorization' not in request.headers


class TestRetryMiddleware:
    """Testes para RetryMiddleware."""

    def test_retries_transient_status_until_success(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(json_response(503), json_response(503), json_response(200, {'ok': True}))
        retry = RetryMiddleware(max_retries=3, base_delay_ms=100, sleep=no_sleep)

        response = retry.handle(make_request(), transport.send)

        assert response.status_code == 200
        assert len(transport.requests) == 3
        assert len(no_sleep.delays) == 2
        assert 0.1 <= no_sleep.delays[0] <= 0.2
        assert 0.2 <= no_sleep.delays[1] <= 0.3

    def test_non_retryable_status_returns_immediately(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(json_response(404, {'message': 'Not found'}))
        pipeline = (PipelineBuilder()
                    .add(RetryMiddleware(sleep=no_sleep))
                    .build(transport))

        with pytest.raises(ApiError) as exc_info:
            pipeline.execute(make_request())

        assert exc_info.value.status_code == 404
        assert len(transport.requests) == 1
        assert no_sleep.delays == []

    def test_network_error_is_retried(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(NetworkError("timeout"), json_response(200, {}))
        response = RetryMiddleware(sleep=no_sleep).handle(make_request(), transport.send)
        assert response.status_code == 200
        assert len(no_sleep.delays) == 1

    def test_exhaustion_raises_network_error_with_last_status(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(*[json_response(502, {'message': 'bad gateway'}) for _ in range(3)])
        retry = RetryMiddleware(max_retries=2, sleep=no_sleep)

        with pytest.raises(NetworkError) as exc_info:
            retry.handle(make_request(), transport.send)

        assert exc_info.value.status_code == 502
        assert 'bad gateway' in exc_info.value.response_body
        assert len(transport.requests) == 3
        assert len(no_sleep.delays) == 2

    def test_exhaustion_after_network_errors(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(NetworkError("a"), NetworkError("b"))
        with pytest.raises(NetworkError) as exc_info:
            RetryMiddleware(max_retries=1, sleep=no_sleep).handle(make_request(), transport.send)
        assert isinstance(exc_info.value.__cause__, NetworkError)

    def test_zero_retries_makes_single_attempt(self, transport: FakeTransport, no_sleep) -> None:
        transport.queue(json_response(500))
        with pytest.raises(NetworkError):
            RetryMiddleware(max_retries=0, sleep=no_sleep).handle(make_request(), transport.send)
        assert len(transport.requests) == 1
        assert no_sleep.delays == []

    def test_delay_grows_exponentially(self) -> None:
        retry = RetryMiddleware(base_delay_ms=1000, max_jitter_ms=0)
        assert [retry.get_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_cancelled_request_is_not_sent(self, transport: FakeTransport, no_sleep) -> None:
        event = threading.Event()
        event.set()
        with pytest.raises(RequestCancelledError):
            RetryMiddleware(sleep=no_sleep).handle(make_request(cancel_event=event), transport.send)
        assert transport.requests == []

    def test_cancel_during_backoff_stops_retries(self, transport: FakeTransport) -> None:
        event = threading.Event()
        transport.queue(json_response(503), json_response(200, {}))

        def send(request):
            response = transport.send(request)
            event.set()
            return response

        with pytest.raises(RequestCancelledError):
            RetryMiddleware(base_delay_ms=5000).handle(make_request(cancel_event=event), send)
        assert len(transport.requests) == 1

    def test_backoff_respects_request_timeout(self, transport: FakeTransport, no_sleep) -> None:
        """Nenhuma espera passa do prazo total da requisição"""
        transport.queue(*[json_response(503) for _ in range(4)])
        retry = RetryMiddleware(max_retries=3, base_delay_ms=1000, max_jitter_ms=0,
                                sleep=no_sleep, clock=lambda: 100.0)

        with pytest.raises(NetworkError) as exc_info:
            retry.handle(make_request(timeout=1.5), transport.send)

        assert no_sleep.delays == [1.0]
        assert len(transport.requests) == 2
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_async_backoff_respects_request_timeout(self) -> None:
        delays = []
        calls = []

        async def sleep(seconds):
            delays.append(seconds)

        async def send(request):
            calls.append(request)
            return json_response(503)

        retry = RetryMiddleware(max_retries=3, max_jitter_ms=0, async_sleep=sleep, clock=lambda: 0.0)
        with pytest.raises(NetworkError):
            await retry.handle_async(make_request(timeout=3.5), send)

        assert delays == [1.0, 2.0]
        assert len(calls) == 3


class TestSanitizers:
    """Testes para as funções de mascaramento."""

    def test_sanitize_headers(self) -> None:
        headers = sanitize_headers({'Authorization': 'Bearer x', 'X-Api-Key': 'k', 'Accept': 'application/json'})
        assert headers == {'Authorization': REDACTED, 'X-Api-Key': REDACTED, 'Accept': 'application/json'}

    def test_sanitize_data_is_recursive(self) -> None:
        data = {'user': {'password': 'p', 'name': 'n'}, 'cards': [{'card_number': '4111', 'brand': 'visa'}]}
        assert sanitize_data(data) == {
            'user': {'password': REDACTED, 'name': 'n'},
            'cards': [{'card_number': REDACTED, 'brand': 'visa'}]
        }

    def test_sensitive_key_match_is_substring_and_case_insensitive(self) -> None:
        assert sanitize_data({'refresh_token': 'r', 'ClientSecret': 's'}) == {
            'refresh_token': REDACTED, 'ClientSecret': REDACTED
        }

    def test_sanitize_body_json_text(self) -> None:
        assert sanitize_body('{"password":"x","amount":"10"}') == {'password': REDACTED, 'amount': '10'}

    def test_sanitize_body_truncates_plain_text(self) -> None:
        assert sanitize_body('x' * 1500) == 'x' * 1000

    def test_sanitize_body_does_not_mutate_input(self) -> None:
        body = {'password': 'x'}
        sanitize_body(body)
        assert body == {'password': 'x'}


class TestLoggingMiddleware:
    """Testes para LoggingMiddleware."""

    LOGGER = 'xgate_sdk.tests.http'

    @pytest.fixture
    def middleware(self) -> LoggingMiddleware:
        return LoggingMiddleware(logging.getLogger(self.LOGGER))

    def test_request_body_is_redacted(self, middleware, transport: FakeTransport, caplog) -> None:
        transport.queue(json_response(200, {}))
        request = make_request(body={'password': 'segredo', 'amount': '10'}).with_header('Authorization', 'Bearer tok')

        with caplog.at_level(logging.DEBUG, logger=self.LOGGER):
            middleware.handle(request, transport.send)

        record = caplog.records[0]
        assert record.body == {'password': '[REDACTED]', 'amount': '10'}
        assert json.dumps(record.body, separators=(',', ':')) == '{"password":"[REDACTED]","amount":"10"}'
        assert record.headers['Authorization'] == '[REDACTED]'
        assert 'segredo' not in caplog.text
        assert record.request_id.startswith('req_')

    def test_response_is_logged_with_status_and_duration(self, middleware, transport, caplog) -> None:
        transport.queue(json_response(200, {'token': 'abc', 'id': 1}))

        with caplog.at_level(logging.DEBUG, logger=self.LOGGER):
            middleware.handle(make_request(), transport.send)

        record = caplog.records[1]
        assert record.status_code == 200
        assert record.duration_ms >= 0
        assert record.body == {'token': '[REDACTED]', 'id': 1}
        assert record.request_id == caplog.records[0].request_id

    def test_error_response_logged_at_error_level(self, middleware, transport, caplog) -> None:
        transport.queue(json_response(500, {'message': 'boom'}))

        with caplog.at_level(logging.DEBUG, logger=self.LOGGER):
            middleware.handle(make_request(), transport.send)

        assert caplog.records[1].levelno == logging.ERROR

    def test_large_body_logs_only_size(self, middleware, transport, caplog) -> None:
        body = json.dumps({'data': 'x' * 20000})
        transport.queue(HttpResponse(200, {}, body))

        with caplog.at_level(logging.DEBUG, logger=self.LOGGER):
            middleware.handle(make_request(), transport.send)

        record = caplog.records[1]
        assert record.body_size == len(body)
        assert not hasattr(record, 'body')

    def test_transport_error_is_logged_and_reraised(self, middleware, transport, caplog) -> None:
        transport.queue(NetworkError("conexão recusada"))

        with caplog.at_level(logging.DEBUG, logger=self.LOGGER):
            with pytest.raises(NetworkError):
                middleware.handle(make_request(), transport.send)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exception == 'NetworkError'

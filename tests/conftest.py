"""Configuração do pytest e dublês compartilhados do SDK XGate."""

import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import pytest

# Adiciona a raiz do projeto ao PYTHONPATH para permitir imports absolutos
root_path = Path(__file__).parent.parent
if str(root_path) not in sys.path:
    sys.path.insert(0, str(root_path))

from xgate_sdk.cache import MemoryCache  # noqa: E402
from xgate_sdk.exceptions import NetworkError  # noqa: E402
from xgate_sdk.interfaces import IAsyncTransport, ITransport  # noqa: E402
from xgate_sdk.models import HttpRequest, HttpResponse  # noqa: E402


def json_response(status_code: int, payload: Any = None, headers: Optional[dict] = None) -> HttpResponse:
    body = '' if payload is None else json.dumps(payload)
    return HttpResponse(status_code, headers or {'Content-Type': 'application/json'}, body)


class FakeClock:
    """Relógio controlado manualmente (segundos Unix)"""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeTransport(ITransport):
    """
    Transporte que devolve respostas enfileiradas

    Itens da fila que são exceções são levantados no lugar da resposta.
    """

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses = list(responses or [])
        self.requests: List[HttpRequest] = []
        self.closed = False

    def queue(self, *responses):
        self.responses.extend(responses)
        return self

    def send(self, request: HttpRequest) -> HttpResponse:
        self.requests.append(request)
        if not self.responses:
            raise NetworkError("Sem resposta enfileirada", url=request.url)
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class AsyncFakeTransport(IAsyncTransport):
    """Versão assíncrona do FakeTransport"""

    def __init__(self, responses: Optional[List[Any]] = None):
        self._sync = FakeTransport(responses)

    @property
    def requests(self) -> List[HttpRequest]:
        return self._sync.requests

    @property
    def closed(self) -> bool:
        return self._sync.closed

    def queue(self, *responses):
        self._sync.queue(*responses)
        return self

    async def send(self, request: HttpRequest) -> HttpResponse:
        return self._sync.send(request)

    async def close(self):
        self._sync.close()


class FakeRedis:
    """Subconjunto de redis.Redis usado pelo RedisCache"""

    def __init__(self):
        self.store = {}
        self.expirations = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value.encode('utf-8')
        self.expirations[key] = ex
        return True

    def delete(self, key):
        self.store.pop(key, None)
        return 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_cache(clock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def async_transport() -> AsyncFakeTransport:
    return AsyncFakeTransport()


@pytest.fixture
def no_sleep():
    """Espera síncrona que só registra os atrasos pedidos"""
    delays = []

    def sleep(seconds, request):
        delays.append(seconds)

    sleep.delays = delays
    return sleep

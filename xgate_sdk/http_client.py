"""
Transportes HTTP (requests e aiohttp) usados pelo pipeline
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp
import requests

from .exceptions import NetworkError, RequestCancelledError
from .interfaces import IAsyncTransport, ITransport
from .models import HttpRequest, HttpResponse


def _query_params(params: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    """Normaliza a query string (booleanos em minúsculas, None descartado)"""
    if not params:
        return None
    normalized = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool):
            normalized[key] = 'true' if value else 'false'
        else:
            normalized[key] = str(value)
    return normalized


class RequestsTransport(ITransport):
    """
    Implementação de transporte usando requests

    Não configura retry no adapter: as novas tentativas são responsabilidade
    do RetryMiddleware.
    """

    def __init__(self, timeout: float = 30, verify_ssl: bool = True,
                 session: Optional[requests.Session] = None):
        """
        Inicializa transporte HTTP

        Args:
            timeout (float): Timeout padrão para requisições
            verify_ssl (bool): Verificar certificados SSL
            session (requests.Session, optional): Sessão já configurada
        """
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.session = session or requests.Session()
        self.logger = logging.getLogger(__name__)

    def send(self, request: HttpRequest) -> HttpResponse:
        """
        Realiza a requisição

        Raises:
            NetworkError: Erro de rede
            RequestCancelledError: Requisição cancelada antes do envio
        """
        if request.is_cancelled:
            raise RequestCancelledError(url=request.url)

        request_kwargs = {
            'headers': request.headers,
            'params': _query_params(request.params),
            'timeout': request.timeout or self.timeout,
            'verify': self.verify_ssl
        }
        if isinstance(request.body, (str, bytes)):
            request_kwargs['data'] = request.body
        elif request.body is not None:
            request_kwargs['json'] = request.body

        try:
            self.logger.debug(f"{request.method} {request.url}")
            response = self.session.request(request.method, request.url, **request_kwargs)
        except requests.RequestException as e:
            error_msg = f"Erro de rede em {request.method} {request.url}: {str(e)}"
            self.logger.error(error_msg)
            raise NetworkError(error_msg, url=request.url) from e

        return HttpResponse(
            status_code=response.status_code,
            headers=dict(response.headers),
            body=response.text
        )

    def close(self):
        """Fecha a sessão HTTP"""
        if self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AiohttpTransport(IAsyncTransport):
    """
    Implementação de transporte assíncrono usando aiohttp

    A sessão é criada na primeira requisição, dentro do event loop em uso.
    """

    def __init__(self, timeout: float = 30, verify_ssl: bool = True,
                 session: Optional[aiohttp.ClientSession] = None,
                 max_connections: int = 10):
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self.max_connections = max_connections
        self._session = session
        self._owns_session = session is None
        self.logger = logging.getLogger(__name__)

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(
                limit=self.max_connections,
                limit_per_host=self.max_connections,
                ssl=None if self.verify_ssl else False
            )
            self._session = aiohttp.ClientSession(
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
            self._owns_session = True
        return self._session

    async def send(self, request: HttpRequest) -> HttpResponse:
        session = self._get_session()
        request_kwargs = {
            'headers': request.headers,
            'params': _query_params(request.params)
        }
        if request.timeout:
            request_kwargs['timeout'] = aiohttp.ClientTimeout(total=request.timeout)
        if isinstance(request.body, (str, bytes)):
            request_kwargs['data'] = request.body
        elif request.body is not None:
            request_kwargs['json'] = request.body

        try:
            self.logger.debug(f"{request.method} {request.url}")
            async with session.request(request.method, request.url, **request_kwargs) as response:
                body = await response.text()
                return HttpResponse(
                    status_code=response.status,
                    headers=dict(response.headers),
                    body=body
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            error_msg = f"Erro de rede em {request.method} {request.url}: {type(e).__name__} {str(e)}"
            self.logger.error(error_msg)
            raise NetworkError(error_msg, url=request.url) from e

    async def close(self):
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

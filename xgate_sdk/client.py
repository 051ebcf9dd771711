"""
Clientes HTTP da API XGate e fachada principal do SDK

Exemplo de uso:
    from xgate_sdk import Configuration, XGateClient

    with XGateClient(Configuration.from_env()) as client:
        client.auth.login()
        deposit = client.deposits.create("100.50", "cliente-123", "BRL")
"""

import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Optional

from .auth import Authenticator
from .cache import FileCache
from .config import VERSION, Configuration
from .http_client import AiohttpTransport, RequestsTransport
from .interfaces import ICache
from .middleware import AuthMiddleware, LoggingMiddleware, RetryMiddleware
from .models import ApiResponse, HttpRequest, PaginatedResponse
from .pipeline import AsyncPipeline, Pipeline, PipelineBuilder
from .services import (
    AuthenticationService, CryptoService, DepositService, PixService, WithdrawalService
)
from .token_store import TokenStore


def _pipeline_builder(config: Configuration,
                      auth_middleware: AuthMiddleware,
                      logger: Optional[logging.Logger]) -> PipelineBuilder:
    builder = PipelineBuilder()
    builder.add(auth_middleware)
    builder.add(RetryMiddleware(max_retries=config.retry_attempts))
    if config.debug:
        builder.add(LoggingMiddleware(logger))
    return builder


def _as_paginated(response: ApiResponse) -> PaginatedResponse:
    if isinstance(response, PaginatedResponse):
        return response
    return PaginatedResponse(response.data, response.status_code, response.headers)


class HttpClient:
    """
    Cliente HTTP síncrono: monta requisições e as envia pelo pipeline

    Pipeline: AuthMiddleware → RetryMiddleware → LoggingMiddleware (debug)
    → transporte (Configuration.transport ou RequestsTransport).
    """

    def __init__(self,
                 config: Configuration,
                 token_provider: Optional[Callable[[], Optional[str]]] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._token_provider = token_provider
        self._access_token: Optional[str] = None

        transport = config.transport or RequestsTransport(
            timeout=config.timeout,
            verify_ssl=config.verify_ssl
        )
        self.pipeline: Pipeline = _pipeline_builder(
            config, AuthMiddleware(self._provide_token), logger
        ).build(transport)

    def _provide_token(self) -> Optional[str]:
        if self._token_provider is not None:
            return self._token_provider()
        return self._access_token or None

    def set_token_provider(self, token_provider: Callable[[], Optional[str]]):
        self._token_provider = token_provider

    def set_access_token(self, token: Optional[str]):
        """Token fixo usado quando não há provedor de token"""
        self._access_token = token

    def _build_request(self, method: str, path: str,
                       query: Optional[Dict[str, Any]] = None,
                       data: Any = None,
                       timeout: Optional[float] = None,
                       cancel_event: Optional[threading.Event] = None) -> HttpRequest:
        if not path.startswith('/'):
            path = f"/{path}"
        return HttpRequest(
            method=method.upper(),
            url=f"{self.config.base_url}{path}",
            path=path,
            headers=self.config.get_default_headers(),
            body=data,
            params=query or None,
            timeout=timeout or self.config.timeout,
            cancel_event=cancel_event
        )

    def request(self, method: str, path: str,
                query: Optional[Dict[str, Any]] = None,
                data: Any = None,
                timeout: Optional[float] = None,
                cancel_event: Optional[threading.Event] = None) -> ApiResponse:
        """
        Envia uma requisição à API

        Args:
            method (str): Verbo HTTP
            path (str): Caminho relativo à URL base
            query (Dict, optional): Query string
            data (Any, optional): Corpo JSON
            timeout (float, optional): Timeout em segundos
            cancel_event (threading.Event, optional): Cancela retries pendentes

        Returns:
            ApiResponse: Resposta de sucesso (PaginatedResponse se houver meta de paginação)

        Raises:
            XGateError: Erro tipado conforme o status ou a falha de rede
        """
        request = self._build_request(method, path, query, data, timeout, cancel_event)
        self.logger.debug(f"API Request {request.method} {request.path}")
        response = self.pipeline.execute(request)
        self.logger.debug(f"API Response {response.status_code} {request.path}")
        return response

    def get(self, path: str, query: Optional[Dict[str, Any]] = None, **kwargs) -> ApiResponse:
        return self.request('GET', path, query=query, **kwargs)

    def post(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return self.request('POST', path, data=data if data is not None else {}, **kwargs)

    def put(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return self.request('PUT', path, data=data if data is not None else {}, **kwargs)

    def patch(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return self.request('PATCH', path, data=data if data is not None else {}, **kwargs)

    def delete(self, path: str, **kwargs) -> ApiResponse:
        return self.request('DELETE', path, **kwargs)

    def paginate(self, path: str, query: Optional[Dict[str, Any]] = None,
                 page: int = 1, per_page: int = 20) -> PaginatedResponse:
        params = dict(query or {})
        params.update({'page': page, 'per_page': per_page})
        return _as_paginated(self.get(path, params))

    def close(self):
        self.pipeline.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AsyncHttpClient:
    """Versão assíncrona do HttpClient (transporte aiohttp por padrão)"""

    def __init__(self,
                 config: Configuration,
                 token_provider: Optional[Callable[[], Awaitable[Optional[str]]]] = None,
                 logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self._token_provider = token_provider
        self._access_token: Optional[str] = None

        transport = config.async_transport or AiohttpTransport(
            timeout=config.timeout,
            verify_ssl=config.verify_ssl
        )
        auth = AuthMiddleware(lambda: self._access_token or None, self._provide_token)
        self.pipeline: AsyncPipeline = _pipeline_builder(config, auth, logger).build_async(transport)

    async def _provide_token(self) -> Optional[str]:
        if self._token_provider is not None:
            return await self._token_provider()
        return self._access_token or None

    def set_token_provider(self, token_provider: Callable[[], Awaitable[Optional[str]]]):
        self._token_provider = token_provider

    def set_access_token(self, token: Optional[str]):
        self._access_token = token

    async def request(self, method: str, path: str,
                      query: Optional[Dict[str, Any]] = None,
                      data: Any = None,
                      timeout: Optional[float] = None) -> ApiResponse:
        if not path.startswith('/'):
            path = f"/{path}"
        request = HttpRequest(
            method=method.upper(),
            url=f"{self.config.base_url}{path}",
            path=path,
            headers=self.config.get_default_headers(),
            body=data,
            params=query or None,
            timeout=timeout or self.config.timeout
        )
        self.logger.debug(f"API Request {request.method} {request.path}")
        return await self.pipeline.execute(request)

    async def get(self, path: str, query: Optional[Dict[str, Any]] = None, **kwargs) -> ApiResponse:
        return await self.request('GET', path, query=query, **kwargs)

    async def post(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request('POST', path, data=data if data is not None else {}, **kwargs)

    async def put(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request('PUT', path, data=data if data is not None else {}, **kwargs)

    async def patch(self, path: str, data: Any = None, **kwargs) -> ApiResponse:
        return await self.request('PATCH', path, data=data if data is not None else {}, **kwargs)

    async def delete(self, path: str, **kwargs) -> ApiResponse:
        return await self.request('DELETE', path, **kwargs)

    async def paginate(self, path: str, query: Optional[Dict[str, Any]] = None,
                       page: int = 1, per_page: int = 20) -> PaginatedResponse:
        params = dict(query or {})
        params.update({'page': page, 'per_page': per_page})
        return _as_paginated(await self.get(path, params))

    async def close(self):
        await self.pipeline.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def _default_token_store(config: Configuration,
                         cache: Optional[ICache],
                         token_store: Optional[TokenStore]) -> TokenStore:
    if token_store is not None:
        return token_store
    return TokenStore(cache if cache is not None else FileCache(), ttl=config.cache_ttl)


class XGateClient:
    """
    Fachada do SDK - ponto de entrada principal

    Liga TokenStore, Authenticator e HttpClient e expõe os serviços por
    domínio: auth, deposits, withdrawals, crypto e pix.
    """

    version = VERSION

    def __init__(self,
                 config: Configuration,
                 logger: Optional[logging.Logger] = None,
                 cache: Optional[ICache] = None,
                 token_store: Optional[TokenStore] = None):
        """
        Args:
            config (Configuration): Configuração validada
            logger (logging.Logger, optional): Logger do LoggingMiddleware
            cache (ICache, optional): Cache de tokens (padrão FileCache)
            token_store (TokenStore, optional): Store já construído
        """
        self.config = config
        self.logger = logger or logging.getLogger(__name__)
        self.token_store = _default_token_store(config, cache, token_store)

        self.http_client = HttpClient(config, logger=logger)
        self.authenticator = Authenticator(
            self.token_store, config.email, config.password, http_client=self.http_client
        )
        self.http_client.set_token_provider(self.authenticator.get_token)

        self.auth = AuthenticationService(self.authenticator, self.token_store)
        self.deposits = DepositService(self.http_client)
        self.withdrawals = WithdrawalService(self.http_client)
        self.crypto = CryptoService(self.http_client)
        self.pix = PixService(self.http_client)

    def get_version(self) -> str:
        return self.version

    def close(self):
        try:
            self.http_client.close()
        except Exception as e:
            self.logger.warning(f"Erro ao fechar recursos: {str(e)}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class AsyncXGateClient:
    """
    Fachada assíncrona: autenticação e verbos HTTP sobre aiohttp

    Os serviços por domínio são síncronos; em código assíncrono use os
    verbos (get, post, ...) diretamente.
    """

    version = VERSION

    def __init__(self,
                 config: Configuration,
                 logger: Optional[logging.Logger] = None,
                 cache: Optional[ICache] = None,
                 token_store: Optional[TokenStore] = None):
        self.config = config
        self.token_store = _default_token_store(config, cache, token_store)
        self.http_client = AsyncHttpClient(config, logger=logger)
        self.authenticator = Authenticator(
            self.token_store, config.email, config.password, async_http_client=self.http_client
        )
        self.http_client.set_token_provider(self.authenticator.aget_token)

    async def login(self) -> str:
        return await self.authenticator.alogin()

    async def logout(self):
        await self.authenticator.alogout()

    async def ensure_authenticated(self) -> str:
        return await self.authenticator.aensure_authenticated()

    async def request(self, method: str, path: str, **kwargs) -> ApiResponse:
        return await self.http_client.request(method, path, **kwargs)

    async def get(self, path: str, query: Optional[Dict[str, Any]] = None) -> ApiResponse:
        return await self.http_client.get(path, query)

    async def post(self, path: str, data: Any = None) -> ApiResponse:
        return await self.http_client.post(path, data)

    async def put(self, path: str, data: Any = None) -> ApiResponse:
        return await self.http_client.put(path, data)

    async def patch(self, path: str, data: Any = None) -> ApiResponse:
        return await self.http_client.patch(path, data)

    async def delete(self, path: str) -> ApiResponse:
        return await self.http_client.delete(path)

    async def paginate(self, path: str, query: Optional[Dict[str, Any]] = None,
                       page: int = 1, per_page: int = 20) -> PaginatedResponse:
        return await self.http_client.paginate(path, query, page, per_page)

    async def close(self):
        await self.http_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

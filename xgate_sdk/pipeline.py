"""
Pipeline de requisições: composição de middlewares e classificação de respostas
"""

import json
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .exceptions import (
    ApiError, AuthenticationError, RateLimitError, ValidationError, XGateError
)
from .interfaces import IAsyncTransport, ITransport
from .middleware import AsyncHandler, Handler, Middleware
from .models import ApiResponse, HttpRequest, HttpResponse, PaginatedResponse


CLIENT_ERROR_STATUSES = frozenset({400, 403, 404, 405, 409})


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _decode_error_body(response: HttpResponse) -> Dict[str, Any]:
    if not response.body:
        return {}
    try:
        data = json.loads(response.body)
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


def _is_paginated(data: Any) -> bool:
    if not isinstance(data, dict):
        return False
    meta = data.get('meta')
    return isinstance(meta, dict) and ('total_pages' in meta or 'has_more' in meta)


def error_from_response(response: HttpResponse) -> XGateError:
    """
    Converte uma resposta não-2xx no erro tipado correspondente

    Args:
        response (HttpResponse): Resposta com status de erro

    Returns:
        XGateError: AuthenticationError (401), ValidationError (422),
        RateLimitError (429) ou ApiError (demais)
    """
    data = _decode_error_body(response)
    message = data.get('message') or data.get('error') or 'Unknown error'
    if not isinstance(message, str):
        message = json.dumps(message)
    status = response.status_code

    if status == 401:
        return AuthenticationError(message, status)

    if status == 422:
        errors = data.get('errors')
        return ValidationError(message, errors if isinstance(errors, dict) else {}, status)

    if status == 429:
        return RateLimitError(
            message,
            retry_after=_optional_int(data.get('retry_after')),
            limit=_optional_int(data.get('limit')),
            remaining=_optional_int(data.get('remaining')),
            reset_at=_optional_int(data.get('reset_at')),
            status_code=status
        )

    if status in CLIENT_ERROR_STATUSES:
        error_code = data.get('error_code')
        return ApiError(
            message,
            status,
            error_code=str(error_code) if error_code is not None else None,
            errors=data.get('errors')
        )

    return ApiError(message, status)


def classify_response(response: HttpResponse) -> ApiResponse:
    """
    Decodifica uma resposta 2xx ou levanta o erro tipado

    Números com casas decimais chegam como Decimal, nunca como float.

    Raises:
        ApiError: Corpo 2xx que não é JSON válido (não é retentado)
        XGateError: Qualquer status fora da faixa 2xx
    """
    if not response.is_successful:
        raise error_from_response(response)

    if not response.body or not response.body.strip():
        return ApiResponse({}, response.status_code, response.headers)

    try:
        data = json.loads(response.body, parse_float=Decimal)
    except ValueError as e:
        raise ApiError(f"Formato de resposta inválido: {str(e)}", response.status_code) from e

    if _is_paginated(data):
        return PaginatedResponse(data, response.status_code, response.headers)
    return ApiResponse(data, response.status_code, response.headers)


def _bind(middleware: Middleware, next_handler: Handler) -> Handler:
    return lambda request: middleware.handle(request, next_handler)


def _bind_async(middleware: Middleware, next_handler: AsyncHandler) -> AsyncHandler:
    async def handler(request: HttpRequest) -> HttpResponse:
        return await middleware.handle_async(request, next_handler)
    return handler


class Pipeline:
    """Cadeia ordenada de middlewares sobre um transporte síncrono"""

    def __init__(self, middlewares: List[Middleware], transport: ITransport):
        self._middlewares = tuple(middlewares)
        self.transport = transport

        handler: Handler = transport.send
        for middleware in reversed(self._middlewares):
            handler = _bind(middleware, handler)
        self._handler = handler

    @property
    def middlewares(self):
        return self._middlewares

    def get(self, name: str) -> Optional[Middleware]:
        return next((m for m in self._middlewares if m.name == name), None)

    def send(self, request: HttpRequest) -> HttpResponse:
        """Passa a requisição pela cadeia e devolve a resposta crua"""
        return self._handler(request)

    def execute(self, request: HttpRequest) -> ApiResponse:
        """Passa a requisição pela cadeia e classifica a resposta"""
        return classify_response(self.send(request))

    def close(self):
        self.transport.close()


class AsyncPipeline:
    """Cadeia ordenada de middlewares sobre um transporte assíncrono"""

    def __init__(self, middlewares: List[Middleware], transport: IAsyncTransport):
        self._middlewares = tuple(middlewares)
        self.transport = transport

        handler: AsyncHandler = transport.send
        for middleware in reversed(self._middlewares):
            handler = _bind_async(middleware, handler)
        self._handler = handler

    @property
    def middlewares(self):
        return self._middlewares

    def get(self, name: str) -> Optional[Middleware]:
        return next((m for m in self._middlewares if m.name == name), None)

    async def send(self, request: HttpRequest) -> HttpResponse:
        return await self._handler(request)

    async def execute(self, request: HttpRequest) -> ApiResponse:
        return classify_response(await self.send(request))

    async def close(self):
        await self.transport.close()


class PipelineBuilder:
    """
    Monta pipelines na ordem em que os middlewares são adicionados

    Exemplo:
        pipeline = (PipelineBuilder()
                    .add(AuthMiddleware(authenticator.get_token))
                    .add(RetryMiddleware(max_retries=3))
                    .add(LoggingMiddleware())
                    .build(RequestsTransport()))
    """

    def __init__(self):
        self._middlewares: List[Middleware] = []

    def add(self, middleware: Middleware) -> 'PipelineBuilder':
        self._middlewares.append(middleware)
        return self

    def replace(self, name: str, middleware: Middleware) -> 'PipelineBuilder':
        """Substitui o middleware com o nome informado (útil em testes)"""
        self._middlewares = [middleware if m.name == name else m for m in self._middlewares]
        return self

    def remove(self, name: str) -> 'PipelineBuilder':
        self._middlewares = [m for m in self._middlewares if m.name != name]
        return self

    @property
    def middlewares(self) -> List[Middleware]:
        return list(self._middlewares)

    def build(self, transport: ITransport) -> Pipeline:
        return Pipeline(self._middlewares, transport)

    def build_async(self, transport: IAsyncTransport) -> AsyncPipeline:
        return AsyncPipeline(self._middlewares, transport)

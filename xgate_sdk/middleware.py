"""
Middlewares do pipeline de requisições

Cada middleware recebe a requisição e o próximo handler da cadeia e devolve a
resposta crua do transporte. A ordem padrão é autenticação → retry → logging
→ transporte.
"""

import asyncio
import copy
import json
import logging
import random
import time
import uuid
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, FrozenSet, Iterable, Optional

from .exceptions import NetworkError, RequestCancelledError
from .models import HttpRequest, HttpResponse


Handler = Callable[[HttpRequest], HttpResponse]
AsyncHandler = Callable[[HttpRequest], Awaitable[HttpResponse]]

REDACTED = '[REDACTED]'

SENSITIVE_HEADERS: FrozenSet[str] = frozenset({
    'authorization', 'api-key', 'x-api-key', 'cookie', 'set-cookie'
})

SENSITIVE_KEYS = ('password', 'secret', 'token', 'api_key', 'private_key', 'card_number', 'cvv')


class Middleware(ABC):
    """Etapa do pipeline com variantes síncrona e assíncrona"""

    name = 'middleware'

    @abstractmethod
    def handle(self, request: HttpRequest, next_handler: Handler) -> HttpResponse:
        pass

    @abstractmethod
    async def handle_async(self, request: HttpRequest, next_handler: AsyncHandler) -> HttpResponse:
        pass


class AuthMiddleware(Middleware):
    """
    Injeta o header Authorization: Bearer nas requisições

    Endpoints de autenticação (caminho contendo /auth/) passam sem token. O
    middleware só consulta o provedor de token; nunca dispara login.
    """

    name = 'auth'
    AUTH_PATH_MARKER = '/auth/'

    def __init__(self,
                 token_provider: Callable[[], Optional[str]],
                 async_token_provider: Optional[Callable[[], Awaitable[Optional[str]]]] = None):
        self.token_provider = token_provider
        self.async_token_provider = async_token_provider

    def _is_auth_endpoint(self, request: HttpRequest) -> bool:
        return self.AUTH_PATH_MARKER in (request.path or request.url)

    @staticmethod
    def _authorize(request: HttpRequest, token: Optional[str]) -> HttpRequest:
        if token:
            return request.with_header('Authorization', f"Bearer {token}")
        return request

    def handle(self, request: HttpRequest, next_handler: Handler) -> HttpResponse:
        if self._is_auth_endpoint(request):
            return next_handler(request)
        return next_handler(self._authorize(request, self.token_provider()))

    async def handle_async(self, request: HttpRequest, next_handler: AsyncHandler) -> HttpResponse:
        if self._is_auth_endpoint(request):
            return await next_handler(request)
        if self.async_token_provider is not None:
            token = await self.async_token_provider()
        else:
            token = self.token_provider()
        return await next_handler(self._authorize(request, token))


def _wait(seconds: float, request: HttpRequest):
    """Espera interrompível pelo cancel_event da requisição"""
    if request.cancel_event is None:
        time.sleep(seconds)
    elif request.cancel_event.wait(seconds):
        raise RequestCancelledError(url=request.url)


class RetryMiddleware(Middleware):
    """
    Repete requisições com falha transitória usando backoff exponencial

    Retentáveis: status 408, 429, 500, 502, 503, 504 e NetworkError vindo do
    transporte. O atraso da tentativa n (a partir de 0) é
    base_delay_ms * 2**n + jitter aleatório de 0 a 100 ms. Esgotadas as
    tentativas, levanta NetworkError com a última falha. Com request.timeout,
    nenhuma espera ultrapassa o prazo total contado desde a primeira tentativa.
    """

    name = 'retry'
    RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({408, 429, 500, 502, 503, 504})

    def __init__(self,
                 max_retries: int = 3,
                 base_delay_ms: int = 1000,
                 max_jitter_ms: int = 100,
                 sleep: Optional[Callable[[float, HttpRequest], None]] = None,
                 async_sleep: Optional[Callable[[float], Awaitable[None]]] = None,
                 retryable_status_codes: Optional[Iterable[int]] = None,
                 clock: Callable[[], float] = time.monotonic):
        """
        Args:
            max_retries (int): Tentativas adicionais após a primeira
            base_delay_ms (int): Atraso base em milissegundos
            max_jitter_ms (int): Jitter máximo em milissegundos
            sleep (Callable, optional): Espera síncrona (segundos, requisição)
            async_sleep (Callable, optional): Espera assíncrona (segundos)
            retryable_status_codes (Iterable[int], optional): Substitui os status padrão
            clock (Callable): Relógio monotônico usado no prazo total
        """
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_jitter_ms = max_jitter_ms
        self._sleep = sleep or _wait
        self._async_sleep = async_sleep or asyncio.sleep
        self.retryable_status_codes = frozenset(retryable_status_codes or self.RETRYABLE_STATUS_CODES)
        self._clock = clock
        self.logger = logging.getLogger(__name__)

    def should_retry(self, response: HttpResponse) -> bool:
        return response.status_code in self.retryable_status_codes

    def get_delay(self, attempt: int) -> float:
        """Atraso em segundos antes da próxima tentativa"""
        jitter = random.randint(0, self.max_jitter_ms)
        return (self.base_delay_ms * (2 ** attempt) + jitter) / 1000.0

    def _deadline(self, request: HttpRequest) -> Optional[float]:
        if request.timeout is None:
            return None
        return self._clock() + request.timeout

    def _fits_deadline(self, deadline: Optional[float], delay: float) -> bool:
        return deadline is None or self._clock() + delay < deadline

    def _exhausted(self, request: HttpRequest,
                   attempts: int,
                   last_response: Optional[HttpResponse],
                   last_error: Optional[Exception]) -> NetworkError:
        if last_response is not None:
            return NetworkError(
                f"Máximo de tentativas excedido ({attempts}): HTTP {last_response.status_code}",
                url=request.url,
                status_code=last_response.status_code,
                response_body=last_response.body
            )
        return NetworkError(
            f"Máximo de tentativas excedido ({attempts}): {last_error}",
            url=request.url
        )

    def _log_retry(self, request: HttpRequest, attempt: int, delay: float, reason: str):
        self.logger.warning(
            f"{request.method} {request.url}: {reason} "
            f"(tentativa {attempt + 1}/{self.max_retries + 1}). Retentando em {delay:.2f}s..."
        )

    def handle(self, request: HttpRequest, next_handler: Handler) -> HttpResponse:
        last_response = None
        last_error = None
        deadline = self._deadline(request)

        for attempt in range(self.max_retries + 1):
            if request.is_cancelled:
                raise RequestCancelledError(url=request.url)

            try:
                response = next_handler(request)
            except RequestCancelledError:
                raise
            except NetworkError as e:
                last_response, last_error = None, e
                reason = f"erro de rede {e.message}"
            else:
                if not self.should_retry(response):
                    return response
                last_response, last_error = response, None
                reason = f"status {response.status_code}"

            if attempt == self.max_retries:
                break
            delay = self.get_delay(attempt)
            if not self._fits_deadline(deadline, delay):
                self.logger.warning(f"{request.method} {request.url}: prazo de {request.timeout}s esgotado; sem novas tentativas")
                break
            self._log_retry(request, attempt, delay, reason)
            self._sleep(delay, request)

        self.logger.error(f"{request.method} {request.url}: falhou após {attempt + 1} tentativas")
        raise self._exhausted(request, attempt + 1, last_response, last_error) from last_error

    async def handle_async(self, request: HttpRequest, next_handler: AsyncHandler) -> HttpResponse:
        last_response = None
        last_error = None
        deadline = self._deadline(request)

        for attempt in range(self.max_retries + 1):
            try:
                response = await next_handler(request)
            except RequestCancelledError:
                raise
            except NetworkError as e:
                last_response, last_error = None, e
                reason = f"erro de rede {e.message}"
            else:
                if not self.should_retry(response):
                    return response
                last_response, last_error = response, None
                reason = f"status {response.status_code}"

            if attempt == self.max_retries:
                break
            delay = self.get_delay(attempt)
            if not self._fits_deadline(deadline, delay):
                self.logger.warning(f"{request.method} {request.url}: prazo de {request.timeout}s esgotado; sem novas tentativas")
                break
            self._log_retry(request, attempt, delay, reason)
            await self._async_sleep(delay)

        self.logger.error(f"{request.method} {request.url}: falhou após {attempt + 1} tentativas")
        raise self._exhausted(request, attempt + 1, last_response, last_error) from last_error


def sanitize_headers(headers: Optional[dict]) -> dict:
    """Substitui valores de headers sensíveis por [REDACTED]"""
    return {
        name: REDACTED if name.lower() in SENSITIVE_HEADERS else value
        for name, value in (headers or {}).items()
    }


def _is_sensitive_key(key: Any) -> bool:
    if not isinstance(key, str):
        return False
    lower = key.lower()
    return any(sensitive in lower for sensitive in SENSITIVE_KEYS)


def sanitize_data(data: Any) -> Any:
    """Mascara recursivamente campos sensíveis de objetos e listas JSON"""
    if isinstance(data, dict):
        return {
            key: REDACTED if _is_sensitive_key(key) else sanitize_data(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [sanitize_data(item) for item in data]
    return data


def sanitize_body(body: Any, max_text: int = 1000) -> Any:
    """
    Prepara um corpo de requisição/resposta para log

    Corpos JSON (texto ou já decodificados) têm campos sensíveis mascarados;
    texto que não é JSON é truncado em `max_text` caracteres.
    """
    if isinstance(body, bytes):
        body = body.decode('utf-8', 'replace')
    if isinstance(body, str):
        try:
            decoded = json.loads(body)
        except ValueError:
            return body[:max_text]
        if isinstance(decoded, (dict, list)):
            return sanitize_data(decoded)
        return body[:max_text]
    return sanitize_data(copy.deepcopy(body))


class LoggingMiddleware(Middleware):
    """
    Registra requisições e respostas HTTP com dados sensíveis mascarados

    Usado apenas em modo debug. Corpos de resposta com 10.000 bytes ou mais
    são registrados só pelo tamanho.
    """

    name = 'logging'
    MAX_BODY_SIZE = 10000

    def __init__(self, logger: Optional[logging.Logger] = None, level: int = logging.DEBUG):
        self.logger = logger or logging.getLogger(__name__)
        self.level = level

    @staticmethod
    def _new_request_id() -> str:
        return f"req_{uuid.uuid4().hex[:13]}"

    def _log_request(self, request: HttpRequest, request_id: str):
        context = {
            'request_id': request_id,
            'method': request.method,
            'uri': request.url,
            'headers': sanitize_headers(request.headers)
        }
        if request.body is not None:
            context['body'] = sanitize_body(request.body)

        self.logger.log(self.level, f"HTTP Request {request.method} {request.url}", extra=context)

    def _log_response(self, response: HttpResponse, request_id: str, duration_ms: float):
        context = {
            'request_id': request_id,
            'status_code': response.status_code,
            'duration_ms': duration_ms,
            'headers': sanitize_headers(response.headers)
        }
        size = len(response.body.encode('utf-8')) if response.body else 0
        if response.body and size < self.MAX_BODY_SIZE:
            context['body'] = sanitize_body(response.body)
        else:
            context['body_size'] = size

        level = logging.ERROR if response.status_code >= 400 else self.level
        self.logger.log(level, f"HTTP Response {response.status_code} ({duration_ms}ms)", extra=context)

    def _log_error(self, error: Exception, request_id: str, duration_ms: float):
        self.logger.error(
            f"HTTP Request Failed: {type(error).__name__}: {error}",
            extra={
                'request_id': request_id,
                'duration_ms': duration_ms,
                'error': str(error),
                'exception': type(error).__name__
            }
        )

    @staticmethod
    def _elapsed_ms(start: float) -> float:
        return round((time.perf_counter() - start) * 1000, 2)

    def handle(self, request: HttpRequest, next_handler: Handler) -> HttpResponse:
        request_id = self._new_request_id()
        start = time.perf_counter()
        self._log_request(request, request_id)

        try:
            response = next_handler(request)
        except Exception as e:
            self._log_error(e, request_id, self._elapsed_ms(start))
            raise

        self._log_response(response, request_id, self._elapsed_ms(start))
        return response

    async def handle_async(self, request: HttpRequest, next_handler: AsyncHandler) -> HttpResponse:
        request_id = self._new_request_id()
        start = time.perf_counter()
        self._log_request(request, request_id)

        try:
            response = await next_handler(request)
        except Exception as e:
            self._log_error(e, request_id, self._elapsed_ms(start))
            raise

        self._log_response(response, request_id, self._elapsed_ms(start))
        return response

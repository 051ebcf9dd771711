"""
SDK Python para a API XGate Global

Este módulo fornece o núcleo do cliente da API XGate: autenticação JWT com
renovação automática, pipeline de requisições com retry e logging mascarado,
aritmética monetária exata e limitação de requisições.

Exemplo de uso básico:
    from xgate_sdk import Configuration, XGateClient

    config = Configuration(email="usuario@empresa.com", password="senha123")

    with XGateClient(config) as client:
        client.auth.login()
        deposit = client.deposits.create("100.50", "cliente-123", "BRL")
        print(deposit.get('id'))

Exemplo de uso com valores monetários:
    from xgate_sdk import Money

    total = Money.sum(["100.50", "200.25", "300.75"])
    print(total)   # 601.5
"""

# Importações principais
from .client import XGateClient, AsyncXGateClient, HttpClient, AsyncHttpClient
from .config import Configuration, VERSION
from .logging_config import configure_logging

# Componentes modulares (uso avançado)
from .auth import Authenticator
from .token_store import TokenStore
from .token_decoder import JwtTokenDecoder
from .cache import MemoryCache, FileCache, RedisCache
from .middleware import AuthMiddleware, RetryMiddleware, LoggingMiddleware, Middleware
from .pipeline import Pipeline, AsyncPipeline, PipelineBuilder, classify_response
from .http_client import RequestsTransport, AiohttpTransport
from .rate_limiter import RateLimiter
from .money import Money, MoneyFormatter

# Modelos e exceções
from .models import TokenRecord, HttpRequest, HttpResponse, ApiResponse, PaginatedResponse
from .exceptions import (
    XGateError, ConfigurationError, MoneyFormatError, AuthenticationError, ValidationError,
    RateLimitError, NetworkError, RequestCancelledError, ApiError
)

# Interfaces (para extensibilidade)
from .interfaces import ICache, ITransport, IAsyncTransport, ITokenDecoder

__version__ = VERSION

__all__ = [
    # API Principal
    "XGateClient",
    "AsyncXGateClient",
    "HttpClient",
    "AsyncHttpClient",
    "Configuration",
    "configure_logging",

    # Componentes modulares
    "Authenticator",
    "TokenStore",
    "JwtTokenDecoder",
    "MemoryCache",
    "FileCache",
    "RedisCache",
    "Middleware",
    "AuthMiddleware",
    "RetryMiddleware",
    "LoggingMiddleware",
    "Pipeline",
    "AsyncPipeline",
    "PipelineBuilder",
    "classify_response",
    "RequestsTransport",
    "AiohttpTransport",
    "RateLimiter",
    "Money",
    "MoneyFormatter",

    # Modelos
    "TokenRecord",
    "HttpRequest",
    "HttpResponse",
    "ApiResponse",
    "PaginatedResponse",

    # Interfaces
    "ICache",
    "ITransport",
    "IAsyncTransport",
    "ITokenDecoder",

    # Exceções
    "XGateError",
    "ConfigurationError",
    "MoneyFormatError",
    "AuthenticationError",
    "ValidationError",
    "RateLimitError",
    "NetworkError",
    "RequestCancelledError",
    "ApiError"
]

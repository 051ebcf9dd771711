"""
Configuração do cliente XGate

Exemplo de uso:
    from xgate_sdk.config import Configuration

    # Valores explícitos
    config = Configuration(email="usuario@empresa.com", password="senha123")

    # Variáveis de ambiente / arquivo .env (XGATE_EMAIL, XGATE_PASSWORD, ...)
    config = Configuration.from_env()
"""

import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError
from .interfaces import IAsyncTransport, ITransport


VERSION = '1.0.0'

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_URL_PATTERN = re.compile(r'^https?://[^\s/$.?#][^\s]*$', re.IGNORECASE)

_TRUE_VALUES = ('1', 'true', 'yes', 'on', 'sim')


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == '':
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, value: Optional[str], default: int) -> int:
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Variável {name} deve ser um número inteiro: {value!r}")


@dataclass
class Configuration:
    """
    Parâmetros do cliente, validados na construção

    Attributes:
        email (str): Email da conta XGate
        password (str): Senha da conta
        base_url (str): URL base da API
        timeout (int): Timeout das requisições em segundos (1 a 300)
        retry_attempts (int): Tentativas adicionais em falhas transitórias (0 a 10)
        cache_ttl (int): TTL padrão do cache de tokens em segundos
        verify_ssl (bool): Verificar certificados SSL
        debug (bool): Ativa o LoggingMiddleware
        user_agent (str, optional): User-Agent enviado nas requisições
        custom_headers (Dict[str, str]): Headers adicionais
        transport (ITransport, optional): Transporte síncrono customizado
        async_transport (IAsyncTransport, optional): Transporte assíncrono customizado
    """
    email: str
    password: str = field(repr=False)
    base_url: str = 'https://api.xgateglobal.com'
    timeout: int = 30
    retry_attempts: int = 3
    cache_ttl: int = 3600
    verify_ssl: bool = True
    debug: bool = False
    user_agent: Optional[str] = None
    custom_headers: Dict[str, str] = field(default_factory=dict)
    transport: Optional[ITransport] = field(default=None, repr=False)
    async_transport: Optional[IAsyncTransport] = field(default=None, repr=False)

    DEFAULT_BASE_URL = 'https://api.xgateglobal.com'
    DEFAULT_TIMEOUT = 30
    DEFAULT_RETRY_ATTEMPTS = 3
    DEFAULT_CACHE_TTL = 3600

    def __post_init__(self):
        if not self.email or not _EMAIL_PATTERN.match(self.email):
            raise ConfigurationError("Formato de email inválido")
        if not self.password or len(self.password) < 6:
            raise ConfigurationError("A senha deve ter pelo menos 6 caracteres")
        if not self.base_url or not _URL_PATTERN.match(self.base_url):
            raise ConfigurationError(f"URL base inválida: {self.base_url!r}")
        self.base_url = self.base_url.rstrip('/')
        if not 1 <= self.timeout <= 300:
            raise ConfigurationError("Timeout deve estar entre 1 e 300 segundos")
        if not 0 <= self.retry_attempts <= 10:
            raise ConfigurationError("Tentativas de retry devem estar entre 0 e 10")
        if self.cache_ttl < 0:
            raise ConfigurationError("TTL do cache não pode ser negativo")
        if self.user_agent is None:
            self.user_agent = f"XGateGlobal-Python-SDK/{VERSION}"

    @classmethod
    def from_env(cls, prefix: str = 'XGATE_', env_file: Optional[str] = None, **overrides) -> 'Configuration':
        """
        Cria configuração a partir de variáveis de ambiente

        Carrega antes o arquivo .env (ou `env_file`) com python-dotenv.

        Args:
            prefix (str): Prefixo das variáveis
            env_file (str, optional): Caminho do arquivo .env
            **overrides: Valores que têm precedência sobre o ambiente

        Returns:
            Configuration: Configuração validada

        Raises:
            ConfigurationError: Variável ausente ou inválida
        """
        load_dotenv(env_file)

        def env(name: str) -> Optional[str]:
            return os.getenv(f"{prefix}{name}")

        values: Dict[str, Any] = {
            'email': env('EMAIL') or '',
            'password': env('PASSWORD') or '',
            'base_url': env('BASE_URL') or cls.DEFAULT_BASE_URL,
            'timeout': _env_int(f"{prefix}TIMEOUT", env('TIMEOUT'), cls.DEFAULT_TIMEOUT),
            'retry_attempts': _env_int(f"{prefix}RETRY_ATTEMPTS", env('RETRY_ATTEMPTS'), cls.DEFAULT_RETRY_ATTEMPTS),
            'cache_ttl': _env_int(f"{prefix}CACHE_TTL", env('CACHE_TTL'), cls.DEFAULT_CACHE_TTL),
            'verify_ssl': _env_bool(env('VERIFY_SSL'), True),
            'debug': _env_bool(env('DEBUG'), False)
        }
        values.update(overrides)
        return cls(**values)

    def set_custom_header(self, name: str, value: str) -> 'Configuration':
        self.custom_headers[name] = value
        return self

    def get_default_headers(self) -> Dict[str, str]:
        """Headers enviados em toda requisição"""
        headers = {
            'Accept': 'application/json',
            'Content-Type': 'application/json',
            'User-Agent': self.user_agent
        }
        headers.update(self.custom_headers)
        return headers

    def to_dict(self) -> Dict[str, Any]:
        """Converte para dicionário com a senha mascarada"""
        return {
            'email': self.email,
            'password': '********',
            'base_url': self.base_url,
            'timeout': self.timeout,
            'retry_attempts': self.retry_attempts,
            'cache_ttl': self.cache_ttl,
            'verify_ssl': self.verify_ssl,
            'debug': self.debug,
            'user_agent': self.user_agent,
            'custom_headers': dict(self.custom_headers)
        }

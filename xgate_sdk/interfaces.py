"""
Interfaces e contratos do SDK XGate
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from .models import HttpRequest, HttpResponse


class ICache(ABC):
    """Interface para caches chave-valor (memória, arquivo, Redis...)"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """
        Obtém valor do cache

        Args:
            key (str): Chave
            default (Any): Valor retornado quando a chave não existe ou expirou

        Returns:
            Any: Valor armazenado ou default
        """
        pass

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        """
        Armazena valor serializável em JSON

        Args:
            key (str): Chave
            value (Any): Valor
            ttl (int, optional): Tempo de vida em segundos (None = sem expiração)
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove a chave, se existir"""
        pass


class ITransport(ABC):
    """Interface para transportes HTTP síncronos"""

    @abstractmethod
    def send(self, request: HttpRequest) -> HttpResponse:
        """
        Envia a requisição e devolve a resposta crua

        Args:
            request (HttpRequest): Requisição montada pelo pipeline

        Returns:
            HttpResponse: Status, headers e corpo em texto

        Raises:
            NetworkError: Falha de transporte (conexão, timeout, TLS)
        """
        pass

    @abstractmethod
    def close(self):
        """Fecha recursos do transporte"""
        pass


class IAsyncTransport(ABC):
    """Interface para transportes HTTP assíncronos"""

    @abstractmethod
    async def send(self, request: HttpRequest) -> HttpResponse:
        """Versão assíncrona de ITransport.send"""
        pass

    @abstractmethod
    async def close(self):
        """Fecha recursos do transporte"""
        pass


class ITokenDecoder(ABC):
    """Interface para decodificadores de token"""

    @abstractmethod
    def decode_token(self, encoded_token: str) -> Optional[Dict[str, Any]]:
        """
        Decodifica um token

        Args:
            encoded_token (str): Token codificado

        Returns:
            Dict or None: Claims decodificadas ou None se erro
        """
        pass

    @abstractmethod
    def get_expiration(self, encoded_token: str) -> Optional[int]:
        """
        Obtém a expiração (timestamp Unix) declarada no token

        Returns:
            int or None: Valor da claim exp ou None se ausente/inválida
        """
        pass

"""
Armazenamento do token de acesso com persistência em cache
"""

import logging
import threading
import time
from typing import Callable, Optional

from .cache import FileCache
from .interfaces import ICache, ITokenDecoder
from .models import TokenRecord
from .token_decoder import JwtTokenDecoder


class TokenStore:
    """
    Guarda token de acesso, refresh token e expiração

    O estado é um TokenRecord imutável trocado por inteiro sob lock, e cada
    alteração é gravada de forma síncrona no cache para sobreviver a
    reinícios do processo.
    """

    CACHE_KEY = 'xgate_access_token'
    DEFAULT_LIFETIME = 3600
    EXPIRATION_MARGIN = 60
    REFRESH_THRESHOLD = 300

    def __init__(self,
                 cache: Optional[ICache] = None,
                 clock: Callable[[], float] = time.time,
                 token_decoder: Optional[ITokenDecoder] = None,
                 cache_key: str = CACHE_KEY,
                 ttl: Optional[int] = None):
        """
        Inicializa o store e recarrega o token salvo no cache

        Args:
            cache (ICache, optional): Cache de persistência (padrão FileCache)
            clock (Callable, optional): Fonte de tempo em segundos Unix
            token_decoder (ITokenDecoder, optional): Leitor da claim exp
            cache_key (str): Chave usada no cache
            ttl (int, optional): TTL máximo da entrada quando o token não tem expiração
        """
        self.cache = cache if cache is not None else FileCache()
        self.cache_key = cache_key
        self.ttl = ttl
        self._clock = clock
        self._decoder = token_decoder or JwtTokenDecoder()
        self._lock = threading.RLock()
        self._record: Optional[TokenRecord] = None
        self.logger = logging.getLogger(__name__)

        self._load_from_cache()

    def _now(self) -> int:
        return int(self._clock())

    def _load_from_cache(self):
        try:
            record = TokenRecord.from_dict(self.cache.get(self.cache_key))
        except Exception as e:
            self.logger.warning(f"Não foi possível carregar token do cache: {str(e)}")
            return

        if record is not None:
            with self._lock:
                self._record = record
            self.logger.debug("Token reidratado a partir do cache")

    def _save_to_cache(self, record: TokenRecord):
        if record.expires_at is not None:
            ttl = max(record.expires_at - self._now(), 1)
        else:
            ttl = self.ttl
        self.cache.set(self.cache_key, record.to_dict(), ttl)

    def set_token(self,
                  access_token: str,
                  refresh_token: Optional[str] = None,
                  expires_in: Optional[int] = None):
        """
        Define o token atual

        Args:
            access_token (str): Token de acesso
            refresh_token (str, optional): Refresh token
            expires_in (int, optional): Segundos até expirar. Quando ausente, usa
                a claim exp do JWT; se não houver, assume 3600 segundos.
        """
        now = self._now()
        if expires_in is not None:
            expires_at = now + int(expires_in)
        else:
            expires_at = self._decoder.get_expiration(access_token)
            if expires_at is None:
                expires_at = now + self.DEFAULT_LIFETIME

        record = TokenRecord(access_token, refresh_token, expires_at)
        with self._lock:
            self._record = record
            self._save_to_cache(record)

    def get_record(self) -> Optional[TokenRecord]:
        with self._lock:
            return self._record

    def get_token(self) -> Optional[str]:
        """
        Retorna o token de acesso se ainda válido

        Não renova o token: quando expirado, limpa o estado e retorna None.
        """
        with self._lock:
            if self._record is None:
                return None
            if self._is_expired(self._record):
                self.clear_token()
                return None
            return self._record.access_token

    def get_refresh_token(self) -> Optional[str]:
        with self._lock:
            return self._record.refresh_token if self._record else None

    def has_token(self) -> bool:
        record = self.get_record()
        return record is not None and not self._is_expired(record)

    def _is_expired(self, record: TokenRecord) -> bool:
        if record.expires_at is None:
            return False
        return self._now() >= record.expires_at - self.EXPIRATION_MARGIN

    def is_expired(self) -> bool:
        """Considera o token expirado 60 segundos antes da expiração real"""
        record = self.get_record()
        if record is None:
            return False
        return self._is_expired(record)

    def get_time_until_expiration(self) -> Optional[int]:
        record = self.get_record()
        if record is None or record.expires_at is None:
            return None
        return max(record.expires_at - self._now(), 0)

    def should_refresh(self) -> bool:
        """True se há token válido com menos de 5 minutos de vida"""
        with self._lock:
            if not self.has_token():
                return False
            remaining = self.get_time_until_expiration()
            return remaining is not None and remaining < self.REFRESH_THRESHOLD

    def clear_token(self):
        """Remove token da memória e do cache"""
        with self._lock:
            self._record = None
            self.cache.delete(self.cache_key)

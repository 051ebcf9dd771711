"""
Limitador de requisições por chave (janela fixa e janela deslizante)
"""

import hashlib
import logging
import math
import threading
import time
from typing import Any, Callable, Dict, List, Optional

from .cache import MemoryCache
from .exceptions import RateLimitError
from .interfaces import ICache


class RateLimiter:
    """
    Conta requisições por chave dentro de uma janela de tempo

    A chave é definida pelo chamador (API key, id do cliente...). Os
    timestamps ficam no cache injetado e são podados a cada consulta. O
    ciclo poda → verifica → registra é serializado por um lock da chave, tirado
    de um conjunto fixo de LOCK_STRIPES locks.

    Exemplo de uso:
        limiter = RateLimiter(max_requests=60, window_seconds=60)
        limiter.allow("cliente-123")   # levanta RateLimitError se exceder
    """

    LOCK_STRIPES = 64

    def __init__(self,
                 max_requests: int = 60,
                 window_seconds: int = 60,
                 cache: Optional[ICache] = None,
                 prefix: str = 'rate_limit_',
                 clock: Callable[[], float] = time.time):
        """
        Args:
            max_requests (int): Requisições permitidas por janela
            window_seconds (int): Tamanho da janela em segundos
            cache (ICache, optional): Cache das janelas (padrão MemoryCache)
            prefix (str): Prefixo das chaves no cache
            clock (Callable, optional): Fonte de tempo em segundos Unix
        """
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cache = cache if cache is not None else MemoryCache()
        self.prefix = prefix
        self._clock = clock
        self._locks = [threading.Lock() for _ in range(self.LOCK_STRIPES)]
        self.logger = logging.getLogger(__name__)

    def _cache_key(self, key: str) -> str:
        return f"{self.prefix}{hashlib.md5(key.encode('utf-8')).hexdigest()}"

    def _sliding_cache_key(self, key: str) -> str:
        return f"{self.prefix}sliding_{hashlib.md5(key.encode('utf-8')).hexdigest()}"

    def _lock_for(self, cache_key: str) -> threading.Lock:
        # Chaves distintas podem dividir o mesmo lock
        return self._locks[hash(cache_key) % len(self._locks)]

    def _load_requests(self, cache_key: str, now: float) -> List[float]:
        data = self.cache.get(cache_key)
        requests = data.get('requests', []) if isinstance(data, dict) else []
        cutoff = now - self.window_seconds
        return [timestamp for timestamp in requests if timestamp > cutoff]

    def allow(self, key: str) -> bool:
        """
        Registra uma requisição para a chave se houver capacidade

        Args:
            key (str): Identificador limitado

        Returns:
            bool: True quando a requisição é permitida

        Raises:
            RateLimitError: Limite atingido; retry_after indica os segundos de espera
        """
        cache_key = self._cache_key(key)
        with self._lock_for(cache_key):
            now = self._clock()
            requests = self._load_requests(cache_key, now)

            if len(requests) >= self.max_requests:
                oldest = min(requests) if requests else now
                wait = max(self.window_seconds - (now - oldest), 0)
                retry_after = math.ceil(wait)
                self.logger.warning(f"Limite de requisições atingido para a chave {cache_key}; aguarde {retry_after}s")
                raise RateLimitError(
                    "Limite de requisições excedido",
                    retry_after=retry_after,
                    limit=self.max_requests,
                    remaining=0,
                    reset_at=int(now + wait)
                )

            requests.append(now)
            self.cache.set(cache_key, {'requests': requests, 'count': len(requests)}, self.window_seconds)
            return True

    def get_remaining(self, key: str) -> int:
        cache_key = self._cache_key(key)
        with self._lock_for(cache_key):
            requests = self._load_requests(cache_key, self._clock())
        return max(0, self.max_requests - len(requests))

    def get_reset_time(self, key: str) -> int:
        """Timestamp Unix em que a requisição mais antiga sai da janela"""
        cache_key = self._cache_key(key)
        with self._lock_for(cache_key):
            now = self._clock()
            requests = self._load_requests(cache_key, now)
        if not requests:
            return int(now + self.window_seconds)
        return int(min(requests) + self.window_seconds)

    def reset(self, key: str):
        cache_key = self._cache_key(key)
        with self._lock_for(cache_key):
            self.cache.delete(cache_key)

    def get_info(self, key: str) -> Dict[str, int]:
        return {
            'limit': self.max_requests,
            'remaining': self.get_remaining(key),
            'reset_at': self.get_reset_time(key),
            'window': self.window_seconds
        }

    def set_max_requests(self, max_requests: int) -> 'RateLimiter':
        self.max_requests = max_requests
        return self

    def set_window_seconds(self, window_seconds: int) -> 'RateLimiter':
        self.window_seconds = window_seconds
        return self

    def sliding_window(self, key: str, max_requests: int, window_seconds: float) -> bool:
        """
        Janela deslizante com resolução de microssegundos

        Usa limite e janela próprios, independentes dos padrões do limitador.

        Returns:
            bool: True se a requisição foi registrada, False se o limite foi atingido
        """
        cache_key = self._sliding_cache_key(key)
        window_us = int(window_seconds * 1_000_000)

        with self._lock_for(cache_key):
            now_us = int(self._clock() * 1_000_000)
            stored = self.cache.get(cache_key)
            timestamps = [ts for ts in (stored or []) if now_us - ts < window_us]

            if len(timestamps) >= max_requests:
                return False

            timestamps.append(now_us)
            self.cache.set(cache_key, timestamps, max(1, math.ceil(window_seconds)))
            return True

    def throttle(self, key: str, callback: Callable[..., Any], *args, **kwargs) -> Any:
        """Executa `callback` somente se a chave estiver dentro do limite"""
        self.allow(key)
        return callback(*args, **kwargs)

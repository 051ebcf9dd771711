"""
Implementações de cache chave-valor usadas pelo TokenStore e RateLimiter
"""

import hashlib
import json
import logging
import math
import os
import tempfile
import threading
import time
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

from .interfaces import ICache

if TYPE_CHECKING:
    from redis import Redis


DEFAULT_CACHE_DIR = os.path.join(tempfile.gettempdir(), 'xgate_cache')


class MemoryCache(ICache):
    """Cache em memória do processo, com TTL por chave"""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._store: Dict[str, Tuple[Any, Optional[float]]] = {}  # key -> (valor, expires_at)
        self._lock = threading.Lock()
        self._clock = clock

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return default
            value, expires_at = entry
            if expires_at is not None and self._clock() >= expires_at:
                del self._store[key]
                return default
            return value

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._store[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()


class FileCache(ICache):
    """
    Cache persistido em arquivos JSON (um arquivo por chave)

    Sobrevive a reinícios do processo. Cada escrita grava em arquivo
    temporário e substitui o destino com os.replace.
    """

    def __init__(self,
                 directory: str = DEFAULT_CACHE_DIR,
                 namespace: str = 'xgate_sdk',
                 clock: Callable[[], float] = time.time):
        self.directory = os.path.join(directory, namespace)
        self._clock = clock
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)
        os.makedirs(self.directory, exist_ok=True)

    def _path(self, key: str) -> str:
        digest = hashlib.sha1(key.encode('utf-8')).hexdigest()
        return os.path.join(self.directory, f"{digest}.json")

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        with self._lock:
            try:
                with open(path, 'r', encoding='utf-8') as fh:
                    entry = json.load(fh)
            except FileNotFoundError:
                return default
            except (OSError, ValueError) as e:
                self.logger.warning(f"Entrada de cache ilegível descartada ({key}): {str(e)}")
                self._remove(path)
                return default

            expires_at = entry.get('expires_at') if isinstance(entry, dict) else None
            if expires_at is not None and self._clock() >= expires_at:
                self._remove(path)
                return default
            return entry.get('value', default) if isinstance(entry, dict) else default

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        entry = {
            'value': value,
            'expires_at': self._clock() + ttl if ttl else None
        }
        path = self._path(key)
        with self._lock:
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix='.tmp')
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as fh:
                    json.dump(entry, fh)
                os.replace(tmp_path, path)
            except BaseException:
                self._remove(tmp_path)
                raise

    def delete(self, key: str) -> None:
        with self._lock:
            self._remove(self._path(key))

    @staticmethod
    def _remove(path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass


class RedisCache(ICache):
    """
    Cache sobre um cliente Redis já configurado pelo chamador

    Args:
        redis_client: Cliente redis.Redis (ou compatível)
        prefix (str): Namespace aplicado a todas as chaves
    """

    def __init__(self, redis_client: 'Redis', prefix: str = 'xgate:'):
        self._redis = redis_client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._redis.get(self._key(key))
        if raw is None:
            return default
        if isinstance(raw, bytes):
            raw = raw.decode('utf-8')
        return json.loads(raw)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> None:
        payload = json.dumps(value)
        if ttl:
            self._redis.set(self._key(key), payload, ex=max(1, math.ceil(ttl)))
        else:
            self._redis.set(self._key(key), payload)

    def delete(self, key: str) -> None:
        self._redis.delete(self._key(key))

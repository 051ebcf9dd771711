"""
Modelos de dados do SDK XGate
"""
import json
import threading
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


def _int_or(value: Any, default: int) -> int:
    """Inteiro de um campo de meta; null ou inválido usa o padrão"""
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return default


@dataclass(frozen=True)
class TokenRecord:
    """
    Token de acesso mantido pelo TokenStore

    Imutável: o TokenStore troca o registro inteiro a cada alteração, de modo
    que token e expiração nunca são lidos de versões diferentes.

    Attributes:
        access_token (str): Token enviado no header Authorization
        refresh_token (str, optional): Token usado em /auth/refresh
        expires_at (int, optional): Timestamp Unix de expiração
    """
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'token': self.access_token,
            'refresh_token': self.refresh_token,
            'expires_at': self.expires_at
        }

    @classmethod
    def from_dict(cls, data: Any) -> Optional['TokenRecord']:
        """Reconstrói o registro salvo no cache (None se inválido)"""
        if not isinstance(data, dict) or not data.get('token'):
            return None
        expires_at = data.get('expires_at')
        return cls(
            access_token=data['token'],
            refresh_token=data.get('refresh_token'),
            expires_at=int(expires_at) if expires_at is not None else None
        )


@dataclass(frozen=True)
class HttpRequest:
    """
    Requisição que atravessa o pipeline de middlewares

    Attributes:
        method (str): Verbo HTTP
        url (str): URL absoluta
        path (str): Caminho relativo à base (usado para detectar /auth/)
        headers (Dict[str, str]): Headers HTTP
        body (Any, optional): Corpo serializável em JSON
        params (Dict, optional): Query string
        timeout (float, optional): Timeout em segundos
        cancel_event (threading.Event, optional): Sinal de cancelamento
    """
    method: str
    url: str
    path: str = ''
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    params: Optional[Dict[str, Any]] = None
    timeout: Optional[float] = None
    cancel_event: Optional[threading.Event] = field(default=None, compare=False)

    def with_header(self, name: str, value: str) -> 'HttpRequest':
        """Retorna cópia da requisição com o header adicionado"""
        headers = dict(self.headers)
        headers[name] = value
        return replace(self, headers=headers)

    def body_text(self) -> Optional[str]:
        if self.body is None:
            return None
        if isinstance(self.body, (str, bytes)):
            return self.body if isinstance(self.body, str) else self.body.decode('utf-8', 'replace')
        return json.dumps(self.body)

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event is not None and self.cancel_event.is_set()


@dataclass(frozen=True)
class HttpResponse:
    """
    Resposta crua devolvida pelo transporte

    Attributes:
        status_code (int): Código de status HTTP
        headers (Dict[str, str]): Headers da resposta
        body (str): Corpo em texto
    """
    status_code: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: str = ''

    @property
    def is_successful(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.body)


class ApiResponse:
    """Resposta de sucesso da API já decodificada"""

    def __init__(self, data: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        self.data = data if data is not None else {}
        self.status_code = status_code
        self.headers = dict(headers or {})
        self.meta = self.data.get('meta') if isinstance(self.data, dict) else None

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.data, dict):
            value = self.data.get(key)
            return default if value is None else value
        return default

    def has(self, key: str) -> bool:
        return isinstance(self.data, dict) and self.data.get(key) is not None

    def get_header(self, name: str) -> Optional[str]:
        lower = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lower:
                return value
        return None

    @property
    def is_successful(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def is_error(self) -> bool:
        return self.status_code >= 400

    def to_dict(self) -> Any:
        return self.data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(status_code={self.status_code})"


class PaginatedResponse(ApiResponse):
    """
    Resposta paginada (corpo com objeto meta)

    Campos de meta reconhecidos: current_page, total_pages, per_page,
    total_items, has_more.
    """

    def __init__(self, data: Any, status_code: int = 200, headers: Optional[Dict[str, str]] = None):
        super().__init__(data, status_code, headers)
        meta = self.meta or {}
        count = len(self.items)

        self.current_page = _int_or(meta.get('current_page'), 1)
        self.total_pages = _int_or(meta.get('total_pages'), 1)
        self.per_page = _int_or(meta.get('per_page'), count)
        self.total_items = _int_or(meta.get('total_items'), count)
        has_more = meta.get('has_more')
        self.has_more = bool(has_more) if has_more is not None else self.current_page < self.total_pages

    @property
    def items(self) -> List[Any]:
        if isinstance(self.data, dict):
            items = self.data.get('items', self.data.get('data'))
            if isinstance(items, list):
                return items
            return []
        return list(self.data)

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    @property
    def next_page(self) -> Optional[int]:
        return self.current_page + 1 if self.has_next_page else None

    @property
    def previous_page(self) -> Optional[int]:
        return self.current_page - 1 if self.has_previous_page else None

    def pagination(self) -> Dict[str, Any]:
        return {
            'current_page': self.current_page,
            'total_pages': self.total_pages,
            'per_page': self.per_page,
            'total_items': self.total_items,
            'has_more': self.has_more
        }

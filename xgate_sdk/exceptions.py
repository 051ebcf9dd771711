"""
Exceções customizadas para o SDK XGate
"""
from typing import Any, Dict, Optional


class XGateError(Exception):
    """Exceção base para todos os erros do SDK"""
    def __init__(self,
                 message: str,
                 status_code: Optional[int] = None,
                 error_code: Optional[str] = None,
                 errors: Optional[Dict[str, Any]] = None,
                 context: Optional[Dict[str, Any]] = None):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.errors = errors
        self.context = dict(context or {})
        super().__init__(self.message)

    def add_context(self, key: str, value: Any) -> 'XGateError':
        """Adiciona uma informação de contexto ao erro"""
        self.context[key] = value
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Converte o erro para dicionário"""
        return {
            'type': type(self).__name__,
            'message': self.message,
            'status_code': self.status_code,
            'error_code': self.error_code,
            'errors': self.errors,
            'context': self.context
        }


class ConfigurationError(XGateError):
    """Exceção para configuração inválida do cliente"""
    pass


class MoneyFormatError(XGateError, ValueError):
    """Exceção quando um valor monetário não é um numeral decimal válido"""
    pass


class AuthenticationError(XGateError):
    """Exceção para falhas de login, refresh ou respostas 401"""
    def __init__(self, message: str = "Falha na autenticação", status_code: Optional[int] = 401, **kwargs):
        super().__init__(message, status_code, **kwargs)


class ValidationError(XGateError):
    """Exceção para respostas 422 e validações locais de payload"""
    def __init__(self,
                 message: str = "Falha de validação",
                 errors: Optional[Dict[str, Any]] = None,
                 status_code: Optional[int] = 422,
                 **kwargs):
        super().__init__(message, status_code, errors=dict(errors or {}), **kwargs)

    @property
    def validation_errors(self) -> Dict[str, Any]:
        return self.errors

    def has_field_error(self, field: str) -> bool:
        return field in self.errors

    def get_field_error(self, field: str) -> Optional[Any]:
        return self.errors.get(field)


class RateLimitError(XGateError):
    """
    Exceção para limite de requisições excedido (429 ou limitador local)

    Attributes:
        retry_after (int, optional): Segundos a aguardar antes de tentar de novo
        limit (int, optional): Limite de requisições da janela
        remaining (int, optional): Requisições restantes na janela
        reset_at (int, optional): Timestamp Unix em que a janela reinicia
    """
    def __init__(self,
                 message: str = "Limite de requisições excedido",
                 retry_after: Optional[int] = None,
                 limit: Optional[int] = None,
                 remaining: Optional[int] = None,
                 reset_at: Optional[int] = None,
                 status_code: Optional[int] = 429,
                 **kwargs):
        super().__init__(message, status_code, **kwargs)
        self.retry_after = retry_after
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result.update({
            'retry_after': self.retry_after,
            'limit': self.limit,
            'remaining': self.remaining,
            'reset_at': self.reset_at
        })
        return result


class NetworkError(XGateError):
    """Exceção para erros de rede/conexão e esgotamento de tentativas"""
    def __init__(self,
                 message: str = "Erro de rede",
                 url: Optional[str] = None,
                 status_code: Optional[int] = None,
                 response_body: Optional[str] = None,
                 **kwargs):
        super().__init__(message, status_code, **kwargs)
        self.url = url
        self.response_body = response_body


class RequestCancelledError(NetworkError):
    """Exceção quando a requisição é cancelada pelo chamador"""
    def __init__(self, message: str = "Requisição cancelada", **kwargs):
        super().__init__(message, **kwargs)


class ApiError(XGateError):
    """Exceção para respostas de erro da API não cobertas pelas demais"""
    def __init__(self,
                 message: str = "Erro na API",
                 status_code: Optional[int] = 500,
                 request_id: Optional[str] = None,
                 error_type: Optional[str] = None,
                 **kwargs):
        super().__init__(message, status_code, **kwargs)
        self.request_id = request_id
        self.error_type = error_type

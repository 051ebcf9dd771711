"""
Autenticação JWT na API XGate: login, refresh, logout e renovação proativa

Estados do token (ver TokenStore): sem token, válido, expirando (menos de 5
minutos) e expirado. get_token() renova tokens que estão expirando; falhas de
refresh caem para um novo login e nunca são fatais por si só.

Exemplo de uso:
    store = TokenStore()
    authenticator = Authenticator(store, "usuario@empresa.com", "senha123")
    authenticator.set_http_client(http_client)

    token = authenticator.ensure_authenticated()
"""

import asyncio
import logging
import threading
from typing import Any, Optional

from .exceptions import AuthenticationError, XGateError
from .models import ApiResponse
from .token_store import TokenStore


class Authenticator:
    """
    Orquestra o ciclo de vida do token de acesso

    O cliente HTTP (síncrono e/ou assíncrono) precisa expor post(path, data)
    retornando ApiResponse; normalmente é o HttpClient/AsyncHttpClient do SDK.
    """

    LOGIN_PATH = '/auth/token'
    REFRESH_PATH = '/auth/refresh'
    LOGOUT_PATH = '/auth/logout'

    def __init__(self,
                 token_store: TokenStore,
                 email: str,
                 password: str,
                 http_client: Optional[Any] = None,
                 async_http_client: Optional[Any] = None):
        """
        Inicializa o autenticador

        Args:
            token_store (TokenStore): Store que guarda o token
            email (str): Email da conta
            password (str): Senha da conta
            http_client (optional): Cliente síncrono usado nas chamadas /auth
            async_http_client (optional): Cliente assíncrono usado nas chamadas /auth
        """
        self.token_store = token_store
        self.email = email
        self._password = password
        self.http_client = http_client
        self.async_http_client = async_http_client
        self._refresh_lock = threading.Lock()
        self._async_refresh_lock = asyncio.Lock()
        self.logger = logging.getLogger(__name__)

    def set_http_client(self, http_client: Any):
        self.http_client = http_client

    def set_async_http_client(self, async_http_client: Any):
        self.async_http_client = async_http_client

    def _require_client(self) -> Any:
        if self.http_client is None:
            raise AuthenticationError("Cliente HTTP não configurado", None)
        return self.http_client

    def _require_async_client(self) -> Any:
        if self.async_http_client is None:
            raise AuthenticationError("Cliente HTTP assíncrono não configurado", None)
        return self.async_http_client

    def _credentials(self) -> dict:
        return {'email': self.email, 'password': self._password}

    def _store_token(self, response: ApiResponse, fallback_refresh: Optional[str] = None) -> str:
        """Extrai o token da resposta e salva no TokenStore"""
        access_token = response.get('token') or response.get('access_token')
        if not access_token:
            raise AuthenticationError("Nenhum token recebido na resposta de autenticação", response.status_code)

        refresh_token = response.get('refresh_token') or fallback_refresh
        expires_in = response.get('expires_in')
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            expires_in = None

        self.token_store.set_token(access_token, refresh_token, expires_in)
        return access_token

    @staticmethod
    def _login_failure(error: XGateError) -> AuthenticationError:
        if isinstance(error, AuthenticationError):
            return error
        return AuthenticationError(f"Falha na autenticação: {error.message}", error.status_code)

    # API síncrona

    def login(self) -> str:
        """
        Autentica com email e senha

        Returns:
            str: Token de acesso

        Raises:
            AuthenticationError: Status de erro, falha de rede ou resposta sem token
        """
        client = self._require_client()
        self.logger.info(f"Autenticando usuário: {self.email}")

        try:
            response = client.post(self.LOGIN_PATH, self._credentials())
        except XGateError as e:
            self.logger.error(f"Erro durante autenticação: {e.message}")
            raise self._login_failure(e) from e

        token = self._store_token(response)
        self.logger.info("Autenticação concluída com sucesso")
        return token

    def refresh(self) -> str:
        """
        Renova o token usando o refresh token

        Sem refresh token, ou em qualquer falha do refresh, faz login completo.

        Returns:
            str: Novo token de acesso
        """
        refresh_token = self.token_store.get_refresh_token()
        if not refresh_token:
            self.logger.info("Sem refresh token; realizando login completo")
            return self.login()

        client = self._require_client()
        try:
            response = client.post(self.REFRESH_PATH, {'refresh_token': refresh_token})
            token = self._store_token(response, fallback_refresh=refresh_token)
        except Exception as e:
            self.logger.warning(f"Falha no refresh do token ({type(e).__name__}: {e}); realizando login completo")
            return self.login()

        self.logger.info("Token renovado com sucesso")
        return token

    def get_token(self) -> Optional[str]:
        """
        Retorna o token atual, renovando-o se estiver perto de expirar

        Returns:
            str or None: Token válido ou None (o chamador deve fazer login)
        """
        if self.token_store.should_refresh():
            with self._refresh_lock:
                # Outra thread pode ter renovado enquanto esperávamos o lock
                if self.token_store.should_refresh():
                    try:
                        self.refresh()
                    except XGateError as e:
                        self.logger.warning(f"Refresh falhou ({e.message}); tentando login")
                        self.login()

        return self.token_store.get_token()

    def authenticate(self) -> str:
        """Retorna o token em cache se válido; caso contrário faz login"""
        if self.token_store.has_token():
            token = self.token_store.get_token()
            if token:
                return token
        return self.login()

    def ensure_authenticated(self) -> str:
        return self.get_token() or self.login()

    def logout(self):
        """Encerra a sessão (melhor esforço) e limpa o token local"""
        if self.http_client is not None and self.token_store.has_token():
            try:
                self.http_client.post(self.LOGOUT_PATH)
            except Exception as e:
                self.logger.warning(f"Erro ignorado no logout: {str(e)}")

        self.token_store.clear_token()
        self.logger.info("Sessão encerrada")

    # API assíncrona

    async def alogin(self) -> str:
        client = self._require_async_client()
        self.logger.info(f"Autenticando usuário: {self.email}")

        try:
            response = await client.post(self.LOGIN_PATH, self._credentials())
        except XGateError as e:
            self.logger.error(f"Erro durante autenticação: {e.message}")
            raise self._login_failure(e) from e

        token = self._store_token(response)
        self.logger.info("Autenticação concluída com sucesso")
        return token

    async def arefresh(self) -> str:
        refresh_token = self.token_store.get_refresh_token()
        if not refresh_token:
            return await self.alogin()

        client = self._require_async_client()
        try:
            response = await client.post(self.REFRESH_PATH, {'refresh_token': refresh_token})
            token = self._store_token(response, fallback_refresh=refresh_token)
        except Exception as e:
            self.logger.warning(f"Falha no refresh do token ({type(e).__name__}: {e}); realizando login completo")
            return await self.alogin()

        self.logger.info("Token renovado com sucesso")
        return token

    async def aget_token(self) -> Optional[str]:
        if self.token_store.should_refresh():
            async with self._async_refresh_lock:
                if self.token_store.should_refresh():
                    try:
                        await self.arefresh()
                    except XGateError as e:
                        self.logger.warning(f"Refresh falhou ({e.message}); tentando login")
                        await self.alogin()

        return self.token_store.get_token()

    async def aensure_authenticated(self) -> str:
        return await self.aget_token() or await self.alogin()

    async def alogout(self):
        if self.async_http_client is not None and self.token_store.has_token():
            try:
                await self.async_http_client.post(self.LOGOUT_PATH)
            except Exception as e:
                self.logger.warning(f"Erro ignorado no logout: {str(e)}")

        self.token_store.clear_token()
        self.logger.info("Sessão encerrada")

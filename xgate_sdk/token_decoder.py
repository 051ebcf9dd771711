"""
Utilitário para leitura de tokens JWT

O payload é decodificado SEM verificação de assinatura. O resultado serve
apenas como heurística local (ex: descobrir a expiração); quem decide se o
token é válido continua sendo o servidor.
"""

import base64
import binascii
import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .interfaces import ITokenDecoder


class JwtTokenDecoder(ITokenDecoder):
    """Decodificador de tokens no formato header.payload.assinatura"""

    @staticmethod
    def _b64url_decode(segment: str) -> bytes:
        padding = '=' * (-len(segment) % 4)
        return base64.urlsafe_b64decode(segment + padding)

    def decode_token(self, encoded_token: str) -> Optional[Dict[str, Any]]:
        """
        Decodifica as claims (segmento do meio) de um JWT

        Args:
            encoded_token (str): Token JWT

        Returns:
            Dict or None: Claims ou None se o token não tiver três partes
            ou o payload não for um objeto JSON
        """
        if not encoded_token:
            return None

        parts = encoded_token.split('.')
        if len(parts) != 3:
            return None

        try:
            payload = json.loads(self._b64url_decode(parts[1]).decode('utf-8'))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            return None

        return payload if isinstance(payload, dict) else None

    def get_expiration(self, encoded_token: str) -> Optional[int]:
        claims = self.decode_token(encoded_token)
        if not claims:
            return None

        exp = claims.get('exp')
        if isinstance(exp, bool) or not isinstance(exp, (int, float)):
            return None
        return int(exp)

    def get_token_info(self, encoded_token: str) -> Dict[str, Any]:
        """
        Extrai informações estruturadas do token

        Returns:
            Dict: subject, emissor, datas de emissão/expiração (vazio se inválido)
        """
        claims = self.decode_token(encoded_token)
        if not claims:
            return {}

        expires_at = self.get_expiration(encoded_token)
        return {
            'subject': claims.get('sub'),
            'issuer': claims.get('iss'),
            'issued_at': claims.get('iat'),
            'expires_at': expires_at,
            'expiration_date': (
                datetime.fromtimestamp(expires_at, tz=timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
                if expires_at is not None else None
            ),
            'scope': claims.get('scope')
        }

"""
Serviços por domínio da API XGate (depósitos, saques, cripto e PIX)

Os serviços apenas montam caminho e payload e repassam ao HttpClient; a
autenticação, o retry e a classificação de erros ficam no pipeline. Valores
monetários passam sempre por Money.of e seguem como string canônica.
"""

from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import quote

from .exceptions import ValidationError
from .money import Money, MoneyLike
from .models import ApiResponse, PaginatedResponse


def _positive_amount(amount: MoneyLike, field: str = 'amount') -> Money:
    value = Money.of(amount)
    if not value.is_positive():
        raise ValidationError("O valor deve ser maior que zero", {field: 'must be greater than zero'}, None)
    return value


def _segment(value: str) -> str:
    return quote(str(value), safe='')


def _currency_payload(currency: Any) -> Dict[str, Any]:
    if isinstance(currency, dict):
        return dict(currency)
    return {'symbol': str(currency).upper()}


class AuthenticationService:
    """Operações de sessão expostas por XGateClient.auth"""

    def __init__(self, authenticator, token_store):
        self.authenticator = authenticator
        self.token_store = token_store

    def login(self) -> str:
        return self.authenticator.login()

    def refresh(self) -> str:
        return self.authenticator.refresh()

    def logout(self):
        self.authenticator.logout()

    def get_token(self) -> Optional[str]:
        return self.authenticator.get_token()

    def is_authenticated(self) -> bool:
        return self.token_store.has_token()

    def get_time_until_expiration(self) -> Optional[int]:
        return self.token_store.get_time_until_expiration()

    def ensure_authenticated(self) -> str:
        return self.authenticator.ensure_authenticated()


class _TransactionService:
    """Operações comuns a depósitos e saques"""

    BASE_PATH = ''

    def __init__(self, http_client):
        self.http = http_client

    def get_currencies(self) -> ApiResponse:
        return self.http.get(f"{self.BASE_PATH}/company/currencies")

    def get(self, transaction_id: str) -> ApiResponse:
        return self.http.get(f"{self.BASE_PATH}/{_segment(transaction_id)}")

    def list(self, filters: Optional[Dict[str, Any]] = None,
             page: int = 1, per_page: int = 20) -> PaginatedResponse:
        return self.http.paginate(self.BASE_PATH, filters, page, per_page)

    def get_by_customer(self, customer_id: str,
                        filters: Optional[Dict[str, Any]] = None) -> List[Any]:
        query = dict(filters or {})
        query['customerId'] = customer_id
        return self.list(query).items

    def get_limits(self, currency: str) -> ApiResponse:
        return self.http.get(f"{self.BASE_PATH}/limits/{_segment(currency)}")

    def cancel(self, transaction_id: str, reason: str = '') -> ApiResponse:
        payload = {'reason': reason} if reason else {}
        return self.http.post(f"{self.BASE_PATH}/{_segment(transaction_id)}/cancel", payload)


class DepositService(_TransactionService):
    BASE_PATH = '/deposit'

    def create(self, amount: MoneyLike, customer_id: str, currency: Any,
               metadata: Optional[Dict[str, Any]] = None) -> ApiResponse:
        """
        Cria um depósito

        Args:
            amount: Valor (str, int, float, Decimal ou Money)
            customer_id (str): Identificador do cliente
            currency: Símbolo da moeda ou dicionário da moeda
            metadata (Dict, optional): Metadados livres

        Raises:
            ValidationError: Valor menor ou igual a zero
        """
        payload = {
            'amount': str(_positive_amount(amount)),
            'customerId': customer_id,
            'currency': _currency_payload(currency)
        }
        if metadata:
            payload['metadata'] = metadata
        return self.http.post(self.BASE_PATH, payload)

    def calculate_fees(self, amount: MoneyLike, currency: str) -> Dict[str, Any]:
        response = self.http.post(f"{self.BASE_PATH}/calculate-fees", {
            'amount': str(Money.of(amount)),
            'currency': currency
        })
        return {
            'amount': Money.of(response.get('amount', '0')),
            'fee': Money.of(response.get('fee', '0')),
            'total': Money.of(response.get('total', '0')),
            'currency': response.get('currency', currency)
        }


class WithdrawalService(_TransactionService):
    BASE_PATH = '/withdraw'

    def get_blockchain_networks(self) -> ApiResponse:
        return self.http.get(f"{self.BASE_PATH}/company/blockchain-networks")

    def create(self, amount: MoneyLike, customer_id: str, currency: Any,
               destination: Optional[Dict[str, Any]] = None,
               metadata: Optional[Dict[str, Any]] = None) -> ApiResponse:
        payload = {
            'amount': str(_positive_amount(amount)),
            'customerId': customer_id,
            'currency': _currency_payload(currency)
        }
        if destination:
            payload['destination'] = destination
        if metadata:
            payload['metadata'] = metadata
        return self.http.post(self.BASE_PATH, payload)

    def calculate_fees(self, amount: MoneyLike, currency: str,
                       network: Optional[str] = None) -> Dict[str, Any]:
        payload = {'amount': str(Money.of(amount)), 'currency': currency}
        if network:
            payload['network'] = network
        response = self.http.post(f"{self.BASE_PATH}/calculate-fees", payload)
        return {
            'amount': Money.of(response.get('amount', '0')),
            'fee': Money.of(response.get('fee', '0')),
            'total': Money.of(response.get('total', '0')),
            'currency': response.get('currency', currency)
        }

    def validate_address(self, address: str, network: str) -> bool:
        response = self.http.post(f"{self.BASE_PATH}/validate-address", {
            'address': address,
            'network': network
        })
        return bool(response.get('valid', False))


class CryptoService:
    """Carteiras, saldos, cotações e saques em criptomoeda"""

    def __init__(self, http_client):
        self.http = http_client

    def get_wallet(self, customer_id: str) -> ApiResponse:
        return self.http.get(f"/crypto/customer/{_segment(customer_id)}/wallet")

    def get_wallets(self, customer_id: str) -> ApiResponse:
        return self.http.get(f"/crypto/customer/{_segment(customer_id)}/wallets")

    def withdraw(self, amount: MoneyLike, customer_id: str, cryptocurrency: str,
                 address: str, network: str,
                 memo: Optional[str] = None) -> ApiResponse:
        payload = {
            'amount': str(_positive_amount(amount)),
            'customerId': customer_id,
            'cryptocurrency': cryptocurrency.upper(),
            'address': address,
            'network': network
        }
        if memo:
            payload['memo'] = memo
        return self.http.post('/withdraw/transaction/crypto/amount', payload)

    def get_deposit_address(self, customer_id: str, cryptocurrency: str, network: str) -> ApiResponse:
        return self.http.post('/crypto/deposit-address', {
            'customerId': customer_id,
            'cryptocurrency': cryptocurrency.upper(),
            'network': network
        })

    def get_transaction_by_hash(self, tx_hash: str, network: str) -> ApiResponse:
        return self.http.get(f"/crypto/transaction/{_segment(tx_hash)}", {'network': network})

    def get_balance(self, customer_id: str, cryptocurrency: str) -> Money:
        response = self.http.get(
            f"/crypto/customer/{_segment(customer_id)}/balance/{_segment(cryptocurrency.upper())}"
        )
        return Money.of(response.get('balance', '0'))

    def get_balances(self, customer_id: str) -> Dict[str, Money]:
        response = self.http.get(f"/crypto/customer/{_segment(customer_id)}/balances")
        balances = response.get('balances', response.data)
        if isinstance(balances, dict):
            return {symbol: Money.of(value) for symbol, value in balances.items()}
        return {
            item['symbol']: Money.of(item.get('balance', '0'))
            for item in balances if isinstance(item, dict) and 'symbol' in item
        }

    def convert_to_fiat(self, amount: MoneyLike, cryptocurrency: str,
                        fiat_currency: str = 'USD') -> Dict[str, Any]:
        response = self.http.post('/crypto/convert', {
            'amount': str(Money.of(amount)),
            'from': cryptocurrency.upper(),
            'to': fiat_currency.upper()
        })
        return {
            'amount': Money.of(response.get('amount', '0')),
            'rate': Money.of(response.get('rate', '0')),
            'converted': Money.of(response.get('converted', '0')),
            'currency': response.get('currency', fiat_currency.upper())
        }

    def get_prices(self, symbols: Iterable[str], fiat_currency: str = 'USD') -> Dict[str, Money]:
        response = self.http.get('/crypto/prices', {
            'symbols': ','.join(symbol.upper() for symbol in symbols),
            'currency': fiat_currency.upper()
        })
        prices = response.get('prices', {})
        return {symbol: Money.of(price) for symbol, price in prices.items()}

    def get_network_fees(self, network: str) -> ApiResponse:
        return self.http.get(f"/crypto/network-fees/{_segment(network)}")

    def validate_address(self, address: str, network: str) -> bool:
        response = self.http.post('/crypto/validate-address', {
            'address': address,
            'network': network
        })
        return bool(response.get('valid', False))


class PixService:
    """Chaves PIX, QR codes e transferências PIX"""

    def __init__(self, http_client):
        self.http = http_client

    def get_keys(self, customer_id: str) -> ApiResponse:
        return self.http.get(f"/pix/customer/{_segment(customer_id)}/key")

    def register_key(self, customer_id: str, key: str, key_type: str) -> ApiResponse:
        return self.http.post('/pix/register-key', {
            'customerId': customer_id,
            'key': key,
            'type': key_type
        })

    def delete_key(self, customer_id: str, key: str) -> bool:
        response = self.http.delete(f"/pix/customer/{_segment(customer_id)}/key/{_segment(key)}")
        return bool(response.get('success', False))

    def withdraw(self, amount: MoneyLike, customer_id: str, pix_key: str,
                 key_type: str, description: Optional[str] = None) -> ApiResponse:
        payload = {
            'amount': str(_positive_amount(amount)),
            'customerId': customer_id,
            'currency': {'symbol': 'BRL'},
            'pixKey': pix_key,
            'pixKeyType': key_type
        }
        if description:
            payload['description'] = description
        return self.http.post('/withdraw', payload)

    def generate_qr_code(self, amount: MoneyLike, customer_id: str,
                         description: Optional[str] = None,
                         expires_in: Optional[int] = None) -> ApiResponse:
        payload = {
            'amount': str(_positive_amount(amount)),
            'customerId': customer_id
        }
        if description:
            payload['description'] = description
        if expires_in is not None:
            payload['expiresIn'] = expires_in
        return self.http.post('/pix/qrcode', payload)

    def decode_qr_code(self, qr_code: str) -> ApiResponse:
        return self.http.post('/pix/decode-qrcode', {'qrCode': qr_code})

    def get_transaction_by_e2e(self, e2e_id: str) -> ApiResponse:
        return self.http.get(f"/pix/transaction/e2e/{_segment(e2e_id)}")

    def list_transactions(self, customer_id: Optional[str] = None,
                          filters: Optional[Dict[str, Any]] = None,
                          page: int = 1, per_page: int = 20) -> PaginatedResponse:
        query = dict(filters or {})
        if customer_id:
            query['customerId'] = customer_id
        return self.http.paginate('/pix/transactions', query, page, per_page)

    def refund(self, transaction_id: str, reason: str = '') -> ApiResponse:
        payload = {'reason': reason} if reason else {}
        return self.http.post(f"/pix/refund/{_segment(transaction_id)}", payload)

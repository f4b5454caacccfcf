# supermarket/services/payment_client.py
from decimal import Decimal, ROUND_HALF_UP

import requests
from requests import RequestException

from supermarket.domain.errors import ExternalPaymentError
from supermarket.utils.retry import http_retry
from supermarket.utils.settings import (
    PAYMENT_CLIENT_ID,
    PAYMENT_CLIENT_SECRET,
    PAYMENT_CURRENCY,
    PAYMENT_GATEWAY_URL,
    PAYMENT_TIMEOUT_SECONDS,
)
from supermarket.utils.logging import get_logger

logger = get_logger(__name__)


class PaymentClient:
    """
    Klient bramki platnosci (REST, OAuth client credentials).
    create_order -> id zamowienia w bramce, capture_order -> potwierdzenie.
    Bledy bramki zamieniamy na ExternalPaymentError.
    """

    def __init__(
        self,
        base_url: str | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or PAYMENT_GATEWAY_URL).rstrip("/")
        self.client_id = client_id if client_id is not None else PAYMENT_CLIENT_ID
        self.client_secret = client_secret if client_secret is not None else PAYMENT_CLIENT_SECRET
        self.timeout = timeout or PAYMENT_TIMEOUT_SECONDS

    @http_retry()
    def _get_access_token(self) -> str:
        url = f"{self.base_url}/v1/oauth2/token"
        logger.info(f"PaymentClient POST {url}")

        resp = requests.post(
            url,
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()["access_token"]

    @http_retry()
    def _post(self, path: str, token: str, payload: dict | None = None) -> dict:
        url = f"{self.base_url}{path}"
        logger.info(f"PaymentClient POST {url}")

        resp = requests.post(
            url,
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return resp.json()

    def create_order(self, amount: Decimal, currency: str | None = None, description: str | None = None) -> dict:
        value = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if value <= 0:
            raise ExternalPaymentError(f"Niepoprawna kwota platnosci: {amount}", code="invalid_amount")

        unit = {"amount": {"currency_code": currency or PAYMENT_CURRENCY, "value": str(value)}}
        if description:
            unit["description"] = description

        try:
            token = self._get_access_token()
            return self._post("/v2/checkout/orders", token, {"intent": "CAPTURE", "purchase_units": [unit]})
        except (RequestException, KeyError, ValueError) as e:
            logger.error(f"Utworzenie platnosci w bramce nieudane: {e}")
            raise ExternalPaymentError("Nie udalo sie rozpoczac platnosci")

    def capture_order(self, gateway_order_id: str) -> dict:
        if not gateway_order_id:
            raise ExternalPaymentError("Brak identyfikatora platnosci")

        try:
            token = self._get_access_token()
            return self._post(f"/v2/checkout/orders/{gateway_order_id}/capture", token)
        except (RequestException, KeyError, ValueError) as e:
            logger.error(f"Capture platnosci {gateway_order_id} nieudany: {e}")
            raise ExternalPaymentError("Platnosc nie zostala zrealizowana")

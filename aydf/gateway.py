import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Callable, Optional

import razorpay
import requests
from fastapi import Depends
from razorpay.errors import BadRequestError, GatewayError, ServerError

from .config import GatewayConfig, Settings, get_settings
from .exceptions import GatewayConfigError, GatewayRequestError

logger = logging.getLogger(__name__)

_GATEWAY_ERRORS = (BadRequestError, GatewayError, ServerError, requests.RequestException)


@dataclass
class Order:
    order_id: str
    amount: int     # in paise
    currency: str


class OrderGatewayClient:
    """Thin wrapper over the Razorpay orders and payments APIs.

    The underlying SDK client is built lazily so a missing key only fails the
    calls that need it. ``client_factory`` exists so tests can hand in a fake.
    """

    def __init__(self, config: GatewayConfig, client_factory: Optional[Callable] = None):
        self.config = config
        self._client_factory = client_factory or razorpay.Client
        self._client = None

    @property
    def key_id(self):
        return self.config.key_id

    @property
    def client(self):
        if not self.config.is_configured:
            raise GatewayConfigError()
        if self._client is None:
            self._client = self._client_factory(auth=(self.config.key_id, self.config.key_secret))
        return self._client

    def create_order(self, amount: int, receipt_id: str) -> Order:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 1:
            raise ValueError("amount must be a positive whole number of rupees")

        data = {
            "amount": amount * 100,      # rupees -> paise
            "currency": self.config.currency,
            "receipt": receipt_id,
            "notes": {"organization": self.config.organization},
        }
        client = self.client

        try:
            order = client.order.create(data=data, timeout=self.config.timeout)
        except _GATEWAY_ERRORS as e:
            logger.error("Razorpay order creation failed for receipt %s: %s", receipt_id, e)
            raise GatewayRequestError(f"Failed to create Razorpay order: {e}") from e

        logger.info("Razorpay order %s created for receipt %s", order["id"], receipt_id)
        return Order(order_id=order["id"], amount=order["amount"], currency=order["currency"])

    def fetch_payment(self, payment_id: str) -> dict:
        client = self.client
        try:
            return client.payment.fetch(payment_id, timeout=self.config.timeout)
        except _GATEWAY_ERRORS as e:
            logger.error("Razorpay payment fetch failed for %s: %s", payment_id, e)
            raise GatewayRequestError("Failed to fetch payment details") from e


def compute_signature(order_id: str, payment_id: str, secret: str) -> str:
    # Formula: HMAC_SHA256(order_id + "|" + payment_id, secret)
    msg = f"{order_id}|{payment_id}"
    return hmac.new(
        bytes(secret, "utf-8"),
        bytes(msg, "utf-8"),
        hashlib.sha256
    ).hexdigest()


def verify_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Check a checkout signature. Never raises; bad input is just ``False``."""
    try:
        expected = compute_signature(order_id, payment_id, secret)
        return hmac.compare_digest(expected, signature)
    except (TypeError, AttributeError, ValueError):
        return False


def get_gateway(settings: Settings = Depends(get_settings)) -> OrderGatewayClient:
    return OrderGatewayClient(settings.gateway())

"""bKash tokenized checkout client.

Every call obtains a fresh ``id_token`` through the grant endpoint; tokens are
not cached between calls.
"""

import logging

import requests
from django.conf import settings
from requests import RequestException

from ..exceptions import ConfigurationError, GatewayError

logger = logging.getLogger(__name__)

SUCCESS_CODE = "0000"
COMPLETED = "Completed"


def _timeout():
    return getattr(settings, "GATEWAY_TIMEOUT", 30)


def is_payment_completed(result) -> bool:
    """True when an execute result confirms the money moved."""
    result = result or {}
    return result.get("statusCode") == SUCCESS_CODE and result.get("transactionStatus") == COMPLETED


def build_payment_request(project, callback_url: str) -> dict:
    return {
        "mode": "0011",
        "payerReference": project.order_id,
        "callbackURL": callback_url,
        "amount": f"{project.amount:.2f}",
        "currency": "BDT",
        "intent": "sale",
        "merchantInvoiceNumber": project.order_id,
    }


class BkashClient:
    def __init__(self, credentials):
        self.credentials = credentials

    @property
    def base_url(self) -> str:
        return self.credentials.base_url

    def _post(self, path: str, payload: dict, headers: dict) -> tuple:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=_timeout())
        except RequestException as e:
            raise GatewayError(f"bKash request failed: {e}", status_message="Could not reach bKash.")
        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}
        if not isinstance(data, dict):
            data = {"raw": data}
        return resp, data

    def grant_token(self) -> str:
        missing = self.credentials.missing()
        if missing:
            raise ConfigurationError(f"bKash credentials are not configured: {', '.join(missing)}")

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "username": self.credentials.username,
            "password": self.credentials.password,
        }
        body = {"app_key": self.credentials.app_key, "app_secret": self.credentials.app_secret}
        resp, data = self._post("/tokenized/checkout/token/grant", body, headers)

        token = data.get("id_token")
        if not resp.ok or not token:
            logger.error("bKash token grant failed: status=%s body=%s", resp.status_code, data)
            message = data.get("statusMessage") or "Failed to get bKash token."
            raise GatewayError(message, payload=data)
        return token

    def _auth_headers(self, token: str) -> dict:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": token,
            "X-App-Key": self.credentials.app_key,
        }

    def create_payment(self, payment_request: dict) -> dict:
        """Create a checkout and return ``{"redirect_url", "payment_id"}``."""
        token = self.grant_token()
        resp, data = self._post("/tokenized/checkout/create", payment_request, self._auth_headers(token))

        if resp.ok and data.get("statusCode") == SUCCESS_CODE:
            return {"redirect_url": data.get("bkashURL"), "payment_id": data.get("paymentID")}

        logger.error("bKash create payment failed: status=%s body=%s", resp.status_code, data)
        raise GatewayError(data.get("statusMessage") or "Failed to create bKash payment.", payload=data)

    def execute_payment(self, payment_id: str) -> dict:
        """Execute a checkout and hand back the raw result.

        Callers decide success with :func:`is_payment_completed`.
        """
        token = self.grant_token()
        resp, data = self._post("/tokenized/checkout/execute", {"paymentID": payment_id}, self._auth_headers(token))

        if not resp.ok:
            logger.error("bKash execute payment failed: status=%s body=%s", resp.status_code, data)
            raise GatewayError(data.get("statusMessage") or "Failed to execute bKash payment.", payload=data)
        return data

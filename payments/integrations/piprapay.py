"""PipraPay client.

Gateway faults never raise: every call returns an envelope with an ``ok``
flag that callers must check.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import requests
from django.conf import settings
from requests import RequestException

logger = logging.getLogger(__name__)

API_KEY_HEADER = "mh-piprapay-api-key"
COMPLETED = "completed"
NOT_CONFIGURED = {"ok": False, "message": "PipraPay is not configured."}


@dataclass(frozen=True)
class ChargeLink:
    url: str
    pp_id: Optional[str] = None


@dataclass(frozen=True)
class MalformedCharge:
    raw: Any = field(default=None)


@dataclass(frozen=True)
class Verification:
    status: str
    message: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status == COMPLETED


def _first(*values):
    for value in values:
        if value:
            return value
    return None


def parse_charge_response(body) -> Union[ChargeLink, MalformedCharge]:
    """Map the provider's charge body onto a payment link, or flag it malformed."""
    if not isinstance(body, dict):
        return MalformedCharge(raw=body)
    inner = body.get("data") if isinstance(body.get("data"), dict) else {}
    url = _first(body.get("url"), body.get("payment_url"), inner.get("url"), inner.get("payment_url"))
    if not isinstance(url, str):
        return MalformedCharge(raw=body)
    pp_id = _first(body.get("pp_id"), inner.get("pp_id"))
    return ChargeLink(url=url, pp_id=None if pp_id is None else str(pp_id))


def parse_verification(body) -> Verification:
    """Read the payment status out of a verify-payments body.

    Only the nested ``data.status`` counts; a top-level ``status`` is ignored.
    """
    if not isinstance(body, dict):
        return Verification(status="")
    inner = body.get("data") if isinstance(body.get("data"), dict) else {}
    status = inner.get("status") or ""
    message = inner.get("status_message") or body.get("status_message") or body.get("message") or ""
    return Verification(status=str(status).lower(), message=str(message))


class PipraPayClient:
    def __init__(self, credentials):
        self.credentials = credentials

    def _post(self, path: str, payload: dict) -> dict:
        url = f"{self.credentials.base_url}{path}"
        headers = {"Content-Type": "application/json", API_KEY_HEADER: self.credentials.api_key}
        try:
            resp = requests.post(url, json=payload, headers=headers, timeout=getattr(settings, "GATEWAY_TIMEOUT", 30))
        except RequestException as e:
            logger.error("PipraPay request to %s failed: %s", path, e)
            return {"ok": False, "status_code": None, "message": "An unexpected error occurred while contacting PipraPay."}
        try:
            data = resp.json()
        except ValueError:
            data = {"raw": resp.text}
        if not resp.ok:
            logger.error("PipraPay %s error: status=%s body=%s", path, resp.status_code, data)
            return {"ok": False, "status_code": resp.status_code, "error": data}
        return {"ok": True, "status_code": resp.status_code, "data": data}

    def create_charge(self, amount, currency, customer, metadata, *, return_url, webhook_url) -> dict:
        """Create a hosted charge.

        ``customer`` carries ``name`` and ``email_mobile``. On success the
        envelope holds a :class:`ChargeLink` under ``charge``.
        """
        if not self.credentials.is_configured:
            return dict(NOT_CONFIGURED)
        payload = {
            "amount": str(amount),
            "currency": currency or "BDT",
            "customer_name": (customer or {}).get("name", ""),
            "customer_email_mobile": (customer or {}).get("email_mobile", ""),
            "pp_url": return_url,
            "webhook_url": webhook_url,
            "metadata": metadata or {},
        }
        result = self._post("/create-charge", payload)
        if not result["ok"]:
            return result

        charge = parse_charge_response(result["data"])
        if isinstance(charge, MalformedCharge):
            logger.error("PipraPay charge response had no payment URL: %s", charge.raw)
            return {"ok": False, "status_code": result["status_code"], "message": "PipraPay did not return a payment link.", "error": charge.raw}
        return {"ok": True, "status_code": result["status_code"], "charge": charge, "raw": result["data"]}

    def verify_payment(self, invoice_id: str) -> dict:
        if not self.credentials.is_configured:
            return dict(NOT_CONFIGURED)
        return self._post("/verify-payments", {"invoice_id": invoice_id})

import logging

import requests
from django.conf import settings
from requests import RequestException

from .exceptions import SmsError

logger = logging.getLogger(__name__)


def send_sms(*, to: str, message: str, credentials) -> str:
    """Send one SMS through GreenWeb and return the gateway's reply text."""
    if not credentials.token:
        logger.error("SMS token is not configured")
        raise SmsError("SMS settings are not configured.")

    number = to[1:] if to.startswith("+") else to
    data = {"token": credentials.token, "to": number, "message": message}
    try:
        resp = requests.post(credentials.url, data=data, timeout=getattr(settings, "GATEWAY_TIMEOUT", 30))
    except RequestException as e:
        logger.error("Error sending SMS to %s: %s", to, e)
        raise SmsError("Could not send SMS.") from e

    if not resp.ok:
        logger.error("Failed to send SMS to %s: status=%s response=%s", to, resp.status_code, resp.text)
        raise SmsError(f"SMS gateway returned HTTP {resp.status_code}")

    logger.info("SMS sent to %s: %s", to, resp.text)
    return resp.text


def payment_confirmation_message(project) -> str:
    return (
        f'Dear {project.client.name}, your payment for project "{project.title}" has been confirmed. '
        "You can now download the final video. Thank you!"
    )


def send_payment_confirmation_sms(*, project, credentials) -> bool:
    """Tell the client their payment landed. Never raises."""
    try:
        phone = (project.client.phone or "").strip()
        if not phone:
            logger.info("Client %s has no phone; skipping payment SMS for %s", project.client_id, project.order_id)
            return False
        send_sms(to=phone, message=payment_confirmation_message(project), credentials=credentials)
        return True
    except Exception:
        logger.exception("Failed to send payment confirmation SMS for order=%s", getattr(project, "order_id", None))
        return False

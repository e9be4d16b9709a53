import hmac
import json
import logging
from urllib.parse import urlencode

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.http import HttpResponseBadRequest, JsonResponse
from django.shortcuts import redirect, render
from django.urls import reverse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from appsettings.middleware import get_request_config
from projects.views import get_project_for_user
from .exceptions import AuthenticationError, ConfigurationError, GatewayError, NotFoundError
from .integrations.bkash import BkashClient, build_payment_request, is_payment_completed
from .integrations.piprapay import API_KEY_HEADER, NOT_CONFIGURED, PipraPayClient, parse_verification
from .services import confirm_project_payment, order_id_for_project

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An internal server error occurred."
BKASH_STATUS_MESSAGES = {
    "cancel": "Payment was cancelled by the user.",
    "failure": "Payment failed. Please try again.",
}


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except (ValueError, UnicodeDecodeError): return None


def _client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    return forwarded.split(",")[0].strip() if forwarded else request.META.get("REMOTE_ADDR", "")


def _absolute_url(request, name):
    base = getattr(settings, "APP_BASE_URL", "")
    path = reverse(name)
    return f"{base.rstrip('/')}{path}" if base else request.build_absolute_uri(path)


def _failure_redirect(message):
    return redirect(f"{reverse('payments:failure')}?{urlencode({'message': message})}")


def _success_redirect(project):
    url = reverse("projects:project_detail", args=[project.pk])
    return redirect(f"{url}?{urlencode({'payment_status': 'success'})}")


def verify_invoice(config, invoice_id):
    """Verification envelope shared by the verify API and the return handler."""
    return PipraPayClient(config.piprapay).verify_payment(invoice_id)


@require_GET
def payment_failure_view(request):
    message = request.GET.get("message") or "Payment was not successful."
    return render(request, "payments/failure.html", {"message": message})


@login_required
@require_POST
def project_pay_view(request, project_id, provider):
    """Start a checkout for the project with the chosen provider."""
    project = get_project_for_user(request.user, project_id)
    if project.is_paid:
        return redirect("projects:project_detail", project_id=project.pk)

    config = get_request_config(request)

    if provider == "bkash":
        if not config.bkash_enabled:
            return _failure_redirect("bKash payments are not enabled.")
        payment_request = build_payment_request(project, _absolute_url(request, "payments:bkash_callback"))
        try:
            result = BkashClient(config.bkash).create_payment(payment_request)
        except ConfigurationError:
            logger.exception("bKash is not configured; cannot start payment for %s", project.order_id)
            return _failure_redirect("bKash payments are not available right now.")
        except GatewayError as e:
            logger.warning("bKash create payment failed for %s: %s", project.order_id, e)
            return _failure_redirect(e.status_message)
        logger.info("bKash payment %s created for order %s", result.get("payment_id"), project.order_id)
        return redirect(result["redirect_url"])

    if provider == "piprapay":
        if not config.piprapay_enabled:
            return _failure_redirect("PipraPay payments are not enabled.")
        client = project.client
        result = PipraPayClient(config.piprapay).create_charge(
            project.amount,
            "BDT",
            {"name": client.name, "email_mobile": client.email or client.phone},
            {"orderId": project.order_id, "projectId": str(project.pk)},
            return_url=_absolute_url(request, "payments:piprapay_return"),
            webhook_url=_absolute_url(request, "payments:piprapay_webhook"),
        )
        if not result["ok"]:
            return _failure_redirect(result.get("message") or "Could not initiate PipraPay payment.")
        logger.info("PipraPay charge %s created for order %s", result["charge"].pp_id, project.order_id)
        return redirect(result["charge"].url)

    return HttpResponseBadRequest("Unknown payment provider")


@require_GET
def bkash_callback_view(request):
    """bKash sends the payer's browser here after checkout."""
    payment_id = request.GET.get("paymentID") or ""
    status = request.GET.get("status") or ""

    if not payment_id or not status:
        return _failure_redirect("Payment details are missing from the callback.")

    if status != "success":
        return _failure_redirect(BKASH_STATUS_MESSAGES.get(status, "Payment was not successful."))

    config = get_request_config(request)
    invoice = ""
    try:
        result = BkashClient(config.bkash).execute_payment(payment_id)
        if not is_payment_completed(result):
            logger.warning("bKash payment %s not completed: %s", payment_id, result)
            return _failure_redirect(result.get("statusMessage") or "Payment execution failed.")
        invoice = result.get("merchantInvoiceNumber") or ""
        outcome = confirm_project_payment(invoice, config=config, source="bkash-callback")
    except GatewayError as e:
        logger.warning("bKash execute failed for paymentID=%s: %s", payment_id, e)
        return _failure_redirect(e.status_message)
    except NotFoundError:
        logger.error("bKash callback: no project for invoice %r (paymentID=%s)", invoice, payment_id)
        return _failure_redirect(INTERNAL_ERROR_MESSAGE)
    except ConfigurationError:
        logger.exception("bKash callback received but bKash is not configured")
        return _failure_redirect(INTERNAL_ERROR_MESSAGE)
    except Exception:
        logger.exception("bKash callback error for paymentID=%s", payment_id)
        return _failure_redirect(INTERNAL_ERROR_MESSAGE)

    return _success_redirect(outcome.project)


@require_GET
def piprapay_return_view(request):
    """PipraPay sends the payer's browser here; the payment is verified server-side."""
    invoice_id = request.GET.get("invoice_id") or ""

    if request.GET.get("status") == "cancel":
        return _failure_redirect("Payment was cancelled.")
    if not invoice_id:
        return _failure_redirect("No invoice ID returned from PipraPay.")

    config = get_request_config(request)
    envelope = verify_invoice(config, invoice_id)
    verification = parse_verification(envelope.get("data")) if envelope.get("ok") else None

    if verification is None or not verification.is_completed:
        message = verification.message if verification and verification.message else ""
        logger.info("PipraPay invoice %s not completed: %s", invoice_id, envelope)
        return _failure_redirect(message or "Payment verification failed or payment is not complete.")

    try:
        outcome = confirm_project_payment(invoice_id, config=config, source="piprapay-return")
    except NotFoundError:
        logger.error("PipraPay return: no project for invoice %s", invoice_id)
        return _failure_redirect(INTERNAL_ERROR_MESSAGE)
    except Exception:
        logger.exception("PipraPay return error for invoice %s", invoice_id)
        return _failure_redirect(INTERNAL_ERROR_MESSAGE)

    return _success_redirect(outcome.project)


def _authenticate_webhook(request, expected_key):
    incoming = request.headers.get(API_KEY_HEADER) or ""
    if not hmac.compare_digest(incoming.encode("utf-8"), expected_key.encode("utf-8")):
        raise AuthenticationError("Webhook key mismatch")


def _webhook_order_id(payload):
    metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
    order_id = metadata.get("orderId") or metadata.get("order_id") or payload.get("invoice_id")
    if order_id:
        return str(order_id)
    # Older charges only carried the project id
    project_id = metadata.get("projectId")
    return order_id_for_project(project_id) if project_id else None


@csrf_exempt
@require_POST
def piprapay_webhook_view(request):
    config = get_request_config(request)
    expected = config.piprapay.webhook_verify_key
    if not expected:
        logger.warning("PipraPay webhook verification key is not set. Cannot process webhook.")
        return JsonResponse({"status": False, "message": "Webhook service not configured."}, status=500)

    try:
        _authenticate_webhook(request, expected)
    except AuthenticationError:
        logger.warning("Unauthorized webhook attempt from PipraPay ip=%s", _client_ip(request))
        return JsonResponse({"status": False, "message": "Unauthorized"}, status=401)

    payload = _json_body(request)
    if not isinstance(payload, dict):
        return JsonResponse({"status": False, "message": "Invalid JSON"}, status=400)
    logger.info("PipraPay webhook received: status=%s", payload.get("status"))

    if str(payload.get("status") or "").lower() == "completed":
        order_id = _webhook_order_id(payload)
        if not order_id:
            logger.warning("PipraPay webhook without a resolvable order: %s", payload)
        else:
            try:
                confirm_project_payment(order_id, config=config, source="piprapay-webhook")
            except NotFoundError:
                logger.warning("PipraPay webhook for unknown order %s", order_id)
            except Exception:
                logger.exception("Error processing PipraPay webhook for order %s", order_id)
                return JsonResponse({"status": False, "message": "Internal Server Error"}, status=500)

    return JsonResponse({"status": True, "message": "Webhook received"})


@require_POST
def piprapay_charge_view(request):
    if not request.user.is_authenticated:
        return JsonResponse({"ok": False, "message": "Authentication required"}, status=401)

    config = get_request_config(request)
    if not config.piprapay.is_configured:
        return JsonResponse(NOT_CONFIGURED, status=500)

    body = _json_body(request)
    if not isinstance(body, dict):
        return HttpResponseBadRequest("Invalid JSON body")
    if not body.get("amount"):
        return JsonResponse({"ok": False, "message": "amount required"}, status=400)

    result = PipraPayClient(config.piprapay).create_charge(
        body["amount"],
        body.get("currency") or "BDT",
        {"name": body.get("customer_name", ""), "email_mobile": body.get("customer_email_mobile", "")},
        body.get("metadata") or {},
        return_url=_absolute_url(request, "payments:piprapay_return"),
        webhook_url=_absolute_url(request, "payments:piprapay_webhook"),
    )
    if not result["ok"]:
        status = result.get("status_code") or 502
        if status < 400:
            status = 502
        return JsonResponse({k: result[k] for k in ("ok", "message", "error") if k in result}, status=status)

    charge = result["charge"]
    return JsonResponse({"ok": True, "paymentUrl": charge.url, "ppId": charge.pp_id, "raw": result["raw"]})


@csrf_exempt
@require_POST
def piprapay_verify_view(request):
    config = get_request_config(request)
    if not config.piprapay.is_configured:
        return JsonResponse(NOT_CONFIGURED, status=500)

    body = _json_body(request)
    invoice_id = body.get("invoice_id") if isinstance(body, dict) else None
    if not invoice_id:
        return JsonResponse({"ok": False, "message": "invoice_id required"}, status=400)

    envelope = verify_invoice(config, invoice_id)
    if not envelope["ok"]:
        return JsonResponse({k: envelope[k] for k in ("ok", "message", "error") if k in envelope}, status=envelope.get("status_code") or 502)
    return JsonResponse({"ok": True, "data": envelope["data"]})

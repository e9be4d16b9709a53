import json
from unittest.mock import patch
from urllib.parse import urlencode

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from payments.exceptions import GatewayError
from projects.models import Project
from .helpers import FakeResponse, make_client, make_project

PIPRAPAY = {"PIPRAPAY_API_KEY": "pp-key", "PIPRAPAY_BASE_URL": "https://sandbox.piprapay.com/api"}


def failure_url(message):
    return f"{reverse('payments:failure')}?{urlencode({'message': message})}"


def success_url(project):
    return f"{reverse('projects:project_detail', args=[project.pk])}?payment_status=success"


class BkashCallbackTests(TestCase):
    def setUp(self):
        self.project = make_project()
        self.url = reverse("payments:bkash_callback")

    def test_missing_params(self):
        resp = self.client.get(self.url, {"status": "success"})
        self.assertRedirects(resp, failure_url("Payment details are missing from the callback."), fetch_redirect_response=False)

    @patch("payments.views.BkashClient")
    def test_cancel_never_executes(self, client_cls):
        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "cancel"})

        self.assertRedirects(resp, failure_url("Payment was cancelled by the user."), fetch_redirect_response=False)
        client_cls.return_value.execute_payment.assert_not_called()
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PENDING)

    @patch("payments.views.BkashClient")
    def test_failure_and_unknown_status(self, client_cls):
        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "failure"})
        self.assertRedirects(resp, failure_url("Payment failed. Please try again."), fetch_redirect_response=False)

        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "weird"})
        self.assertRedirects(resp, failure_url("Payment was not successful."), fetch_redirect_response=False)
        client_cls.return_value.execute_payment.assert_not_called()

    @patch("payments.views.BkashClient")
    def test_completed_payment_marks_project_paid(self, client_cls):
        client_cls.return_value.execute_payment.return_value = {
            "statusCode": "0000",
            "transactionStatus": "Completed",
            "merchantInvoiceNumber": self.project.order_id,
        }

        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "success"})

        self.assertRedirects(resp, success_url(self.project), fetch_redirect_response=False)
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PAID)
        client_cls.return_value.execute_payment.assert_called_once_with("PAY1")

    @patch("payments.views.BkashClient")
    def test_incomplete_execution(self, client_cls):
        client_cls.return_value.execute_payment.return_value = {"statusCode": "2056", "statusMessage": "Invalid Payment State"}

        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "success"})

        self.assertRedirects(resp, failure_url("Invalid Payment State"), fetch_redirect_response=False)
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PENDING)

    @patch("payments.views.BkashClient")
    def test_gateway_error_message_shown(self, client_cls):
        client_cls.return_value.execute_payment.side_effect = GatewayError("boom", status_message="Could not reach bKash.")

        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "success"})

        self.assertRedirects(resp, failure_url("Could not reach bKash."), fetch_redirect_response=False)

    @patch("payments.views.BkashClient")
    def test_unknown_invoice(self, client_cls):
        client_cls.return_value.execute_payment.return_value = {
            "statusCode": "0000",
            "transactionStatus": "Completed",
            "merchantInvoiceNumber": "ORD-UNKNOWN",
        }

        resp = self.client.get(self.url, {"paymentID": "PAY1", "status": "success"})

        self.assertRedirects(resp, failure_url("An internal server error occurred."), fetch_redirect_response=False)
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PENDING)


@override_settings(**PIPRAPAY)
class PipraPayReturnTests(TestCase):
    def setUp(self):
        self.project = make_project()
        self.url = reverse("payments:piprapay_return")

    def test_cancel(self):
        resp = self.client.get(self.url, {"invoice_id": self.project.order_id, "status": "cancel"})
        self.assertRedirects(resp, failure_url("Payment was cancelled."), fetch_redirect_response=False)

    def test_missing_invoice(self):
        resp = self.client.get(self.url)
        self.assertRedirects(resp, failure_url("No invoice ID returned from PipraPay."), fetch_redirect_response=False)

    @patch("payments.integrations.piprapay.requests.post", return_value=FakeResponse(200, {"data": {"status": "pending"}}))
    def test_incomplete_payment_leaves_project_pending(self, post):
        resp = self.client.get(self.url, {"invoice_id": self.project.order_id})

        self.assertRedirects(
            resp,
            failure_url("Payment verification failed or payment is not complete."),
            fetch_redirect_response=False,
        )
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PENDING)

    @patch("payments.integrations.piprapay.requests.post")
    def test_top_level_status_alone_is_not_a_confirmation(self, post):
        post.return_value = FakeResponse(200, {"status": "completed", "data": {"message": "invoice not found"}})

        resp = self.client.get(self.url, {"invoice_id": self.project.order_id})

        self.assertRedirects(
            resp,
            failure_url("Payment verification failed or payment is not complete."),
            fetch_redirect_response=False,
        )
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PENDING)

    @patch("payments.integrations.piprapay.requests.post", return_value=FakeResponse(200, {"data": {"status": "completed"}}))
    def test_completed_payment(self, post):
        resp = self.client.get(self.url, {"invoice_id": self.project.order_id})

        self.assertRedirects(resp, success_url(self.project), fetch_redirect_response=False)
        self.assertEqual(Project.objects.get(pk=self.project.pk).payment_status, Project.PAID)
        self.assertEqual(post.call_args.kwargs["json"], {"invoice_id": self.project.order_id})


@override_settings(PIPRAPAY_WEBHOOK_VERIFY_KEY="whk-secret")
class PipraPayWebhookTests(TestCase):
    def setUp(self):
        self.project = make_project()
        self.url = reverse("payments:piprapay_webhook")

    def _post(self, payload, key="whk-secret"):
        extra = {"HTTP_MH_PIPRAPAY_API_KEY": key} if key is not None else {}
        body = payload if isinstance(payload, str) else json.dumps(payload)
        return self.client.post(self.url, data=body, content_type="application/json", **extra)

    def _status(self):
        return Project.objects.get(pk=self.project.pk).payment_status

    def test_wrong_key_is_rejected(self):
        payload = {"status": "completed", "metadata": {"orderId": self.project.order_id}}
        with self.assertLogs("payments.views", level="WARNING"):
            resp = self._post(payload, key="nope")

        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"status": False, "message": "Unauthorized"})
        self.assertEqual(self._status(), Project.PENDING)

    def test_missing_key_is_rejected(self):
        resp = self._post({"status": "completed", "metadata": {"orderId": self.project.order_id}}, key=None)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(self._status(), Project.PENDING)

    @override_settings(PIPRAPAY_WEBHOOK_VERIFY_KEY="")
    def test_unconfigured_key(self):
        resp = self._post({"status": "completed"})
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["message"], "Webhook service not configured.")

    def test_invalid_json(self):
        resp = self._post("{not json")
        self.assertEqual(resp.status_code, 400)

    def test_completed_by_order_id(self):
        resp = self._post({"status": "completed", "metadata": {"orderId": self.project.order_id}})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"status": True, "message": "Webhook received"})
        self.assertEqual(self._status(), Project.PAID)

    def test_completed_by_project_id(self):
        resp = self._post({"status": "Completed", "metadata": {"projectId": str(self.project.pk)}})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._status(), Project.PAID)

    def test_non_completed_status_is_acknowledged_only(self):
        resp = self._post({"status": "pending", "metadata": {"orderId": self.project.order_id}})

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self._status(), Project.PENDING)

    def test_unknown_order_still_acknowledged(self):
        resp = self._post({"status": "completed", "metadata": {"orderId": "ORD-UNKNOWN"}})
        self.assertEqual(resp.status_code, 200)

    def test_duplicate_delivery(self):
        payload = {"status": "completed", "invoice_id": self.project.order_id}
        with patch("payments.services.send_payment_confirmation_sms") as notify:
            self._post(payload)
            self._post(payload)

        self.assertEqual(self._status(), Project.PAID)
        notify.assert_called_once()


class ProjectPayTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user("rahim", password="pass12345")
        self.project = make_project(client=make_client(user=self.user))
        self.client.force_login(self.user)

    @patch("payments.views.BkashClient")
    def test_bkash_redirects_to_gateway(self, client_cls):
        client_cls.return_value.create_payment.return_value = {"redirect_url": "https://pay.bka.sh/PAY1", "payment_id": "PAY1"}

        resp = self.client.post(reverse("payments:pay", args=[self.project.pk, "bkash"]))

        self.assertRedirects(resp, "https://pay.bka.sh/PAY1", fetch_redirect_response=False)
        body = client_cls.return_value.create_payment.call_args.args[0]
        self.assertEqual(body["merchantInvoiceNumber"], self.project.order_id)
        self.assertTrue(body["callbackURL"].endswith(reverse("payments:bkash_callback")))

    @override_settings(**PIPRAPAY)
    @patch("payments.integrations.piprapay.requests.post")
    def test_piprapay_redirects_to_gateway(self, post):
        post.return_value = FakeResponse(200, {"pp_id": "P1", "url": "https://pay.piprapay.com/P1"})

        resp = self.client.post(reverse("payments:pay", args=[self.project.pk, "piprapay"]))

        self.assertRedirects(resp, "https://pay.piprapay.com/P1", fetch_redirect_response=False)
        metadata = post.call_args.kwargs["json"]["metadata"]
        self.assertEqual(metadata, {"orderId": self.project.order_id, "projectId": str(self.project.pk)})

    @override_settings(PIPRAPAY_ENABLED=False)
    def test_disabled_provider(self):
        resp = self.client.post(reverse("payments:pay", args=[self.project.pk, "piprapay"]))
        self.assertRedirects(resp, failure_url("PipraPay payments are not enabled."), fetch_redirect_response=False)

    def test_other_clients_project_is_hidden(self):
        other = make_project(client=make_client(email="other@example.com"))
        resp = self.client.post(reverse("payments:pay", args=[other.pk, "bkash"]))
        self.assertEqual(resp.status_code, 404)


@override_settings(**PIPRAPAY)
class PipraPayApiTests(TestCase):
    def test_charge_requires_login(self):
        resp = self.client.post(reverse("payments:piprapay_charge"), data="{}", content_type="application/json")
        self.assertEqual(resp.status_code, 401)

    def test_charge_requires_amount(self):
        user = get_user_model().objects.create_user("staff", password="pass12345", is_staff=True)
        self.client.force_login(user)
        resp = self.client.post(reverse("payments:piprapay_charge"), data="{}", content_type="application/json")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["message"], "amount required")

    @patch("payments.integrations.piprapay.requests.post")
    def test_charge_returns_link(self, post):
        post.return_value = FakeResponse(200, {"data": {"payment_url": "https://pay.piprapay.com/P2", "pp_id": "P2"}})
        user = get_user_model().objects.create_user("staff", password="pass12345", is_staff=True)
        self.client.force_login(user)

        resp = self.client.post(
            reverse("payments:piprapay_charge"),
            data=json.dumps({"amount": "500", "metadata": {"orderId": "ORD-1"}}),
            content_type="application/json",
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["paymentUrl"], "https://pay.piprapay.com/P2")
        self.assertEqual(resp.json()["ppId"], "P2")

    @patch("payments.integrations.piprapay.requests.post", return_value=FakeResponse(200, {"data": {"status": "completed"}}))
    def test_verify(self, post):
        resp = self.client.post(
            reverse("payments:piprapay_verify"),
            data=json.dumps({"invoice_id": "ORD-1"}),
            content_type="application/json",
        )

        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {"ok": True, "data": {"data": {"status": "completed"}}})

    def test_verify_requires_invoice(self):
        resp = self.client.post(reverse("payments:piprapay_verify"), data="{}", content_type="application/json")
        self.assertEqual(resp.status_code, 400)


class FailurePageTests(TestCase):
    def test_shows_message(self):
        resp = self.client.get(reverse("payments:failure"), {"message": "Payment was cancelled."})
        self.assertEqual(resp.status_code, 200)
        self.assertContains(resp, "Payment was cancelled.")

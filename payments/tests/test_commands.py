from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase, override_settings

from projects.models import Project
from .helpers import FakeResponse, make_project


def _verify_reply(statuses):
    def reply(url, json=None, **kwargs):
        return FakeResponse(200, {"data": {"status": statuses.get(json["invoice_id"], "pending")}})
    return reply


@override_settings(PIPRAPAY_API_KEY="pp-key", PIPRAPAY_BASE_URL="https://sandbox.piprapay.com/api")
class ReconcilePendingProjectsTests(TestCase):
    def test_marks_completed_projects_paid(self):
        done = make_project(title="Done")
        waiting = make_project(client=done.client, title="Waiting")
        out = StringIO()

        with patch("payments.integrations.piprapay.requests.post", side_effect=_verify_reply({done.order_id: "completed"})):
            call_command("reconcile_pending_projects", "--sleep", "0", stdout=out)

        self.assertEqual(Project.objects.get(pk=done.pk).payment_status, Project.PAID)
        self.assertEqual(Project.objects.get(pk=waiting.pk).payment_status, Project.PENDING)
        self.assertIn(f"Updated {done.order_id} -> paid", out.getvalue())

    def test_nothing_pending(self):
        out = StringIO()
        with patch("payments.integrations.piprapay.requests.post") as post:
            call_command("reconcile_pending_projects", stdout=out)
        post.assert_not_called()
        self.assertIn("No pending projects", out.getvalue())

    @override_settings(PIPRAPAY_API_KEY="")
    def test_unconfigured(self):
        make_project()
        out = StringIO()
        call_command("reconcile_pending_projects", stdout=out)
        self.assertIn("not configured", out.getvalue())

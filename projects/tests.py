import re
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from clients.models import Client
from .models import Project
from .services import dashboard_stats
from .utils import generate_order_id


class OrderIdTests(TestCase):
    def test_format(self):
        self.assertRegex(generate_order_id(), r"^ORD-\d{12}-[A-Z0-9]{6}$")

    def test_assigned_once_on_save(self):
        client = Client.objects.create(name="Rahim", email="rahim@example.com")
        project = Project.objects.create(
            client=client, title="Film", amount=Decimal("100"), expiry_date=timezone.now() + timedelta(days=1)
        )
        order_id = project.order_id
        self.assertTrue(re.match(r"^ORD-", order_id))

        project.title = "Film v2"
        project.save()
        project.refresh_from_db()
        self.assertEqual(project.order_id, order_id)


class ProjectStatusTests(TestCase):
    def setUp(self):
        self.client_obj = Client.objects.create(name="Rahim", email="rahim@example.com")

    def _project(self, days, status=Project.PENDING, amount="100"):
        return Project.objects.create(
            client=self.client_obj,
            title="Film",
            amount=Decimal(amount),
            expiry_date=timezone.now() + timedelta(days=days),
            payment_status=status,
        )

    def test_display_status(self):
        self.assertEqual(self._project(3).display_status, Project.PENDING)
        self.assertEqual(self._project(-1).display_status, Project.OVERDUE)
        self.assertEqual(self._project(-1, Project.PAID).display_status, Project.PAID)

    def test_dashboard_stats(self):
        self._project(3, Project.PAID, "1000")
        self._project(3, Project.PENDING, "250")
        self._project(-2, Project.PENDING, "400")

        stats = dashboard_stats()

        self.assertEqual(stats["total_revenue"], Decimal("1000"))
        self.assertEqual(stats["pending_amount"], Decimal("250"))
        self.assertEqual(stats["pending_count"], 1)
        self.assertEqual(stats["active_projects"], 2)
        self.assertEqual(stats["total_clients"], 1)
        self.assertEqual(stats["status_counts"], {Project.PAID: 1, Project.PENDING: 1, Project.OVERDUE: 1})
        self.assertEqual(len(stats["overdue_projects"]), 1)


class ProjectViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user("rahim", password="pass12345")
        self.other_user = User.objects.create_user("karim", password="pass12345")
        self.mine = Project.objects.create(
            client=Client.objects.create(name="Rahim", email="rahim@example.com", user=self.user),
            title="Mine",
            amount=Decimal("100"),
            expiry_date=timezone.now() + timedelta(days=3),
        )
        self.theirs = Project.objects.create(
            client=Client.objects.create(name="Karim", email="karim@example.com", user=self.other_user),
            title="Theirs",
            amount=Decimal("100"),
            expiry_date=timezone.now() + timedelta(days=3),
        )

    def test_dashboard_lists_own_projects(self):
        self.client.force_login(self.user)
        resp = self.client.get(reverse("projects:client_dashboard"))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.context["projects"], [self.mine])

    def test_detail_hides_other_clients_projects(self):
        self.client.force_login(self.user)
        self.assertEqual(self.client.get(reverse("projects:project_detail", args=[self.theirs.pk])).status_code, 404)

    def test_detail_shows_success_banner(self):
        self.client.force_login(self.user)
        url = reverse("projects:project_detail", args=[self.mine.pk])
        resp = self.client.get(url, {"payment_status": "success"})
        self.assertTrue(resp.context["payment_succeeded"])
        self.assertTrue(resp.context["can_pay"])

    def test_staff_dashboard_requires_staff(self):
        self.client.force_login(self.user)
        self.assertEqual(self.client.get(reverse("projects:staff_dashboard")).status_code, 302)

        staff = get_user_model().objects.create_user("admin", password="pass12345", is_staff=True)
        self.client.force_login(staff)
        resp = self.client.get(reverse("projects:staff_dashboard"))
        self.assertEqual(resp.status_code, 200)
        self.assertIn("stats", resp.context)

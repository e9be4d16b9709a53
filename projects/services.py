from decimal import Decimal

from django.db.models import Count, Q, Sum
from django.utils import timezone

from clients.models import Client
from .models import Project


def overdue_projects():
    now = timezone.now()
    return (
        Project.objects.select_related("client")
        .exclude(payment_status=Project.PAID)
        .filter(Q(payment_status=Project.OVERDUE) | Q(expiry_date__lt=now))
        .order_by("expiry_date")
    )


def dashboard_stats(recent=5):
    """Figures shown on the staff dashboard. Amounts are BDT."""
    now = timezone.now()
    paid = Project.objects.filter(payment_status=Project.PAID).aggregate(total=Sum("amount"))
    pending = Project.objects.filter(payment_status=Project.PENDING, expiry_date__gte=now).aggregate(
        total=Sum("amount"), count=Count("id")
    )

    status_counts = {Project.PAID: 0, Project.PENDING: 0, Project.OVERDUE: 0}
    for project in Project.objects.only("payment_status", "expiry_date"):
        status_counts[project.display_status] += 1

    return {
        "total_revenue": paid["total"] or Decimal("0"),
        "active_projects": Project.objects.filter(expiry_date__gte=now).count(),
        "total_clients": Client.objects.count(),
        "pending_amount": pending["total"] or Decimal("0"),
        "pending_count": pending["count"] or 0,
        "recent_projects": list(Project.objects.select_related("client").order_by("-created_at")[:recent]),
        "overdue_projects": list(overdue_projects()),
        "status_counts": status_counts,
    }

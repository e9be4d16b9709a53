from django.contrib.admin.views.decorators import staff_member_required
from django.contrib.auth.decorators import login_required
from django.http import Http404
from django.shortcuts import get_object_or_404, render

from appsettings.middleware import get_request_config
from .models import Project
from .services import dashboard_stats


def _client_for(user):
    return getattr(user, "client", None)


def get_project_for_user(user, project_id):
    """Staff see every project; clients only their own."""
    qs = Project.objects.select_related("client")
    if user.is_staff:
        return get_object_or_404(qs, pk=project_id)
    client = _client_for(user)
    if client is None:
        raise Http404("No client profile")
    return get_object_or_404(qs, pk=project_id, client=client)


@login_required
def client_dashboard_view(request):
    """List the logged-in client's projects."""
    client = _client_for(request.user)
    qs = client.projects.order_by("-created_at") if client else Project.objects.none()

    # Very light pagination
    try:
        page = int(request.GET.get("page", "1"))
        if page < 1: page = 1
    except ValueError:
        page = 1
    page_size = 10
    start = (page - 1) * page_size
    end = start + page_size
    total = qs.count()

    ctx = {
        "client": client,
        "projects": list(qs[start:end]),
        "page": page,
        "has_next": end < total,
        "has_prev": start > 0,
        "next_page": page + 1,
        "prev_page": page - 1,
    }
    return render(request, "projects/client_dashboard.html", ctx)


@login_required
def project_detail_view(request, project_id):
    project = get_project_for_user(request.user, project_id)
    config = get_request_config(request)
    ctx = {
        "project": project,
        "payment_succeeded": request.GET.get("payment_status") == "success",
        "bkash_enabled": config.bkash_enabled,
        "piprapay_enabled": config.piprapay_enabled,
        "can_pay": not project.is_paid,
    }
    return render(request, "projects/project_detail.html", ctx)


@staff_member_required
def staff_dashboard_view(request):
    return render(request, "projects/staff_dashboard.html", {"stats": dashboard_stats()})

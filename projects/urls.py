from django.urls import path

from . import views

app_name = "projects"
urlpatterns = [
    path("client/dashboard", views.client_dashboard_view, name="client_dashboard"),
    path("client/projects/<uuid:project_id>", views.project_detail_view, name="project_detail"),
    path("staff/dashboard", views.staff_dashboard_view, name="staff_dashboard"),
]

from django.contrib import admin
from django.contrib.auth import views as auth_views
from django.urls import include, path
from django.views.generic import RedirectView

urlpatterns = [
    path("admin/", admin.site.urls),
    path("accounts/login/", auth_views.LoginView.as_view(), name="login"),
    path("accounts/logout/", auth_views.LogoutView.as_view(), name="logout"),
    path("settings/", include("appsettings.urls")),
    path("", include("payments.urls")),
    path("", include("projects.urls")),
    path("", RedirectView.as_view(pattern_name="projects:client_dashboard"), name="home"),
]

handler404 = "motionflow.views.error_404_view"

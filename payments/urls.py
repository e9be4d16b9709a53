from django.urls import path

from . import views

app_name = "payments"
urlpatterns = [
    path("client/projects/<uuid:project_id>/pay/<str:provider>", views.project_pay_view, name="pay"),
    path("payment/failure", views.payment_failure_view, name="failure"),

    # bKash redirects the payer's browser here after checkout
    path("api/bkash/callback", views.bkash_callback_view, name="bkash_callback"),

    path("payments/piprapay/return", views.piprapay_return_view, name="piprapay_return"),
    path("api/webhooks/piprapay", views.piprapay_webhook_view, name="piprapay_webhook"),
    path("api/payments/piprapay/charge", views.piprapay_charge_view, name="piprapay_charge"),
    path("api/payments/piprapay/verify", views.piprapay_verify_view, name="piprapay_verify"),
]

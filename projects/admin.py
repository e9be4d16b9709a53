from django.contrib import admin

from .models import Project


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("title", "order_id", "client", "amount", "payment_status", "expiry_date", "created_at")
    search_fields = ("title", "order_id", "client__name", "client__email")
    list_filter = ("payment_status", "expiry_date", "created_at")
    readonly_fields = ("order_id", "created_at")
    raw_id_fields = ("client",)
    ordering = ("-created_at",)

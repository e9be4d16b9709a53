from django.contrib import admin

from .models import Client


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("name", "email", "phone", "company", "user", "created_at")
    search_fields = ("name", "email", "phone", "company", "user__username")
    list_filter = ("created_at",)
    raw_id_fields = ("user",)
    readonly_fields = ("created_at",)

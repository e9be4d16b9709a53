import uuid

from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from clients.models import Client
from .utils import generate_order_id


class Project(models.Model):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    PAYMENT_STATUS_CHOICES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (OVERDUE, "Overdue"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True, default="")
    client = models.ForeignKey(Client, on_delete=models.PROTECT, related_name="projects")
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(0)])
    order_id = models.CharField(max_length=40, unique=True, editable=False)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_STATUS_CHOICES, default=PENDING, db_index=True)
    expiry_date = models.DateTimeField()
    preview_video_url = models.URLField(blank=True, default="")
    final_video_url = models.URLField(blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.title} [{self.order_id}] ({self.payment_status})"

    def save(self, *args, **kwargs):
        if not self.order_id:
            order_id = generate_order_id()
            attempts = 0
            while Project.objects.filter(order_id=order_id).exists() and attempts < 5:
                order_id = generate_order_id()
                attempts += 1
            self.order_id = order_id
        super().save(*args, **kwargs)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == self.PAID

    @property
    def is_expired(self) -> bool:
        return bool(self.expiry_date) and self.expiry_date < timezone.now()

    @property
    def display_status(self) -> str:
        # Overdue is derived for display; storage only moves pending -> paid via payments
        if self.is_paid:
            return self.PAID
        if self.payment_status == self.OVERDUE or self.is_expired:
            return self.OVERDUE
        return self.PENDING

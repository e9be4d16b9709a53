from django.db import models


class Setting(models.Model):
    """One integration credential or switch, stored as a plain string."""

    key = models.CharField(max_length=64, primary_key=True)
    value = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("key",)

    def __str__(self):
        return self.key

from datetime import timedelta
from decimal import Decimal

from django.utils import timezone

from clients.models import Client
from projects.models import Project


class FakeResponse:
    def __init__(self, status_code=200, data=None, text=""):
        self.status_code = status_code
        self._data = data
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("No JSON body")
        return self._data


def make_client(email="client@example.com", phone="", **kwargs):
    return Client.objects.create(name=kwargs.pop("name", "Rahim"), email=email, phone=phone, **kwargs)


def make_project(client=None, **kwargs):
    defaults = {
        "title": "Brand film",
        "amount": Decimal("1500.00"),
        "expiry_date": timezone.now() + timedelta(days=7),
    }
    defaults.update(kwargs)
    return Project.objects.create(client=client or make_client(), **defaults)

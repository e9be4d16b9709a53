"""Integration credentials resolved from the settings store.

Rows in :class:`~appsettings.models.Setting` win; an empty or missing row
falls back to the Django setting loaded from the environment. The result is
an immutable :class:`IntegrationConfig` that gateway clients receive at
construction time.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable

from django.conf import settings
from django.db import transaction

from .models import Setting

BKASH_SANDBOX_URL = "https://tokenized.sandbox.bka.sh/v1.2.0-beta"
BKASH_LIVE_URL = "https://tokenized.pay.bka.sh/v1.2.0-beta"

# store key -> Django setting used as fallback
SETTING_DEFAULTS = {
    "bkash.app_key": "BKASH_APP_KEY",
    "bkash.app_secret": "BKASH_APP_SECRET",
    "bkash.username": "BKASH_USERNAME",
    "bkash.password": "BKASH_PASSWORD",
    "bkash.mode": "BKASH_MODE",
    "bkash.enabled": "BKASH_ENABLED",
    "piprapay.api_key": "PIPRAPAY_API_KEY",
    "piprapay.base_url": "PIPRAPAY_BASE_URL",
    "piprapay.webhook_verify_key": "PIPRAPAY_WEBHOOK_VERIFY_KEY",
    "piprapay.enabled": "PIPRAPAY_ENABLED",
    "sms.token": "GREENWEB_SMS_TOKEN",
}


@dataclass(frozen=True)
class BkashCredentials:
    app_key: str = ""
    app_secret: str = ""
    username: str = ""
    password: str = ""
    mode: str = "sandbox"

    @property
    def base_url(self) -> str:
        return BKASH_LIVE_URL if self.mode == "live" else BKASH_SANDBOX_URL

    def missing(self) -> list:
        return [name for name in ("app_key", "app_secret", "username", "password") if not getattr(self, name)]


@dataclass(frozen=True)
class PipraPayCredentials:
    api_key: str = ""
    base_url: str = ""
    webhook_verify_key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.base_url)


@dataclass(frozen=True)
class SmsCredentials:
    token: str = ""
    url: str = "http://api.greenweb.com.bd/api.php"


@dataclass(frozen=True)
class IntegrationConfig:
    bkash: BkashCredentials = field(default_factory=BkashCredentials)
    piprapay: PipraPayCredentials = field(default_factory=PipraPayCredentials)
    sms: SmsCredentials = field(default_factory=SmsCredentials)
    bkash_enabled: bool = True
    piprapay_enabled: bool = True


def _as_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def get_setting(key: str, default: str = "") -> str:
    row = Setting.objects.filter(key=key).values_list("value", flat=True).first()
    if row:
        return row
    fallback = SETTING_DEFAULTS.get(key)
    if fallback is not None:
        value = getattr(settings, fallback, None)
        if value not in (None, ""):
            return str(value)
    return default


def get_settings(keys: Iterable[str]) -> Dict[str, str]:
    keys = list(keys)
    stored = dict(Setting.objects.filter(key__in=keys).values_list("key", "value"))
    values = {}
    for key in keys:
        value = stored.get(key) or ""
        if not value and key in SETTING_DEFAULTS:
            fallback = getattr(settings, SETTING_DEFAULTS[key], None)
            value = "" if fallback is None else str(fallback)
        values[key] = value
    return values


@transaction.atomic
def set_settings(values: Dict[str, str]) -> None:
    for key, value in values.items():
        Setting.objects.update_or_create(key=key, defaults={"value": "" if value is None else str(value)})


def load_integration_config() -> IntegrationConfig:
    """Read every integration credential once and freeze the result."""
    v = get_settings(SETTING_DEFAULTS.keys())
    return IntegrationConfig(
        bkash=BkashCredentials(
            app_key=v["bkash.app_key"],
            app_secret=v["bkash.app_secret"],
            username=v["bkash.username"],
            password=v["bkash.password"],
            mode=(v["bkash.mode"] or "sandbox").lower(),
        ),
        piprapay=PipraPayCredentials(
            api_key=v["piprapay.api_key"],
            base_url=v["piprapay.base_url"].rstrip("/"),
            webhook_verify_key=v["piprapay.webhook_verify_key"],
        ),
        sms=SmsCredentials(
            token=v["sms.token"],
            url=getattr(settings, "GREENWEB_SMS_URL", SmsCredentials.url),
        ),
        bkash_enabled=_as_bool(v["bkash.enabled"] or "true"),
        piprapay_enabled=_as_bool(v["piprapay.enabled"] or "true"),
    )

from types import MappingProxyType

from django import forms

from .config import get_settings, set_settings


class SettingsSectionForm(forms.Form):
    """Form whose fields map one-to-one onto settings store keys."""

    section = ""
    title = ""
    key_map = MappingProxyType({})

    @classmethod
    def from_store(cls, **kwargs):
        stored = get_settings(cls.key_map.values())
        initial = {}
        for name, key in cls.key_map.items():
            value = stored.get(key, "")
            if isinstance(cls.base_fields[name], forms.BooleanField):
                value = value.strip().lower() in ("1", "true", "yes", "on")
            initial[name] = value
        return cls(initial=initial, prefix=cls.section, **kwargs)

    def save(self):
        values = {}
        for name, key in self.key_map.items():
            value = self.cleaned_data.get(name)
            if isinstance(value, bool):
                value = "true" if value else "false"
            values[key] = "" if value is None else str(value).strip()
        set_settings(values)
        return values


class BkashSettingsForm(SettingsSectionForm):
    section = "bkash"
    title = "bKash"
    key_map = {
        "app_key": "bkash.app_key",
        "app_secret": "bkash.app_secret",
        "username": "bkash.username",
        "password": "bkash.password",
        "mode": "bkash.mode",
        "enabled": "bkash.enabled",
    }

    app_key = forms.CharField(max_length=255, widget=forms.TextInput(attrs={"class": "form-control"}))
    app_secret = forms.CharField(max_length=255, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))
    username = forms.CharField(max_length=255, widget=forms.TextInput(attrs={"class": "form-control"}))
    password = forms.CharField(max_length=255, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))
    mode = forms.ChoiceField(choices=[("sandbox", "Sandbox"), ("live", "Live")], initial="sandbox")
    enabled = forms.BooleanField(required=False)


class PipraPaySettingsForm(SettingsSectionForm):
    section = "piprapay"
    title = "PipraPay"
    key_map = {
        "api_key": "piprapay.api_key",
        "base_url": "piprapay.base_url",
        "webhook_verify_key": "piprapay.webhook_verify_key",
        "enabled": "piprapay.enabled",
    }

    api_key = forms.CharField(max_length=255, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))
    base_url = forms.URLField(widget=forms.URLInput(attrs={"class": "form-control"}))
    webhook_verify_key = forms.CharField(max_length=255, required=False, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))
    enabled = forms.BooleanField(required=False)

    def clean_base_url(self):
        return self.cleaned_data["base_url"].rstrip("/")


class SmsSettingsForm(SettingsSectionForm):
    section = "sms"
    title = "SMS (GreenWeb)"
    key_map = {"token": "sms.token"}

    token = forms.CharField(max_length=255, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))


class StorageSettingsForm(SettingsSectionForm):
    section = "storage"
    title = "File storage (Nextcloud)"
    key_map = {
        "url": "storage.url",
        "username": "storage.username",
        "app_password": "storage.app_password",
    }

    url = forms.URLField(widget=forms.URLInput(attrs={"class": "form-control"}))
    username = forms.CharField(max_length=255, widget=forms.TextInput(attrs={"class": "form-control"}))
    app_password = forms.CharField(max_length=255, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))


class SmtpSettingsForm(SettingsSectionForm):
    section = "smtp"
    title = "SMTP"
    key_map = {
        "host": "smtp.host",
        "port": "smtp.port",
        "username": "smtp.username",
        "password": "smtp.password",
        "from_email": "smtp.from_email",
    }

    host = forms.CharField(max_length=255, widget=forms.TextInput(attrs={"class": "form-control"}))
    port = forms.IntegerField(min_value=1, max_value=65535, initial=587)
    username = forms.CharField(max_length=255, required=False, widget=forms.TextInput(attrs={"class": "form-control"}))
    password = forms.CharField(max_length=255, required=False, widget=forms.PasswordInput(attrs={"class": "form-control"}, render_value=True))
    from_email = forms.EmailField(required=False, widget=forms.EmailInput(attrs={"class": "form-control"}))


SECTION_FORMS = {
    form.section: form
    for form in (BkashSettingsForm, PipraPaySettingsForm, SmsSettingsForm, StorageSettingsForm, SmtpSettingsForm)
}

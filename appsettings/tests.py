from django.contrib.auth import get_user_model
from django.test import RequestFactory, TestCase, override_settings
from django.urls import reverse

from .config import get_setting, load_integration_config, set_settings
from .forms import BkashSettingsForm, SettingsSectionForm
from .middleware import IntegrationConfigMiddleware, get_request_config
from .models import Setting


@override_settings(BKASH_APP_KEY="env-key", PIPRAPAY_BASE_URL="https://env.piprapay.com/api/")
class SettingsStoreTests(TestCase):
    def test_environment_is_the_fallback(self):
        self.assertEqual(get_setting("bkash.app_key"), "env-key")
        self.assertEqual(get_setting("unknown.key", "dflt"), "dflt")

    def test_stored_value_wins(self):
        set_settings({"bkash.app_key": "db-key"})
        self.assertEqual(get_setting("bkash.app_key"), "db-key")

    def test_empty_stored_value_falls_back(self):
        Setting.objects.create(key="bkash.app_key", value="")
        self.assertEqual(get_setting("bkash.app_key"), "env-key")

    def test_integration_config_snapshot(self):
        set_settings({"bkash.mode": "LIVE", "piprapay.enabled": "false", "sms.token": "tok"})

        config = load_integration_config()

        self.assertEqual(config.bkash.app_key, "env-key")
        self.assertEqual(config.bkash.mode, "live")
        self.assertEqual(config.piprapay.base_url, "https://env.piprapay.com/api")
        self.assertFalse(config.piprapay_enabled)
        self.assertTrue(config.bkash_enabled)
        self.assertEqual(config.sms.token, "tok")

    @override_settings(BKASH_ENABLED="", PIPRAPAY_ENABLED="")
    def test_providers_enabled_when_flag_is_blank(self):
        config = load_integration_config()
        self.assertTrue(config.bkash_enabled)
        self.assertTrue(config.piprapay_enabled)

    def test_stored_flags_read_like_the_default(self):
        set_settings({"bkash.enabled": "true", "piprapay.enabled": "0"})
        config = load_integration_config()
        self.assertTrue(config.bkash_enabled)
        self.assertFalse(config.piprapay_enabled)

    def test_config_is_frozen(self):
        config = load_integration_config()
        with self.assertRaises(AttributeError):
            config.bkash.app_key = "changed"


class MiddlewareTests(TestCase):
    def test_config_attached_to_request(self):
        request = RequestFactory().get("/")
        IntegrationConfigMiddleware(lambda r: r)(request)
        self.assertIs(get_request_config(request), request.integration_config)

    def test_loaded_when_middleware_skipped(self):
        request = RequestFactory().get("/")
        self.assertIsNotNone(get_request_config(request))


class SettingsFormTests(TestCase):
    def test_save_writes_store_keys(self):
        form = BkashSettingsForm(
            data={
                "bkash-app_key": "k",
                "bkash-app_secret": "s",
                "bkash-username": "u",
                "bkash-password": "p",
                "bkash-mode": "live",
            },
            prefix="bkash",
        )
        self.assertTrue(form.is_valid(), form.errors)
        form.save()

        self.assertEqual(get_setting("bkash.username"), "u")
        self.assertEqual(get_setting("bkash.enabled"), "false")

    def test_base_key_map_is_read_only(self):
        with self.assertRaises(TypeError):
            SettingsSectionForm.key_map["extra"] = "extra.key"

    def test_stored_false_renders_unchecked(self):
        set_settings({"bkash.enabled": "false"})
        self.assertFalse(BkashSettingsForm.from_store().initial["enabled"])


class SettingsViewTests(TestCase):
    def setUp(self):
        self.staff = get_user_model().objects.create_user("admin", password="pass12345", is_staff=True)

    def test_requires_staff(self):
        resp = self.client.get(reverse("appsettings:settings"))
        self.assertEqual(resp.status_code, 302)

    def test_saves_posted_section(self):
        self.client.force_login(self.staff)
        resp = self.client.post(reverse("appsettings:settings"), {"section": "sms", "sms-token": "new-token"})

        self.assertRedirects(resp, reverse("appsettings:settings"), fetch_redirect_response=False)
        self.assertEqual(Setting.objects.get(key="sms.token").value, "new-token")

    def test_unknown_section(self):
        self.client.force_login(self.staff)
        resp = self.client.post(reverse("appsettings:settings"), {"section": "bogus"})
        self.assertRedirects(resp, reverse("appsettings:settings"), fetch_redirect_response=False)
        self.assertFalse(Setting.objects.exists())

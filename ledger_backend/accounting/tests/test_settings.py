# accounting/tests/test_settings.py

from __future__ import annotations

import importlib
import os
from unittest import mock

from django.test import SimpleTestCase

import backend.settings.base as base_settings


class SentrySettingsTests(SimpleTestCase):
    """
    GUARANTEES:
    - Sentry stays off unless SENTRY_DSN is set
    - With a DSN, sentry_sdk.init receives the DSN-gated configuration
    """

    def tearDown(self):
        with mock.patch.dict(os.environ, {"SENTRY_DSN": ""}):
            importlib.reload(base_settings)

    def test_disabled_without_dsn(self):
        with mock.patch.dict(os.environ, {"SENTRY_DSN": ""}), mock.patch("sentry_sdk.init") as init:
            importlib.reload(base_settings)

        init.assert_not_called()
        self.assertEqual(base_settings.SENTRY_DSN, "")

    def test_enabled_with_dsn(self):
        env = {
            "SENTRY_DSN": "https://public@sentry.example.invalid/1",
            "SENTRY_ENVIRONMENT": "staging",
        }
        with mock.patch.dict(os.environ, env), mock.patch("sentry_sdk.init") as init:
            importlib.reload(base_settings)

        init.assert_called_once()
        kwargs = init.call_args.kwargs
        self.assertEqual(kwargs["dsn"], env["SENTRY_DSN"])
        self.assertEqual(kwargs["environment"], "staging")
        self.assertFalse(kwargs["send_default_pii"])

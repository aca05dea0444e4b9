"""
Tests for the configuration service layer.
"""

import os
import stat
import tempfile

from django.test import TestCase, override_settings

from review.services import config
from review.services.exceptions import ServiceNotConfigured


class ConfigServiceTestCase(TestCase):
    """Test cases for the configuration service layer."""

    def test_api_base_gets_trailing_slash(self):
        """Test that a base URL without a trailing slash still joins paths."""
        with override_settings(OPENAI_API_BASE='https://proxy.test/v1'):
            self.assertEqual(config.get_openai_config().api_base, 'https://proxy.test/v1/')

    def test_request_credential_wins(self):
        self.assertEqual(config.resolve_api_key('  sk-user '), 'sk-user')

    def test_fallback_key_used(self):
        self.assertEqual(config.resolve_api_key(None), 'test-fallback-key')
        self.assertEqual(config.resolve_api_key('   '), 'test-fallback-key')

    @override_settings(OPENAI_API_KEY='')
    def test_no_key_at_all_raises(self):
        with self.assertRaises(ServiceNotConfigured):
            config.resolve_api_key(None)

    def test_max_input_length_per_model(self):
        self.assertEqual(config.get_max_input_length('gpt-3.5-turbo'), 4000)
        self.assertEqual(config.get_max_input_length('gpt-4'), 12000)


class SavedCredentialTestCase(TestCase):
    """Test cases for the remembered command-line API key."""

    def setUp(self):
        """Point the credential file into a scratch directory."""
        scratch = tempfile.TemporaryDirectory()
        self.addCleanup(scratch.cleanup)
        self.path = os.path.join(scratch.name, 'nested', 'api_key')

        credential_settings = override_settings(REVIEW_CREDENTIAL_FILE=self.path)
        credential_settings.enable()
        self.addCleanup(credential_settings.disable)

    def test_nothing_saved(self):
        self.assertIsNone(config.load_saved_credential())

    def test_save_and_load(self):
        saved_to = config.save_credential(' sk-saved\n')

        self.assertEqual(str(saved_to), self.path)
        self.assertEqual(config.load_saved_credential(), 'sk-saved')

    def test_saved_file_is_private(self):
        config.save_credential('sk-saved')
        mode = stat.S_IMODE(os.stat(self.path).st_mode)
        self.assertEqual(mode & 0o077, 0)

    def test_save_overwrites(self):
        config.save_credential('sk-old')
        config.save_credential('sk-new')
        self.assertEqual(config.load_saved_credential(), 'sk-new')

    def test_empty_key_not_saved(self):
        with self.assertRaises(ValueError):
            config.save_credential('  ')
        self.assertFalse(os.path.exists(self.path))

    def test_forget(self):
        config.save_credential('sk-saved')

        self.assertTrue(config.forget_credential())
        self.assertIsNone(config.load_saved_credential())
        self.assertFalse(config.forget_credential())

    def test_tilde_is_expanded(self):
        with override_settings(REVIEW_CREDENTIAL_FILE='~/redline-key'):
            path = config.get_credential_file()
        self.assertFalse(str(path).startswith('~'))

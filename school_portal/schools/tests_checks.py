from django.test import SimpleTestCase, override_settings

from schools.checks import check_subdomain_settings


class SubdomainSettingsCheckTests(SimpleTestCase):

    def _ids(self):
        return [message.id for message in check_subdomain_settings(None)]

    @override_settings(APP_ENV='production', SCHOOLS_MAIN_DOMAIN='yourdomain.com')
    def test_placeholder_domain_in_production(self):
        self.assertIn('schools.W001', self._ids())

    @override_settings(APP_ENV='development', SCHOOLS_MAIN_DOMAIN='yourdomain.com')
    def test_placeholder_domain_allowed_in_development(self):
        self.assertNotIn('schools.W001', self._ids())

    @override_settings(SUBDOMAIN_PROBE_TIMEOUT=0)
    def test_probe_timeout_must_be_positive(self):
        self.assertIn('schools.E001', self._ids())

    @override_settings(SUBDOMAIN_HEALTH_MAX_WORKERS=0)
    def test_worker_count_must_be_positive(self):
        self.assertIn('schools.E002', self._ids())

    @override_settings(
        APP_ENV='production', SCHOOLS_MAIN_DOMAIN='schools.example.edu',
        SUBDOMAIN_PROBE_TIMEOUT=5, SUBDOMAIN_HEALTH_MAX_WORKERS=8,
    )
    def test_valid_settings(self):
        self.assertEqual(self._ids(), [])

"""
Тесты management-команд check_subdomains и assign_subdomain.

Запуск: python manage.py test schools.tests_commands -v2
"""
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from schools.dns import NetworkProbe
from schools.models import School


@override_settings(SCHOOLS_MAIN_DOMAIN='example.edu', APP_ENV='development')
class CheckSubdomainsCommandTests(TestCase):

    def setUp(self):
        resolve = patch.object(NetworkProbe, 'resolve', return_value='203.0.113.10')
        head = patch.object(NetworkProbe, 'head_request', return_value=True)
        self.mock_resolve = resolve.start()
        self.mock_head = head.start()
        self.addCleanup(resolve.stop)
        self.addCleanup(head.stop)

    def _call(self, *args):
        out, err = StringIO(), StringIO()
        call_command('check_subdomains', *args, stdout=out, stderr=err)
        return out.getvalue(), err.getvalue()

    def test_no_schools_with_domains(self):
        School.objects.create(name='Unassigned')

        out, _ = self._call()

        self.assertIn('No schools with domains found.', out)
        self.mock_resolve.assert_not_called()

    def test_summary_counts(self):
        School.objects.create(name='Alpha', domain='alpha')
        School.objects.create(name='Beta', domain='beta')
        self.mock_head.side_effect = lambda url, timeout: 'beta' not in url

        out, _ = self._call()

        self.assertIn('Found 2 schools with domains', out)
        self.assertIn('✅ Alpha', out)
        self.assertIn('❌ Beta', out)
        self.assertIn('Healthy: 1', out)
        self.assertIn('Unhealthy: 1', out)
        self.assertIn('Run with --fix', out)

    def test_all_healthy_has_no_fix_hint(self):
        School.objects.create(name='Alpha', domain='alpha')

        out, _ = self._call()

        self.assertIn('Healthy: 1', out)
        self.assertNotIn('Run with --fix', out)

    def test_fix_reassigns_unhealthy_subdomain(self):
        school = School.objects.create(name='Alpha', domain='alpha')
        self.mock_resolve.return_value = None

        out, err = self._call('--fix')

        self.assertIn('Attempting to fix subdomain for Alpha', out)
        self.assertIn('Subdomain fixed successfully', out)
        self.assertIn('http://alpha.example.edu', out)
        self.assertEqual(err, '')
        self.assertNotIn('Run with --fix', out)
        school.refresh_from_db()
        self.assertEqual(school.domain, 'alpha')

    def test_fix_reports_failure(self):
        School.objects.create(name='Alpha', domain='alpha')
        self.mock_resolve.return_value = None

        with patch(
            'schools.subdomain_service.SubdomainService._save_domain',
            side_effect=RuntimeError('db unavailable'),
        ):
            _, err = self._call('--fix')

        self.assertIn('Failed to fix subdomain', err)
        self.assertIn('db unavailable', err)

    def test_single_school(self):
        school = School.objects.create(name='Alpha', domain='alpha')

        out, _ = self._call('--school-id', str(school.pk))

        self.assertIn(f'Checking school: Alpha (ID: {school.pk})', out)
        self.assertIn('Subdomain is accessible', out)
        self.assertNotIn('Summary', out)

    def test_single_school_without_domain(self):
        school = School.objects.create(name='Unassigned')

        out, _ = self._call('--school-id', str(school.pk), '--fix')

        self.assertIn('⚠️ Unassigned', out)
        self.assertIn('No domain configured for this school', out)
        self.assertNotIn('Attempting to fix', out)

    def test_unknown_school_id(self):
        with self.assertRaisesMessage(CommandError, 'School with ID 99999 not found.'):
            self._call('--school-id', '99999')

    def test_workers_option(self):
        for i in range(3):
            School.objects.create(name=f'School {i}', domain=f'school-{i}')

        out, _ = self._call('--workers', '1')

        self.assertIn('Healthy: 3', out)


@override_settings(SCHOOLS_MAIN_DOMAIN='example.edu', APP_ENV='development')
class AssignSubdomainCommandTests(TestCase):

    def setUp(self):
        resolve = patch.object(NetworkProbe, 'resolve', return_value=None)
        resolve.start()
        self.addCleanup(resolve.stop)

    def test_assign_generated(self):
        school = School.objects.create(name='Lincoln High')
        out = StringIO()

        call_command('assign_subdomain', str(school.pk), stdout=out)

        self.assertIn('http://lincoln-high.example.edu', out.getvalue())
        self.assertIn('DNS resolution failed', out.getvalue())
        school.refresh_from_db()
        self.assertEqual(school.domain, 'lincoln-high')

    def test_assign_taken_prints_suggestions(self):
        School.objects.create(name='Lincoln', domain='lincoln')
        school = School.objects.create(name='Lincoln Two')
        out = StringIO()

        with self.assertRaisesMessage(CommandError, 'Domain is already taken'):
            call_command('assign_subdomain', str(school.pk), '--domain', 'lincoln', stdout=out)

        self.assertIn('Suggestions: lincoln1, lincoln2', out.getvalue())

    def test_assign_invalid(self):
        school = School.objects.create(name='Lincoln')

        with self.assertRaises(CommandError):
            call_command('assign_subdomain', str(school.pk), '--domain', 'www', stdout=StringIO())

    def test_unknown_school(self):
        with self.assertRaisesMessage(CommandError, 'School with ID 424242 not found.'):
            call_command('assign_subdomain', '424242', stdout=StringIO())

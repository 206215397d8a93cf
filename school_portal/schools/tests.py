"""
Тесты сервиса поддоменов: генерация, валидация, резервирование, health.

Сеть не используется: DNS-провайдер и сетевой probe подменяются MagicMock.

Запуск: python manage.py test schools -v2
"""
import re
import socket
import time
from unittest.mock import MagicMock, patch

import requests
from django.db import DatabaseError
from django.test import SimpleTestCase, TestCase, override_settings

from schools.dns import LoggingDnsProvisioner, NetworkProbe, get_dns_provisioner
from schools.models import School
from schools.subdomain_service import (
    SubdomainError,
    SubdomainService,
    generate_domain,
    validate_domain,
)

DOMAIN_RE = re.compile(r'\A[a-z0-9-]{3,63}\Z')


class RecordingProvisioner(LoggingDnsProvisioner):
    """Для проверки выбора backend'а по dotted path."""


def make_service(**kwargs):
    probe = MagicMock()
    probe.resolve.return_value = '203.0.113.10'
    probe.head_request.return_value = True
    provisioner = MagicMock()
    provisioner.provision.return_value = {'success': True, 'message': 'DNS record requested'}
    options = {
        'provisioner': provisioner,
        'probe': probe,
        'main_domain': 'example.edu',
        'environment': 'development',
        'timeout': 2,
    }
    options.update(kwargs)
    return SubdomainService(**options)


class GenerateDomainTests(SimpleTestCase):

    def test_school_name_becomes_hyphenated_slug(self):
        self.assertEqual(generate_domain('Springfield Elementary'), 'springfield-elementary')

    def test_leading_digits_are_stripped(self):
        self.assertEqual(generate_domain('123 Academy'), 'academy')
        self.assertEqual(generate_domain('2024-25 Math Club'), 'math-club')

    def test_short_names_get_school_prefix(self):
        self.assertEqual(generate_domain('AB'), 'schoolab')
        self.assertEqual(generate_domain('42'), 'school')
        self.assertEqual(generate_domain(''), 'school')
        self.assertEqual(generate_domain('日本語'), 'school')

    def test_accents_and_punctuation(self):
        self.assertEqual(generate_domain('École Ñandú'), 'ecole-nandu')
        self.assertEqual(generate_domain('Foo_Bar  Baz!!'), 'foo-bar-baz')

    def test_symbols_folding_to_underscore_leave_single_hyphen(self):
        # '＿' после NFKD становится '_' и удаляется между дефисами
        self.assertEqual(generate_domain('a ＿ b school'), 'a-b-school')
        self.assertTrue(validate_domain(generate_domain('a ＿ b school'))['valid'])

    def test_truncated_to_63_without_trailing_hyphen(self):
        self.assertEqual(len(generate_domain('a' * 100)), 63)

        domain = generate_domain('a' * 62 + ' bcd')
        self.assertEqual(domain, 'a' * 62)

    def test_output_always_matches_subdomain_format(self):
        names = [
            'Springfield Elementary', '', '   ', '---', '9-', '007 Spy School',
            'St. Mary\'s High School (North Campus)', 'x' * 500, 'Über Schule № 5',
            '__init__', '-a-', 'A', 'a--b', '🎓 Academy', 'a ＿ b', '＿ leading', 'mid＿＿dle',
        ]
        for name in names:
            with self.subTest(name=name):
                domain = generate_domain(name)
                self.assertRegex(domain, DOMAIN_RE)
                self.assertFalse(domain[0].isdigit())
                self.assertFalse(domain.startswith('-') or domain.endswith('-'))
                self.assertNotIn('--', domain)

    def test_deterministic(self):
        self.assertEqual(generate_domain('Lincoln High'), generate_domain('Lincoln High'))


class ValidateDomainTests(SimpleTestCase):

    def assertInvalid(self, domain, reason):
        result = validate_domain(domain)
        self.assertFalse(result['valid'], domain)
        self.assertEqual(result['reason'], reason)
        self.assertTrue(result['message'])

    def test_length_bounds(self):
        self.assertInvalid('ab', SubdomainError.INVALID_FORMAT)
        self.assertInvalid('a' * 64, SubdomainError.INVALID_FORMAT)
        self.assertTrue(validate_domain('abc')['valid'])
        self.assertTrue(validate_domain('a' * 63)['valid'])

    def test_characters_outside_allowed_set(self):
        for domain in ('My-School', 'foo_bar', 'foo.bar', 'école', 'foo bar', '', 'abc\n', 'abc\nd'):
            with self.subTest(domain=domain):
                self.assertInvalid(domain, SubdomainError.INVALID_FORMAT)

    def test_non_string_is_invalid_format(self):
        self.assertInvalid(None, SubdomainError.INVALID_FORMAT)

    def test_reserved_words(self):
        for domain in ('www', 'mail', 'ftp', 'admin', 'api', 'app', 'test', 'dev', 'staging'):
            with self.subTest(domain=domain):
                self.assertInvalid(domain, SubdomainError.RESERVED)

    def test_reserved_is_exact_match_only(self):
        self.assertTrue(validate_domain('admin-school')['valid'])
        self.assertTrue(validate_domain('testing')['valid'])

    def test_consecutive_hyphens(self):
        self.assertInvalid('foo--bar', SubdomainError.CONSECUTIVE_HYPHENS)

    def test_edge_hyphens(self):
        self.assertInvalid('-foo', SubdomainError.EDGE_HYPHEN)
        self.assertInvalid('foo-', SubdomainError.EDGE_HYPHEN)

    def test_first_failure_wins(self):
        # '--' проверяется раньше дефиса по краям
        self.assertInvalid('-foo--bar', SubdomainError.CONSECUTIVE_HYPHENS)

    def test_valid_domain(self):
        self.assertEqual(validate_domain('my-school-1'), {'valid': True})

    def test_idempotent(self):
        for domain in ('my-school-1', 'admin', 'foo--bar', 'ab'):
            self.assertEqual(validate_domain(domain), validate_domain(domain))


class DomainAvailabilityTests(TestCase):

    def setUp(self):
        self.service = make_service()
        self.lincoln = School.objects.create(name='Lincoln High', domain='lincoln')

    def test_taken_domain_is_unavailable(self):
        self.assertFalse(self.service.is_domain_available('lincoln'))
        self.assertTrue(self.service.is_domain_available('roosevelt'))

    def test_exclude_school_ignores_own_domain(self):
        self.assertTrue(self.service.is_domain_available('lincoln', exclude_school=self.lincoln))

    def test_suggestions_skip_taken_variants(self):
        School.objects.create(name='Lincoln 2', domain='lincoln2')

        suggestions = self.service.generate_domain_suggestions('lincoln')

        self.assertEqual(suggestions, ['lincoln1', 'lincoln3', 'lincoln4', 'lincoln5', 'lincoln6'])

    def test_suggestion_count(self):
        self.assertEqual(len(self.service.generate_domain_suggestions('lincoln', count=3)), 3)

    def test_suggestions_stay_within_63_chars(self):
        base = 'a' * 63
        suggestions = self.service.generate_domain_suggestions(base, count=12)

        self.assertEqual(len(suggestions), 12)
        for suggestion in suggestions:
            self.assertLessEqual(len(suggestion), 63)
            self.assertTrue(validate_domain(suggestion)['valid'], suggestion)
        self.assertEqual(suggestions[0], 'a' * 62 + '1')
        self.assertEqual(suggestions[9], 'a' * 61 + '10')


class CreateSubdomainTests(TestCase):

    def setUp(self):
        self.service = make_service()

    def test_generates_domain_from_name_and_persists(self):
        school = School.objects.create(name='Springfield Elementary')

        result = self.service.create_subdomain(school)

        self.assertTrue(result['valid'])
        self.assertEqual(result['domain'], 'springfield-elementary')
        self.assertEqual(result['full_url'], 'http://springfield-elementary.example.edu')
        self.assertTrue(result['dns_created'])
        self.assertEqual(result['dns_message'], 'DNS record requested')
        self.assertTrue(result['accessible'])
        self.assertEqual(result['accessibility_message'], 'Subdomain is accessible')

        school.refresh_from_db()
        self.assertEqual(school.domain, 'springfield-elementary')

        self.service.provisioner.provision.assert_called_once_with('springfield-elementary.example.edu')
        self.service.probe.resolve.assert_called_once_with('springfield-elementary.example.edu', 2)
        self.service.probe.head_request.assert_called_once_with(
            'http://springfield-elementary.example.edu', 2,
        )

    def test_reserve_writes_domain_without_network(self):
        school = School.objects.create(name='Springfield Elementary')

        result = self.service.reserve_subdomain(school, 'springfield')

        self.assertEqual(result, {'valid': True, 'domain': 'springfield'})
        school.refresh_from_db()
        self.assertEqual(school.domain, 'springfield')
        self.service.provisioner.provision.assert_not_called()
        self.service.probe.resolve.assert_not_called()
        self.service.probe.head_request.assert_not_called()

    def test_production_uses_https(self):
        service = make_service(environment='production')
        school = School.objects.create(name='Springfield Elementary')

        result = service.create_subdomain(school, 'springfield')

        self.assertEqual(result['full_url'], 'https://springfield.example.edu')

    def test_desired_domain_is_normalized(self):
        school = School.objects.create(name='Whatever')

        result = self.service.create_subdomain(school, '  My-School ')

        self.assertTrue(result['valid'])
        self.assertEqual(result['domain'], 'my-school')

    def test_invalid_domain_is_not_persisted(self):
        school = School.objects.create(name='Admin Academy')

        result = self.service.create_subdomain(school, 'admin')

        self.assertFalse(result['valid'])
        self.assertEqual(result['reason'], SubdomainError.RESERVED)
        self.assertNotIn('suggestions', result)
        school.refresh_from_db()
        self.assertIsNone(school.domain)
        self.service.provisioner.provision.assert_not_called()
        self.service.probe.resolve.assert_not_called()

    def test_taken_domain_returns_five_valid_suggestions(self):
        School.objects.create(name='Springfield', domain='springfield')
        school = School.objects.create(name='Springfield Two')

        result = self.service.create_subdomain(school, 'springfield')

        self.assertFalse(result['valid'])
        self.assertEqual(result['reason'], SubdomainError.DOMAIN_TAKEN)
        self.assertIn('already taken', result['message'])
        self.assertEqual(len(result['suggestions']), 5)
        for suggestion in result['suggestions']:
            self.assertTrue(validate_domain(suggestion)['valid'])
            self.assertTrue(self.service.is_domain_available(suggestion))
        school.refresh_from_db()
        self.assertIsNone(school.domain)

    def test_school_can_reassert_its_own_domain(self):
        school = School.objects.create(name='Lincoln', domain='lincoln')

        result = self.service.create_subdomain(school, school.domain)

        self.assertTrue(result['valid'])
        self.assertEqual(result['domain'], 'lincoln')

    def test_new_domain_overwrites_previous(self):
        school = School.objects.create(name='Lincoln', domain='old-lincoln')

        result = self.service.create_subdomain(school, 'new-lincoln')

        self.assertTrue(result['valid'])
        school.refresh_from_db()
        self.assertEqual(school.domain, 'new-lincoln')
        self.assertTrue(self.service.is_domain_available('old-lincoln'))

    def test_dns_failure_does_not_roll_back_assignment(self):
        self.service.provisioner.provision.side_effect = RuntimeError('provider down')
        school = School.objects.create(name='Lincoln')

        result = self.service.create_subdomain(school, 'lincoln')

        self.assertTrue(result['valid'])
        self.assertFalse(result['dns_created'])
        self.assertIn('provider down', result['dns_message'])
        school.refresh_from_db()
        self.assertEqual(school.domain, 'lincoln')

    def test_unreachable_subdomain_still_assigned(self):
        self.service.probe.resolve.return_value = None
        school = School.objects.create(name='Lincoln')

        result = self.service.create_subdomain(school, 'lincoln')

        self.assertTrue(result['valid'])
        self.assertFalse(result['accessible'])
        self.assertIn('DNS resolution failed', result['accessibility_message'])

    def test_persistence_failure_is_reported(self):
        school = School.objects.create(name='Lincoln')

        with patch.object(SubdomainService, '_save_domain', side_effect=DatabaseError('db unavailable')):
            result = self.service.create_subdomain(school, 'lincoln')

        self.assertFalse(result['valid'])
        self.assertEqual(result['reason'], SubdomainError.PERSISTENCE_FAILURE)
        self.assertEqual(result['message'], 'Failed to create subdomain: db unavailable')
        self.assertIsNone(school.domain)
        self.service.provisioner.provision.assert_not_called()

    def test_unsaved_school_is_reported_not_raised(self):
        school = School(name='Ghost School')

        result = self.service.create_subdomain(school, 'ghost')

        self.assertFalse(result['valid'])
        self.assertTrue(result['message'].startswith('Failed to create subdomain:'))
        self.assertFalse(School.objects.filter(domain='ghost').exists())

    def test_unique_constraint_wins_when_availability_check_is_stale(self):
        """Обе школы прошли проверку доступности — записать может только одна."""
        first = School.objects.create(name='Shared One')
        second = School.objects.create(name='Shared Two')

        with patch.object(self.service, 'is_domain_available', return_value=True):
            first_result = self.service.create_subdomain(first, 'shared-name')
            second_result = self.service.create_subdomain(second, 'shared-name')

        self.assertTrue(first_result['valid'])
        self.assertFalse(second_result['valid'])
        self.assertEqual(second_result['reason'], SubdomainError.DOMAIN_TAKEN)
        self.assertEqual(len(second_result['suggestions']), 5)
        self.assertIsNone(second.domain)
        second.refresh_from_db()
        self.assertIsNone(second.domain)
        self.assertEqual(School.objects.filter(domain='shared-name').count(), 1)


class AccessibilityTests(SimpleTestCase):

    def setUp(self):
        self.service = make_service()

    def test_dns_resolution_failure(self):
        self.service.probe.resolve.return_value = None

        result = self.service.test_subdomain_accessibility('lincoln')

        self.assertFalse(result['accessible'])
        self.assertEqual(result['message'], 'DNS resolution failed. Subdomain may not be configured yet.')
        self.service.probe.head_request.assert_not_called()

    def test_not_responding(self):
        self.service.probe.head_request.return_value = False

        result = self.service.test_subdomain_accessibility('lincoln')

        self.assertEqual(result, {'accessible': False, 'message': 'Subdomain is not responding'})

    def test_probe_errors_never_propagate(self):
        self.service.probe.resolve.side_effect = RuntimeError('resolver crashed')

        result = self.service.test_subdomain_accessibility('lincoln')

        self.assertFalse(result['accessible'])
        self.assertEqual(result['message'], 'Accessibility test failed: resolver crashed')


class SubdomainHealthTests(TestCase):

    def setUp(self):
        self.service = make_service()

    def test_not_configured_makes_no_network_call(self):
        school = School.objects.create(name='No Domain')

        health = self.service.check_subdomain_health(school)

        self.assertEqual(health['status'], 'not_configured')
        self.assertEqual(health['message'], 'No domain configured for this school')
        self.service.probe.resolve.assert_not_called()
        self.service.probe.head_request.assert_not_called()

    def test_healthy(self):
        school = School.objects.create(name='Lincoln', domain='lincoln')

        health = self.service.check_subdomain_health(school)

        self.assertEqual(health, {
            'status': 'healthy',
            'domain': 'lincoln',
            'full_url': 'http://lincoln.example.edu',
            'accessible': True,
            'message': 'Subdomain is accessible',
        })

    def test_unhealthy(self):
        self.service.probe.head_request.return_value = False
        school = School.objects.create(name='Lincoln', domain='lincoln')

        health = self.service.check_subdomain_health(school)

        self.assertEqual(health['status'], 'unhealthy')
        self.assertFalse(health['accessible'])

    def test_all_health_keeps_store_order(self):
        alpha = School.objects.create(name='Alpha', domain='alpha')
        School.objects.create(name='Unassigned')
        beta = School.objects.create(name='Beta', domain='beta')
        gamma = School.objects.create(name='Gamma', domain='gamma')
        self.service.probe.head_request.side_effect = lambda url, timeout: 'beta' not in url

        results = self.service.get_all_subdomain_health()

        self.assertEqual([r['school_id'] for r in results], [alpha.id, beta.id, gamma.id])
        self.assertEqual([r['school_name'] for r in results], ['Alpha', 'Beta', 'Gamma'])
        self.assertEqual(
            [r['health']['status'] for r in results],
            ['healthy', 'unhealthy', 'healthy'],
        )

    def test_all_health_runs_probes_concurrently(self):
        for i in range(4):
            School.objects.create(name=f'School {i}', domain=f'school-{i}')

        def slow_head(url, timeout):
            time.sleep(0.3)
            return True

        self.service.probe.head_request.side_effect = slow_head

        started = time.monotonic()
        results = self.service.get_all_subdomain_health(max_workers=4)
        elapsed = time.monotonic() - started

        self.assertEqual(len(results), 4)
        self.assertLess(elapsed, 1.0)

    def test_all_health_empty(self):
        School.objects.create(name='Unassigned')
        self.assertEqual(self.service.get_all_subdomain_health(), [])

    def test_all_health_slow_lookups_within_timeout_are_healthy(self):
        for i in range(8):
            School.objects.create(name=f'Slow {i}', domain=f'slow-{i}')

        def slow_lookup(hostname):
            time.sleep(0.4)
            return '203.0.113.10'

        service = make_service(probe=NetworkProbe(), timeout=1.0, max_workers=8)
        with patch('schools.dns.socket.gethostbyname', side_effect=slow_lookup), \
                patch.object(NetworkProbe, 'head_request', return_value=True):
            results = service.get_all_subdomain_health()

        self.assertEqual([r['health']['status'] for r in results], ['healthy'] * 8)


class NetworkProbeTests(SimpleTestCase):

    def setUp(self):
        self.probe = NetworkProbe()

    @patch('schools.dns.socket.gethostbyname', return_value='203.0.113.10')
    def test_resolve_returns_address(self, mock_resolve):
        self.assertEqual(self.probe.resolve('lincoln.example.edu', 1), '203.0.113.10')
        mock_resolve.assert_called_once_with('lincoln.example.edu')

    @patch('schools.dns.socket.gethostbyname', side_effect=socket.gaierror('Name or service not known'))
    def test_resolve_failure_returns_none(self, mock_resolve):
        self.assertIsNone(self.probe.resolve('missing.example.edu', 1))

    def test_resolve_is_bounded_by_timeout(self):
        def hang(hostname):
            time.sleep(1)
            return '203.0.113.10'

        with patch('schools.dns.socket.gethostbyname', side_effect=hang):
            started = time.monotonic()
            self.assertIsNone(self.probe.resolve('slow.example.edu', 0.05))
            self.assertLess(time.monotonic() - started, 0.9)

    @patch('schools.dns.requests.head')
    def test_head_any_response_is_reachable(self, mock_head):
        mock_head.return_value = MagicMock(status_code=503)

        self.assertTrue(self.probe.head_request('http://lincoln.example.edu', 5))
        mock_head.assert_called_once_with('http://lincoln.example.edu', timeout=5, allow_redirects=False)

    @patch('schools.dns.requests.head')
    def test_head_transport_errors_are_unreachable(self, mock_head):
        for error in (requests.ConnectionError('refused'), requests.Timeout('slow')):
            mock_head.side_effect = error
            self.assertFalse(self.probe.head_request('http://lincoln.example.edu', 5))


class DnsProvisionerTests(SimpleTestCase):

    def test_logging_provisioner_records_intent(self):
        with self.assertLogs('schools.dns', level='INFO') as logs:
            result = LoggingDnsProvisioner().provision('lincoln.example.edu')

        self.assertTrue(result['success'])
        self.assertIn('configure your DNS provider', result['message'])
        self.assertIn('lincoln.example.edu', logs.output[0])

    @override_settings(SUBDOMAIN_DNS_PROVISIONER='schools.tests.RecordingProvisioner')
    def test_provisioner_is_selected_by_setting(self):
        self.assertIsInstance(get_dns_provisioner(), RecordingProvisioner)

    def test_create_dns_records_reports_full_domain(self):
        service = make_service()

        result = service.create_dns_records('lincoln')

        self.assertEqual(result['full_domain'], 'lincoln.example.edu')
        self.assertTrue(result['success'])

"""
Тесты API поддоменов: регистрация школы, проверка имени, super admin эндпоинты.

Запуск: python manage.py test schools.tests_api -v2
"""
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import override_settings
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from schools.dns import NetworkProbe
from schools.models import School

User = get_user_model()


@override_settings(
    SCHOOLS_MAIN_DOMAIN='example.edu',
    APP_ENV='development',
    SUBDOMAIN_DNS_PROVISIONER='schools.dns.LoggingDnsProvisioner',
)
class SubdomainApiTestBase(APITestCase):

    def setUp(self):
        # Без сети: имя резолвится, сервер отвечает
        resolve = patch.object(NetworkProbe, 'resolve', return_value='203.0.113.10')
        head = patch.object(NetworkProbe, 'head_request', return_value=True)
        self.mock_resolve = resolve.start()
        self.mock_head = head.start()
        self.addCleanup(resolve.stop)
        self.addCleanup(head.stop)


class SchoolRegistrationApiTests(SubdomainApiTestBase):

    def setUp(self):
        super().setUp()
        self.url = reverse('school-registration')

    def test_registration_assigns_generated_subdomain(self):
        response = self.client.post(self.url, {
            'name': 'Springfield Elementary',
            'email': 'office@springfield.edu',
            'phone': '+15551234567',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['school']['domain'], 'springfield-elementary')
        self.assertEqual(
            response.data['subdomain']['full_url'],
            'http://springfield-elementary.example.edu',
        )
        self.assertTrue(response.data['subdomain']['accessible'])

        school = School.objects.get(name='Springfield Elementary')
        self.assertEqual(school.domain, 'springfield-elementary')

    def test_registration_with_desired_domain(self):
        response = self.client.post(self.url, {
            'name': 'Springfield Elementary',
            'email': 'office@springfield.edu',
            'domain': 'Springfield',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['subdomain']['domain'], 'springfield')

    def test_taken_domain_rolls_back_school(self):
        School.objects.create(name='Springfield', domain='springfield')

        response = self.client.post(self.url, {
            'name': 'Springfield Two',
            'email': 'office@springfield2.edu',
            'domain': 'springfield',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['subdomain']['reason'], 'domain_taken')
        self.assertEqual(len(response.data['subdomain']['suggestions']), 5)
        self.assertFalse(School.objects.filter(name='Springfield Two').exists())
        self.assertEqual(School.objects.count(), 1)

    def test_reserved_domain_rejected(self):
        response = self.client.post(self.url, {
            'name': 'Admin Academy',
            'email': 'office@admin-academy.edu',
            'domain': 'admin',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['subdomain']['reason'], 'reserved')
        self.assertFalse(School.objects.exists())

    def test_email_is_required(self):
        response = self.client.post(self.url, {'name': 'No Email School'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('email', response.data)
        self.assertFalse(School.objects.exists())

    def test_network_checks_run_after_registration_transaction(self):
        baseline = len(connection.savepoint_ids)
        depth = {}

        def resolve(hostname, timeout):
            depth['resolve'] = len(connection.savepoint_ids)
            return '203.0.113.10'

        self.mock_resolve.side_effect = resolve

        response = self.client.post(self.url, {
            'name': 'Springfield Elementary',
            'email': 'office@springfield.edu',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(depth['resolve'], baseline)

    def test_rejected_registration_makes_no_network_calls(self):
        self.client.post(self.url, {
            'name': 'Admin Academy',
            'email': 'office@admin-academy.edu',
            'domain': 'admin',
        }, format='json')

        self.mock_resolve.assert_not_called()
        self.mock_head.assert_not_called()


class SubdomainAvailabilityApiTests(SubdomainApiTestBase):

    def setUp(self):
        super().setUp()
        self.url = reverse('subdomain-availability')
        School.objects.create(name='Springfield', domain='springfield')

    def test_available_domain(self):
        response = self.client.get(self.url, {'domain': 'shelbyville'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['available'])
        self.assertEqual(response.data['full_url'], 'http://shelbyville.example.edu')

    def test_taken_domain_is_lowercased_and_gets_suggestions(self):
        response = self.client.get(self.url, {'domain': 'Springfield'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['domain'], 'springfield')
        self.assertFalse(response.data['available'])
        self.assertEqual(response.data['suggestions'][0], 'springfield1')

    def test_invalid_domain_reports_reason(self):
        response = self.client.get(self.url, {'domain': 'foo--bar'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['valid'])
        self.assertFalse(response.data['available'])
        self.assertEqual(response.data['reason'], 'consecutive_hyphens')

    def test_domain_parameter_required(self):
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_availability_check_does_not_probe_network(self):
        self.client.get(self.url, {'domain': 'shelbyville'})
        self.mock_resolve.assert_not_called()


class SuperAdminSubdomainApiTests(SubdomainApiTestBase):

    @classmethod
    def setUpTestData(cls):
        cls.school = School.objects.create(name='Lincoln High')
        cls.other = School.objects.create(name='Roosevelt', domain='roosevelt')
        cls.super_admin = User.objects.create_user(
            email='root@platform.test', password='pass', role=User.Role.SUPER_ADMIN,
        )
        cls.school_admin = User.objects.create_user(
            email='admin@lincoln.test', password='pass',
            role=User.Role.ADMIN, school=cls.school,
        )

    def test_assign_generated_subdomain(self):
        self.client.force_authenticate(self.super_admin)

        response = self.client.post(
            reverse('school-subdomain', args=[self.school.pk]), {}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['domain'], 'lincoln-high')
        self.school.refresh_from_db()
        self.assertEqual(self.school.domain, 'lincoln-high')

    def test_assign_taken_subdomain(self):
        self.client.force_authenticate(self.super_admin)

        response = self.client.post(
            reverse('school-subdomain', args=[self.school.pk]),
            {'domain': 'roosevelt'}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['data']['reason'], 'domain_taken')

    def test_unknown_school_returns_404(self):
        self.client.force_authenticate(self.super_admin)

        response = self.client.post(reverse('school-subdomain', args=[99999]), {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_school_admin_forbidden(self):
        self.client.force_authenticate(self.school_admin)

        response = self.client.post(
            reverse('school-subdomain', args=[self.school.pk]), {}, format='json',
        )

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.school.refresh_from_db()
        self.assertIsNone(self.school.domain)

    def test_anonymous_rejected(self):
        response = self.client.get(reverse('subdomain-health-all'))
        self.assertIn(response.status_code, (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN))

    def test_single_school_health(self):
        self.client.force_authenticate(self.super_admin)

        response = self.client.get(reverse('school-subdomain-health', args=[self.other.pk]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data']['status'], 'healthy')
        self.assertEqual(response.data['data']['full_url'], 'http://roosevelt.example.edu')

    def test_single_school_health_not_configured(self):
        self.client.force_authenticate(self.super_admin)

        response = self.client.get(reverse('school-subdomain-health', args=[self.school.pk]))

        self.assertEqual(response.data['data']['status'], 'not_configured')
        self.mock_resolve.assert_not_called()

    def test_all_health_lists_only_schools_with_domain(self):
        self.mock_head.return_value = False
        self.client.force_authenticate(self.super_admin)

        response = self.client.get(reverse('subdomain-health-all'))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['success'])
        self.assertEqual(len(response.data['data']), 1)
        item = response.data['data'][0]
        self.assertEqual(item['school_id'], self.other.pk)
        self.assertEqual(item['school_name'], 'Roosevelt')
        self.assertEqual(item['health']['status'], 'unhealthy')

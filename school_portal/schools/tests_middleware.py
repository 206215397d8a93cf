"""
Тесты SubdomainAccessMiddleware: пользователь школы A не работает на поддомене школы B.

Запуск: python manage.py test schools.tests_middleware -v2
"""
from unittest.mock import MagicMock

from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.contrib.messages.storage.fallback import FallbackStorage
from django.contrib.sessions.middleware import SessionMiddleware
from django.http import HttpResponse
from django.test import RequestFactory, TestCase, override_settings

from schools.middleware import ACCESS_DENIED_MESSAGE, SubdomainAccessMiddleware
from schools.models import School

User = get_user_model()


@override_settings(ALLOWED_HOSTS=['*'], LOGIN_URL='/admin/login/', SCHOOLS_MAIN_DOMAIN='example.edu')
class SubdomainAccessMiddlewareTests(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.springfield = School.objects.create(name='Springfield', domain='springfield')
        cls.shelbyville = School.objects.create(name='Shelbyville', domain='shelbyville')
        cls.teacher = User.objects.create_user(
            email='teacher@springfield.test', password='pass',
            role=User.Role.TEACHER, school=cls.springfield,
        )
        cls.super_admin = User.objects.create_user(
            email='root@platform.test', password='pass', role=User.Role.SUPER_ADMIN,
        )

    def setUp(self):
        self.factory = RequestFactory()
        self.get_response = MagicMock(return_value=HttpResponse('ok'))
        self.middleware = SubdomainAccessMiddleware(self.get_response)

    def _request(self, host, user, path='/dashboard/'):
        request = self.factory.get(path, HTTP_HOST=host)
        SessionMiddleware(lambda r: None).process_request(request)
        request.session.save()
        request._messages = FallbackStorage(request)
        request.user = user
        return request

    def test_anonymous_passes_through(self):
        request = self._request('shelbyville.example.edu', AnonymousUser())

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(request.school)
        self.get_response.assert_called_once_with(request)

    def test_user_on_own_school_subdomain(self):
        request = self._request('springfield.example.edu', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(request.school, self.springfield)

    def test_host_with_port_and_uppercase(self):
        request = self._request('Springfield.Example.edu:8000', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertEqual(request.school, self.springfield)

    def test_foreign_subdomain_logs_out_and_redirects(self):
        request = self._request('shelbyville.example.edu', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 302)
        self.assertEqual(response['Location'], '/admin/login/')
        self.get_response.assert_not_called()
        self.assertFalse(request.user.is_authenticated)
        self.assertEqual(
            [str(m) for m in request._messages],
            [ACCESS_DENIED_MESSAGE],
        )

    def test_foreign_subdomain_api_gets_json_403(self):
        request = self._request('shelbyville.example.edu', self.teacher, path='/api/schools/subdomain-health/')

        response = self.middleware(request)

        self.assertEqual(response.status_code, 403)
        self.assertIn(ACCESS_DENIED_MESSAGE, response.content.decode())
        self.assertFalse(request.user.is_authenticated)

    def test_super_admin_passes_any_subdomain(self):
        request = self._request('shelbyville.example.edu', self.super_admin)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertTrue(request.user.is_authenticated)

    def test_django_superuser_is_super_admin(self):
        superuser = User.objects.create_superuser(email='su@platform.test', password='pass')
        request = self._request('shelbyville.example.edu', superuser)

        self.assertEqual(self.middleware(request).status_code, 200)

    def test_unknown_subdomain_is_not_blocked(self):
        request = self._request('unknown.example.edu', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(request.school)

    def test_user_without_school_denied_on_school_subdomain(self):
        orphan = User.objects.create_user(email='orphan@platform.test', password='pass')
        request = self._request('springfield.example.edu', orphan)

        self.assertEqual(self.middleware(request).status_code, 302)

    def test_bare_main_domain_is_not_blocked(self):
        School.objects.create(name='Example Academy', domain='example')
        request = self._request('example.edu', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(request.school)
        self.assertTrue(request.user.is_authenticated)

    def test_host_outside_main_domain_is_ignored(self):
        request = self._request('shelbyville.other-domain.org', self.teacher)

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertIsNone(request.school)

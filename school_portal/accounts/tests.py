from django.contrib.auth import get_user_model
from django.test import TestCase

from schools.models import School

User = get_user_model()


class CustomUserTests(TestCase):

    def test_email_is_login(self):
        user = User.objects.create_user(email='Teacher@Example.COM', password='pass')

        self.assertEqual(user.email, 'Teacher@example.com')
        self.assertTrue(user.check_password('pass'))
        self.assertEqual(user.role, User.Role.STUDENT)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='', password='pass')

    def test_superuser_is_super_admin(self):
        user = User.objects.create_superuser(email='root@example.com', password='pass')

        self.assertEqual(user.role, User.Role.SUPER_ADMIN)
        self.assertTrue(user.is_super_admin)

    def test_school_admin_is_not_super_admin(self):
        school = School.objects.create(name='Lincoln', domain='lincoln')
        user = User.objects.create_user(
            email='admin@lincoln.test', password='pass', role=User.Role.ADMIN, school=school,
        )

        self.assertFalse(user.is_super_admin)
        self.assertEqual(list(school.users.all()), [user])

    def test_deleting_school_keeps_users(self):
        school = School.objects.create(name='Lincoln')
        user = User.objects.create_user(email='t@lincoln.test', password='pass', school=school)

        school.delete()
        user.refresh_from_db()

        self.assertIsNone(user.school)

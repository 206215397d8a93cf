"""
Назначить школе поддомен из консоли.

  python manage.py assign_subdomain 42                       # из названия школы
  python manage.py assign_subdomain 42 --domain=springfield
"""

from django.core.management.base import BaseCommand, CommandError

from schools.models import School
from schools.subdomain_service import SubdomainService


class Command(BaseCommand):
    help = 'Assign a subdomain to a school'

    def add_arguments(self, parser):
        parser.add_argument('school_id', type=int)
        parser.add_argument(
            '--domain',
            default=None,
            help='Desired subdomain (generated from the school name if omitted)',
        )

    def handle(self, *args, **options):
        try:
            school = School.objects.get(pk=options['school_id'])
        except School.DoesNotExist:
            raise CommandError(f"School with ID {options['school_id']} not found.")

        result = SubdomainService().create_subdomain(school, options['domain'])

        if not result['valid']:
            suggestions = result.get('suggestions')
            if suggestions:
                self.stdout.write(f"Suggestions: {', '.join(suggestions)}")
            raise CommandError(result['message'])

        self.stdout.write(self.style.SUCCESS(f"✅ {school.name}: {result['full_url']}"))
        self.stdout.write(f"   DNS: {result['dns_message']}")
        self.stdout.write(f"   Accessibility: {result['accessibility_message']}")

"""
Management-команда для проверки поддоменов школ.

Использование:
  # Проверить все школы с поддоменом:
  python manage.py check_subdomains

  # Только одну школу:
  python manage.py check_subdomains --school-id=42

  # Попытаться починить недоступные поддомены (повторное назначение + DNS):
  python manage.py check_subdomains --fix
"""

from django.core.management.base import BaseCommand, CommandError

from schools.models import School
from schools.subdomain_service import SubdomainService

STATUS_ICONS = {
    'healthy': '✅',
    'unhealthy': '❌',
    'not_configured': '⚠️',
}


class Command(BaseCommand):
    help = 'Check the health of all subdomains'

    def add_arguments(self, parser):
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Attempt to fix broken subdomains',
        )
        parser.add_argument(
            '--school-id',
            type=int,
            default=None,
            help='Check specific school only',
        )
        parser.add_argument(
            '--workers',
            type=int,
            default=None,
            help='Parallel probes for the bulk check (default: SUBDOMAIN_HEALTH_MAX_WORKERS)',
        )

    def handle(self, *args, **options):
        self.service = SubdomainService()
        should_fix = options['fix']
        school_id = options['school_id']

        self.stdout.write(self.style.SUCCESS('🔍 Checking subdomain health...'))

        if school_id:
            try:
                school = School.objects.get(pk=school_id)
            except School.DoesNotExist:
                raise CommandError(f'School with ID {school_id} not found.')
            self._check_single_school(school, should_fix)
        else:
            self._check_all_schools(should_fix, options['workers'])

    def _check_single_school(self, school, should_fix):
        self.stdout.write(f'\n📋 Checking school: {school.name} (ID: {school.id})')

        health = self.service.check_subdomain_health(school)
        self._display_health_result(health, school.name)

        if should_fix and health['status'] == 'unhealthy':
            self._attempt_fix(school)

    def _check_all_schools(self, should_fix, workers):
        results = self.service.get_all_subdomain_health(max_workers=workers)

        if not results:
            self.stdout.write(self.style.WARNING('No schools with domains found.'))
            return

        self.stdout.write(f'\n📊 Found {len(results)} schools with domains')

        counts = {'healthy': 0, 'unhealthy': 0, 'not_configured': 0}

        for item in results:
            health = item['health']
            self._display_health_result(health, item['school_name'])
            counts[health['status']] += 1

            if should_fix and health['status'] == 'unhealthy':
                school = School.objects.filter(pk=item['school_id']).first()
                if school is not None:
                    self._attempt_fix(school)

        self._display_summary(counts, should_fix)

    def _display_health_result(self, health, school_name):
        icon = STATUS_ICONS.get(health['status'], '❓')

        self.stdout.write(f'  {icon} {school_name}')
        self.stdout.write(f"     Domain: {health.get('domain') or 'Not set'}")
        self.stdout.write(f"     URL: {health.get('full_url') or 'N/A'}")
        self.stdout.write(f"     Status: {health['message']}")

        if health.get('accessible') is False:
            self.stdout.write(self.style.WARNING('     ⚠️  Subdomain is not accessible'))

        self.stdout.write('')

    def _display_summary(self, counts, should_fix):
        self.stdout.write(self.style.SUCCESS('\n📈 Summary:'))
        self.stdout.write(f"  ✅ Healthy: {counts['healthy']}")
        self.stdout.write(f"  ❌ Unhealthy: {counts['unhealthy']}")
        self.stdout.write(f"  ⚠️  Not configured: {counts['not_configured']}")

        if counts['unhealthy'] and not should_fix:
            self.stdout.write(self.style.WARNING('\n💡 Run with --fix option to attempt automatic fixes'))

    def _attempt_fix(self, school):
        self.stdout.write(f'  🔧 Attempting to fix subdomain for {school.name}...')

        # Повторно назначаем тот же поддомен: запись в БД + запрос DNS
        result = self.service.create_subdomain(school, school.domain)

        if result['valid']:
            self.stdout.write(self.style.SUCCESS('  ✅ Subdomain fixed successfully'))
            self.stdout.write(f"     New URL: {result['full_url']}")
        else:
            self.stderr.write(self.style.ERROR(f"  ❌ Failed to fix subdomain: {result['message']}"))

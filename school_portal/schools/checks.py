"""
Django System Checks для настроек поддоменов.

Запускаются при:
  - python manage.py check
  - python manage.py runserver (каждый рестарт)
  - Деплое
"""
from django.conf import settings
from django.core.checks import Error, Warning, register

PLACEHOLDER_MAIN_DOMAIN = 'yourdomain.com'


@register()
def check_subdomain_settings(app_configs, **kwargs):
    errors = []

    main_domain = getattr(settings, 'SCHOOLS_MAIN_DOMAIN', PLACEHOLDER_MAIN_DOMAIN)
    if getattr(settings, 'APP_ENV', '') == 'production' and main_domain == PLACEHOLDER_MAIN_DOMAIN:
        errors.append(
            Warning(
                'SCHOOLS_MAIN_DOMAIN is still the placeholder "yourdomain.com" in production.',
                hint='Set the MAIN_DOMAIN environment variable to the real base domain.',
                id='schools.W001',
            )
        )

    timeout = getattr(settings, 'SUBDOMAIN_PROBE_TIMEOUT', 5)
    if not timeout or timeout <= 0:
        errors.append(
            Error(
                'SUBDOMAIN_PROBE_TIMEOUT must be a positive number of seconds.',
                hint='Subdomain probes run inside requests and must be bounded.',
                id='schools.E001',
            )
        )

    workers = getattr(settings, 'SUBDOMAIN_HEALTH_MAX_WORKERS', 8)
    if not isinstance(workers, int) or workers < 1:
        errors.append(
            Error(
                'SUBDOMAIN_HEALTH_MAX_WORKERS must be a positive integer.',
                id='schools.E002',
            )
        )

    return errors

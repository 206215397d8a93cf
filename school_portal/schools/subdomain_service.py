"""
Сервис поддоменов школ.

Жизненный цикл поддомена:
    generate_domain → validate_domain → is_domain_available → запись в School.domain
    → create_dns_records → test_subdomain_accessibility

Все проверки возвращают dict с полями valid/message (а не исключения),
чтобы view и management-команды могли отдать результат как есть.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from django.utils.text import slugify

from .dns import get_dns_provisioner, get_network_probe
from .models import School

logger = logging.getLogger(__name__)

MIN_DOMAIN_LENGTH = 3
MAX_DOMAIN_LENGTH = 63  # ограничение DNS на одну метку

RESERVED_SUBDOMAINS = frozenset({
    'www', 'mail', 'ftp', 'admin', 'api', 'app', 'test', 'dev', 'staging',
})

DOMAIN_FORMAT_RE = re.compile(r'[a-z0-9-]+')

# Префикс для слишком коротких имён: "AB" → "schoolab"
SHORT_DOMAIN_PREFIX = 'school'


class SubdomainError:
    """Коды отказа (поле 'reason' в результате)."""
    INVALID_FORMAT = 'invalid_format'
    RESERVED = 'reserved'
    CONSECUTIVE_HYPHENS = 'consecutive_hyphens'
    EDGE_HYPHEN = 'edge_hyphen'
    DOMAIN_TAKEN = 'domain_taken'
    PERSISTENCE_FAILURE = 'persistence_failure'
    DNS_PROVISIONING_FAILURE = 'dns_provisioning_failure'


def _invalid(reason, message):
    return {'valid': False, 'reason': reason, 'message': message}


def generate_domain(school_name: str) -> str:
    """Поддомен из названия школы: "Springfield Elementary" → "springfield-elementary"."""
    domain = slugify(school_name.replace('_', ' '))
    domain = re.sub(r'[^a-z0-9-]', '', domain)
    # удалённые символы могли оставить "--" между словами
    domain = re.sub(r'-{2,}', '-', domain).strip('-')

    # Поддомен не начинается с цифр
    domain = re.sub(r'^[0-9-]+', '', domain)

    if len(domain) < MIN_DOMAIN_LENGTH:
        domain = SHORT_DOMAIN_PREFIX + domain

    if len(domain) > MAX_DOMAIN_LENGTH:
        domain = domain[:MAX_DOMAIN_LENGTH].rstrip('-')

    return domain


def validate_domain(domain: str) -> dict:
    """
    Проверка формата поддомена. Возвращает первую найденную ошибку.

    Порядок проверок: формат/длина → зарезервированные слова →
    двойной дефис → дефис по краям.
    """
    if (
        not isinstance(domain, str)
        or not MIN_DOMAIN_LENGTH <= len(domain) <= MAX_DOMAIN_LENGTH
        or not DOMAIN_FORMAT_RE.fullmatch(domain)
    ):
        return _invalid(
            SubdomainError.INVALID_FORMAT,
            'Invalid domain format. Use 3-63 lowercase letters, numbers, and hyphens.',
        )

    if domain.lower() in RESERVED_SUBDOMAINS:
        return _invalid(
            SubdomainError.RESERVED,
            'Domain contains reserved words that cannot be used.',
        )

    if '--' in domain:
        return _invalid(
            SubdomainError.CONSECUTIVE_HYPHENS,
            'Domain cannot contain consecutive hyphens.',
        )

    if domain.startswith('-') or domain.endswith('-'):
        return _invalid(
            SubdomainError.EDGE_HYPHEN,
            'Domain cannot start or end with a hyphen.',
        )

    return {'valid': True}


class SubdomainService:
    """Генерация, резервирование и проверка поддоменов школ."""

    def __init__(self, provisioner=None, probe=None, main_domain=None,
                 environment=None, timeout=None, max_workers=None):
        self.provisioner = provisioner or get_dns_provisioner()
        self.probe = probe or get_network_probe()
        self.main_domain = main_domain or getattr(settings, 'SCHOOLS_MAIN_DOMAIN', 'yourdomain.com')
        self.environment = environment or getattr(settings, 'APP_ENV', 'development')
        self.timeout = timeout if timeout is not None else getattr(settings, 'SUBDOMAIN_PROBE_TIMEOUT', 5)
        self.max_workers = max_workers or getattr(settings, 'SUBDOMAIN_HEALTH_MAX_WORKERS', 8)

    generate_domain = staticmethod(generate_domain)
    validate_domain = staticmethod(validate_domain)

    # ── Создание ─────────────────────────────────────────

    def create_subdomain(self, school: School, domain: str | None = None) -> dict:
        """
        Назначить школе поддомен.

        Args:
            school: School, которой назначается поддомен
            domain: желаемый поддомен; если не задан — генерируется из названия

        Returns:
            dict: при успехе {'valid': True, 'domain', 'full_url', 'dns_created',
            'dns_message', 'accessible', 'accessibility_message'},
            иначе {'valid': False, 'reason', 'message'[, 'suggestions']}
        """
        reservation = self.reserve_subdomain(school, domain)
        if not reservation['valid']:
            return reservation
        return self.provision_subdomain(school, reservation['domain'])

    def reserve_subdomain(self, school: School, domain: str | None = None) -> dict:
        """
        Только БД: нормализация, валидация, проверка и запись School.domain.

        Сети не касается, поэтому может выполняться внутри транзакции.
        Returns: {'valid': True, 'domain'} или тот же dict отказа, что и create_subdomain.
        """
        try:
            if domain:
                domain = domain.strip().lower()
            else:
                domain = self.generate_domain(school.name)

            validation = self.validate_domain(domain)
            if not validation['valid']:
                return validation

            if not self.is_domain_available(domain, exclude_school=school):
                return self._domain_taken(domain)

            if not self._save_domain(school, domain):
                return self._domain_taken(domain)

            return {'valid': True, 'domain': domain}

        except Exception as e:
            logger.exception(
                f'Subdomain creation failed: {e}',
                extra={'school_id': getattr(school, 'pk', None), 'domain': domain},
            )
            return _invalid(
                SubdomainError.PERSISTENCE_FAILURE,
                f'Failed to create subdomain: {e}',
            )

    def provision_subdomain(self, school: School, domain: str) -> dict:
        """DNS-запись и проверка доступности для уже записанного поддомена."""
        # DNS не откатывает назначение: поддомен уже за школой
        dns_result = self.create_dns_records(domain)
        accessibility = self.test_subdomain_accessibility(domain)

        logger.info(
            f'Subdomain {domain} assigned to school {school.pk} '
            f'(dns_created={dns_result["success"]}, accessible={accessibility["accessible"]})'
        )

        return {
            'valid': True,
            'domain': domain,
            'full_url': self.get_full_url(domain),
            'dns_created': dns_result['success'],
            'dns_message': dns_result['message'],
            'accessible': accessibility['accessible'],
            'accessibility_message': accessibility['message'],
        }

    def _save_domain(self, school, domain):
        """Единственная точка записи. False — unique constraint: домен уже занят."""
        try:
            with transaction.atomic():
                updated = School.objects.filter(pk=school.pk).update(
                    domain=domain, updated_at=timezone.now(),
                )
        except IntegrityError:
            logger.warning(f'Subdomain {domain} was taken concurrently (school {school.pk})')
            return False

        if not updated:
            raise School.DoesNotExist(f'School {school.pk} does not exist')

        school.domain = domain
        return True

    def _domain_taken(self, domain):
        return {
            'valid': False,
            'reason': SubdomainError.DOMAIN_TAKEN,
            'message': 'Domain is already taken',
            'suggestions': self.generate_domain_suggestions(domain),
        }

    # ── Доступность имени ────────────────────────────────

    def is_domain_available(self, domain: str, exclude_school: School | None = None) -> bool:
        """True, если ни одна школа (кроме exclude_school) не использует domain."""
        qs = School.objects.filter(domain=domain)
        if exclude_school is not None and exclude_school.pk is not None:
            qs = qs.exclude(pk=exclude_school.pk)
        return not qs.exists()

    def generate_domain_suggestions(self, base_domain: str, count: int | None = None) -> list[str]:
        """Свободные варианты base1, base2, ... (не длиннее 63 символов)."""
        if count is None:
            count = getattr(settings, 'SUBDOMAIN_SUGGESTION_COUNT', 5)

        suggestions = []
        counter = 1
        while len(suggestions) < count:
            suffix = str(counter)
            suggestion = base_domain[:MAX_DOMAIN_LENGTH - len(suffix)] + suffix
            if self.is_domain_available(suggestion):
                suggestions.append(suggestion)
            counter += 1

        return suggestions

    # ── DNS ──────────────────────────────────────────────

    def create_dns_records(self, domain: str) -> dict:
        """Запросить DNS-запись у провайдера. Ошибка не фатальна для назначения."""
        full_domain = f'{domain}.{self.main_domain}'
        try:
            result = self.provisioner.provision(full_domain)
            return {
                'success': bool(result.get('success')),
                'message': result.get('message', ''),
                'full_domain': full_domain,
            }
        except Exception as e:
            logger.error(f'DNS record creation failed for {full_domain}: {e}')
            return {
                'success': False,
                'reason': SubdomainError.DNS_PROVISIONING_FAILURE,
                'message': f'Failed to create DNS records: {e}',
                'full_domain': full_domain,
            }

    # ── Доступность поддомена ────────────────────────────

    def get_full_url(self, domain: str) -> str:
        protocol = 'https' if self.environment == 'production' else 'http'
        return f'{protocol}://{domain}.{self.main_domain}'

    def test_subdomain_accessibility(self, domain: str) -> dict:
        """
        Резолв имени + HEAD-запрос (таймаут self.timeout на каждый шаг).

        Никогда не бросает исключений: любая ошибка → accessible=False.
        """
        try:
            full_domain = f'{domain}.{self.main_domain}'
            if not self.probe.resolve(full_domain, self.timeout):
                return {
                    'accessible': False,
                    'message': 'DNS resolution failed. Subdomain may not be configured yet.',
                }

            accessible = self.probe.head_request(self.get_full_url(domain), self.timeout)
            return {
                'accessible': accessible,
                'message': 'Subdomain is accessible' if accessible else 'Subdomain is not responding',
            }
        except Exception as e:
            logger.warning(f'Accessibility test failed for {domain}: {e}')
            return {
                'accessible': False,
                'message': f'Accessibility test failed: {e}',
            }

    # ── Health ───────────────────────────────────────────

    def check_subdomain_health(self, school: School) -> dict:
        if not school.domain:
            return {
                'status': 'not_configured',
                'message': 'No domain configured for this school',
            }

        accessibility = self.test_subdomain_accessibility(school.domain)

        return {
            'status': 'healthy' if accessibility['accessible'] else 'unhealthy',
            'domain': school.domain,
            'full_url': self.get_full_url(school.domain),
            'accessible': accessibility['accessible'],
            'message': accessibility['message'],
        }

    def get_all_subdomain_health(self, max_workers: int | None = None) -> list[dict]:
        """
        Health всех школ с поддоменом, в порядке id.

        Школы читаются из БД один раз в текущем потоке; сетевые проверки
        идут параллельно в ограниченном пуле и БД не трогают.
        """
        schools = list(
            School.objects.filter(domain__isnull=False).order_by('id').only('id', 'name', 'domain')
        )
        if not schools:
            return []

        workers = max(1, min(max_workers or self.max_workers, len(schools)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix='subdomain_health') as executor:
            healths = list(executor.map(self.check_subdomain_health, schools))

        return [
            {
                'school_id': school.id,
                'school_name': school.name,
                'health': health,
            }
            for school, health in zip(schools, healths)
        ]

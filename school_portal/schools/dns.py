"""
DNS и сетевые проверки поддоменов.

Два сменных backend'а (выбираются в settings по dotted path, как EMAIL_BACKEND):

    SUBDOMAIN_DNS_PROVISIONER — создание DNS-записи для <subdomain>.<main_domain>
    SUBDOMAIN_NETWORK_PROBE   — резолв имени и HEAD-запрос с жёстким таймаутом

Интеграция с конкретным DNS-провайдером (Cloudflare, Route53, ...) —
отдельный класс-наследник DnsProvisioner, оркестрацию менять не нужно.
"""
import logging
import socket
import threading

import requests
from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class DnsProvisioner:
    """Базовый backend создания DNS-записей."""

    def provision(self, fqdn):
        """
        Создать DNS-запись для fqdn.

        Returns:
            dict: {'success': bool, 'message': str}
        """
        raise NotImplementedError


class LoggingDnsProvisioner(DnsProvisioner):
    """Только фиксирует намерение в логе. Записи настраиваются вручную."""

    def provision(self, fqdn):
        logger.info(f'DNS record creation requested for {fqdn}')
        return {
            'success': True,
            'message': 'DNS record creation initiated. Please configure your DNS provider.',
        }


class NetworkProbe:
    """Резолв + HEAD. Оба вызова ограничены таймаутом и не бросают исключений наружу."""

    def resolve(self, hostname, timeout):
        """
        Вернуть IP-адрес или None, если имя не резолвится за timeout секунд.

        Каждый резолв в своём daemon-потоке: таймаут отсчитывается с начала
        резолва, а зависший gethostbyname не занимает место в общем пуле.
        """
        outcome = {}

        def lookup():
            try:
                outcome['address'] = socket.gethostbyname(hostname)
            except (OSError, UnicodeError) as e:
                outcome['error'] = e

        thread = threading.Thread(target=lookup, name=f'resolve:{hostname}', daemon=True)
        thread.start()
        thread.join(timeout)

        if thread.is_alive():
            logger.warning(f'DNS resolution timed out after {timeout}s for {hostname}')
            return None
        if 'error' in outcome:
            logger.debug(f'DNS resolution failed for {hostname}: {outcome["error"]}')
            return None
        return outcome.get('address')

    def head_request(self, url, timeout):
        """True, если сервер ответил (любой HTTP-статус)."""
        try:
            response = requests.head(url, timeout=timeout, allow_redirects=False)
        except requests.RequestException as e:
            logger.debug(f'HEAD {url} failed: {e}')
            return False
        logger.debug(f'HEAD {url} -> {response.status_code}')
        return True


def get_dns_provisioner():
    return import_string(getattr(
        settings, 'SUBDOMAIN_DNS_PROVISIONER', 'schools.dns.LoggingDnsProvisioner'
    ))()


def get_network_probe():
    return import_string(getattr(
        settings, 'SUBDOMAIN_NETWORK_PROBE', 'schools.dns.NetworkProbe'
    ))()

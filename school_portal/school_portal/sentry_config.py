"""
Sentry Integration для Django.

Настройка:
1. Добавить в окружение: SENTRY_DSN=https://xxx@xxx.ingest.sentry.io/xxx
2. init_sentry() вызывается в конце settings.py

Без SENTRY_DSN инициализация пропускается.
"""
import os
import logging

import sentry_sdk
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)


def init_sentry():
    """
    Инициализирует Sentry SDK.
    Возвращает True, если SDK был включён.
    """
    sentry_dsn = os.environ.get('SENTRY_DSN', '')

    if not sentry_dsn:
        logger.info("Sentry: DSN not configured, skipping initialization")
        return False

    environment = os.environ.get('DJANGO_ENV', 'production')

    sentry_sdk.init(
        dsn=sentry_dsn,
        integrations=[
            DjangoIntegration(transaction_style='url'),
            LoggingIntegration(
                level=logging.INFO,        # breadcrumbs
                event_level=logging.ERROR  # события
            ),
        ],
        environment=environment,
        release=os.environ.get('APP_VERSION', 'unknown'),
        traces_sample_rate=float(os.environ.get('SENTRY_TRACES_SAMPLE_RATE', '0.0')),
        send_default_pii=False,
        ignore_errors=[
            'django.security.DisallowedHost',
        ],
        before_send=before_send_callback,
    )

    logger.info(f"Sentry: initialized for {environment} environment")
    return True


def before_send_callback(event, hint):
    """
    Фильтрация событий перед отправкой в Sentry.
    """
    if 'exc_info' in hint:
        exc_type, _, _ = hint['exc_info']
        # 404 и обрыв соединения клиентом — не ошибки приложения
        if exc_type.__name__ == 'Http404':
            return None
        if 'ConnectionResetError' in str(exc_type):
            return None

    return event

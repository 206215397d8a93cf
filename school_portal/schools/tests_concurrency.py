"""
Тесты одновременного назначения одного поддомена разным школам.

Проверка доступности и запись не атомарны вместе: гонку разрешает
unique constraint на School.domain. Нужны реальные транзакции в разных
соединениях, поэтому TransactionTestCase и только PostgreSQL
(SQLite блокирует БД целиком на запись).

Запуск:
    POSTGRES_DB=school_portal_test pytest schools/tests_concurrency.py -v -s
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from threading import Barrier
from unittest import skipUnless
from unittest.mock import MagicMock

from django.db import connection
from django.test import TransactionTestCase

from schools.models import School
from schools.subdomain_service import SubdomainError, SubdomainService

logger = logging.getLogger(__name__)


@skipUnless(connection.vendor == 'postgresql', 'Нужен PostgreSQL')
class ConcurrentSubdomainAssignmentTests(TransactionTestCase):

    THREADS = 5

    def setUp(self):
        self.schools = [
            School.objects.create(name=f'Race School {i}') for i in range(self.THREADS)
        ]
        probe = MagicMock()
        probe.resolve.return_value = None
        self.service = SubdomainService(
            provisioner=MagicMock(**{'provision.return_value': {'success': True, 'message': ''}}),
            probe=probe,
            main_domain='example.edu',
        )

    def _assign(self, school, barrier):
        try:
            barrier.wait(timeout=10)
            return self.service.create_subdomain(school, 'contested')
        finally:
            connection.close()

    def test_only_one_school_gets_contested_domain(self):
        barrier = Barrier(self.THREADS)

        with ThreadPoolExecutor(max_workers=self.THREADS) as executor:
            futures = [executor.submit(self._assign, school, barrier) for school in self.schools]
            results = [f.result() for f in futures]

        winners = [r for r in results if r['valid']]
        losers = [r for r in results if not r['valid']]
        logger.info(f'winners={len(winners)} losers={len(losers)}')

        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), self.THREADS - 1)
        for result in losers:
            self.assertEqual(result['reason'], SubdomainError.DOMAIN_TAKEN)
            self.assertTrue(result['suggestions'])
        self.assertEqual(School.objects.filter(domain='contested').count(), 1)

"""
Schools app — школы (tenants) и их поддомены.

Каждая школа получает поддомен: springfield.yourdomain.com → School(domain='springfield')

    School.domain        — уникальный поддомен (или NULL, пока не назначен)
    SubdomainService     — генерация, валидация, резервирование, проверка доступности
    SubdomainAccessMiddleware — пользователь видит только поддомен своей школы
"""

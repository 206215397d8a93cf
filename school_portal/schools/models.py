"""
School — tenant платформы.

Поддомен хранится в School.domain. Уникальность гарантирует БД
(unique constraint): это единственный надёжный сигнал "домен занят"
при одновременных запросах.
"""

from django.db import models


class School(models.Model):
    """Школа (организация). Владеет не более чем одним поддоменом."""

    name = models.CharField(max_length=200, help_text='Название школы')
    domain = models.CharField(
        max_length=63, unique=True, null=True, blank=True,
        help_text='Поддомен школы (без основного домена)',
    )

    # === Контакты ===
    email = models.EmailField(blank=True, help_text='Email поддержки')
    phone = models.CharField(max_length=16, blank=True, help_text='Телефон поддержки')
    address = models.CharField(max_length=255, blank=True, help_text='Адрес')
    tagline = models.CharField(max_length=255, blank=True, help_text='Слоган')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']
        verbose_name = 'Школа'
        verbose_name_plural = 'Школы'

    def __str__(self):
        if self.domain:
            return f'{self.name} ({self.domain})'
        return self.name

"""
SubdomainAccessMiddleware — пользователь работает только на поддомене своей школы.

Логика:
  1. Аноним                       → пропускаем
  2. Super Admin                  → пропускаем (видит все школы)
  3. springfield.yourdomain.com   → School(domain='springfield')
     (берётся метка перед SCHOOLS_MAIN_DOMAIN)
  4. Школа найдена и это не школа пользователя → logout + редирект на LOGIN_URL
     (для /api/ — JSON 403)

Неизвестный поддомен (или голый основной домен) не блокируется.
Ставить в MIDDLEWARE ПОСЛЕ AuthenticationMiddleware.
"""

import logging

from django.conf import settings as django_settings
from django.contrib import messages
from django.contrib.auth import logout
from django.http import HttpResponseRedirect, JsonResponse

from .models import School

logger = logging.getLogger(__name__)

ACCESS_DENIED_MESSAGE = 'You are not authorized to access this school domain.'


class SubdomainAccessMiddleware:
    """
    Ставит:
      - request.school = School, владеющая поддоменом из Host (или None)
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.school = None

        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return self.get_response(request)

        if getattr(user, 'is_super_admin', False):
            return self.get_response(request)

        subdomain = self._get_subdomain(request)
        school = School.objects.filter(domain=subdomain).first() if subdomain else None
        if school is None:
            return self.get_response(request)

        request.school = school

        if user.school_id != school.id:
            logger.warning(
                f'User {user.pk} (school {user.school_id}) denied on subdomain '
                f'"{subdomain}" of school {school.id}; logging out'
            )
            return self._deny(request)

        return self.get_response(request)

    def _get_subdomain(self, request):
        """
        springfield.yourdomain.com → 'springfield'.

        None для голого основного домена и чужих хостов.
        """
        host = request.get_host().split(':')[0].lower()
        suffix = '.' + getattr(django_settings, 'SCHOOLS_MAIN_DOMAIN', 'yourdomain.com').lower()
        if not host.endswith(suffix):
            return None
        return host[:-len(suffix)].split('.')[0] or None

    def _deny(self, request):
        is_api = request.path.startswith('/api/')

        # logout() сбрасывает сессию и меняет её ключ
        logout(request)

        if is_api:
            return JsonResponse({'detail': ACCESS_DENIED_MESSAGE}, status=403)

        messages.error(request, ACCESS_DENIED_MESSAGE, fail_silently=True)
        return HttpResponseRedirect(django_settings.LOGIN_URL)

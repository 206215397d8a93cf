"""
URL configuration for school_portal project.

    /admin/         — Django admin (школы, пользователи)
    /api/schools/   — регистрация школ и управление поддоменами
"""
from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def health(request):
    return JsonResponse({
        'status': 'ok',
        'service': 'school_portal',
    })


urlpatterns = [
    path('', health, name='root'),
    path('admin/', admin.site.urls),
    path('api/schools/', include('schools.urls')),
]

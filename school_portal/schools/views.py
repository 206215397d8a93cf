"""
API views для поддоменов школ.

Публичные (форма регистрации):
    POST /api/schools/registration/                 — создать школу + поддомен
    GET  /api/schools/subdomain-availability/?domain= — живая проверка имени

Super Admin:
    POST /api/schools/<id>/subdomain/               — назначить / пересоздать поддомен
    GET  /api/schools/<id>/subdomain-health/        — health одной школы
    GET  /api/schools/subdomain-health/             — health всех школ с поддоменом
"""

from django.db import transaction
from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import School
from .permissions import IsSuperAdmin
from .serializers import (
    SchoolRegistrationSerializer,
    SchoolSerializer,
    SubdomainAvailabilitySerializer,
    SubdomainRequestSerializer,
)
from .subdomain_service import SubdomainService


class SchoolRegistrationView(APIView):
    """
    POST /api/schools/registration/

    Школа создаётся только вместе с поддоменом: если поддомен отклонён,
    транзакция откатывается и в ответе 400 с причиной и подсказками.
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = SchoolRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        domain = serializer.validated_data.get('domain') or None

        service = SubdomainService()
        with transaction.atomic():
            school = serializer.save()
            reservation = service.reserve_subdomain(school, domain)
            if not reservation['valid']:
                transaction.set_rollback(True)

        if not reservation['valid']:
            return Response(
                {'success': False, 'subdomain': reservation},
                status=status.HTTP_400_BAD_REQUEST,
            )

        # DNS и проверка доступности уже после коммита
        result = service.provision_subdomain(school, reservation['domain'])

        return Response(
            {
                'success': True,
                'school': SchoolSerializer(school).data,
                'subdomain': result,
            },
            status=status.HTTP_201_CREATED,
        )


class SubdomainAvailabilityView(APIView):
    """
    GET /api/schools/subdomain-availability/?domain=springfield

    Ответ:
    {
        "domain": "springfield",
        "valid": true,
        "available": false,
        "message": "Domain is already taken",
        "suggestions": ["springfield1", ...]
    }
    """
    permission_classes = [AllowAny]

    def get(self, request):
        serializer = SubdomainAvailabilitySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        domain = serializer.validated_data['domain']

        service = SubdomainService()
        validation = service.validate_domain(domain)
        if not validation['valid']:
            return Response({'domain': domain, 'available': False, **validation})

        if not service.is_domain_available(domain):
            return Response({
                'domain': domain,
                'valid': True,
                'available': False,
                'message': 'Domain is already taken',
                'suggestions': service.generate_domain_suggestions(domain),
            })

        return Response({
            'domain': domain,
            'valid': True,
            'available': True,
            'message': 'Domain is available',
            'full_url': service.get_full_url(domain),
        })


class SchoolSubdomainView(APIView):
    """POST /api/schools/<id>/subdomain/  {"domain": "..."} (domain необязателен)"""
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def post(self, request, pk):
        school = get_object_or_404(School, pk=pk)
        serializer = SubdomainRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SubdomainService().create_subdomain(
            school, serializer.validated_data.get('domain') or None,
        )
        http_status = status.HTTP_200_OK if result['valid'] else status.HTTP_400_BAD_REQUEST
        return Response({'success': result['valid'], 'data': result}, status=http_status)


class SchoolSubdomainHealthView(APIView):
    """GET /api/schools/<id>/subdomain-health/"""
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def get(self, request, pk):
        school = get_object_or_404(School, pk=pk)
        health = SubdomainService().check_subdomain_health(school)
        return Response({'success': True, 'data': health})


class SubdomainHealthListView(APIView):
    """GET /api/schools/subdomain-health/ — таблица статусов для админки."""
    permission_classes = [IsAuthenticated, IsSuperAdmin]

    def get(self, request):
        data = SubdomainService().get_all_subdomain_health()
        return Response({'success': True, 'data': data})

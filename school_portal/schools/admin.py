from django.contrib import admin, messages

from .models import School
from .subdomain_service import SubdomainService


@admin.register(School)
class SchoolAdmin(admin.ModelAdmin):
    list_display = ('name', 'domain', 'email', 'created_at')
    search_fields = ('name', 'domain', 'email')
    readonly_fields = ('created_at', 'updated_at')
    actions = ['check_subdomain_health', 'assign_generated_subdomain']

    fieldsets = (
        ('Основное', {
            'fields': ('name', 'domain', 'tagline')
        }),
        ('Контакты', {
            'fields': ('email', 'phone', 'address')
        }),
        ('Даты', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    @admin.action(description='Check subdomain health')
    def check_subdomain_health(self, request, queryset):
        service = SubdomainService()
        for school in queryset:
            health = service.check_subdomain_health(school)
            level = messages.SUCCESS if health['status'] == 'healthy' else messages.WARNING
            self.message_user(request, f"{school.name}: {health['status']} — {health['message']}", level)

    @admin.action(description='Assign generated subdomain')
    def assign_generated_subdomain(self, request, queryset):
        service = SubdomainService()
        for school in queryset.filter(domain__isnull=True):
            result = service.create_subdomain(school)
            if result['valid']:
                self.message_user(request, f"{school.name}: {result['full_url']}", messages.SUCCESS)
            else:
                self.message_user(request, f"{school.name}: {result['message']}", messages.ERROR)

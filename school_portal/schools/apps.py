from django.apps import AppConfig


class SchoolsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'schools'
    verbose_name = 'Школы (поддомены)'

    def ready(self):
        # Django system checks для настроек поддоменов
        import schools.checks  # noqa: F401

from rest_framework import serializers

from .models import School


class SchoolSerializer(serializers.ModelSerializer):
    class Meta:
        model = School
        fields = [
            'id', 'name', 'domain',
            'email', 'phone', 'address', 'tagline',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SubdomainRequestSerializer(serializers.Serializer):
    """Желаемый поддомен. Пусто — сгенерировать из названия школы."""
    domain = serializers.CharField(
        required=False, allow_blank=True, max_length=255, trim_whitespace=True,
    )

    def validate_domain(self, value):
        return value.lower()


class SubdomainAvailabilitySerializer(serializers.Serializer):
    domain = serializers.CharField(max_length=255, trim_whitespace=True)

    def validate_domain(self, value):
        return value.lower()


class SchoolRegistrationSerializer(serializers.ModelSerializer):
    """Регистрация школы. domain необязателен — тогда берётся из name."""
    domain = serializers.CharField(
        required=False, allow_blank=True, max_length=255, trim_whitespace=True,
        write_only=True,
    )

    class Meta:
        model = School
        fields = ['name', 'email', 'phone', 'address', 'tagline', 'domain']
        extra_kwargs = {
            'email': {'required': True, 'allow_blank': False},
        }

    def create(self, validated_data):
        validated_data.pop('domain', None)
        return School.objects.create(**validated_data)

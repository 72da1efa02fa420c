"""Catalog serializers."""
from rest_framework import serializers
from .models import Service


class ServiceSerializer(serializers.ModelSerializer):
    expires = serializers.ReadOnlyField()

    class Meta:
        model = Service
        fields = [
            'id',
            'name',
            'category',
            'description',
            'price',
            'duration_minutes',
            'validity_months',
            'expires',
            'is_active',
            'created_at',
            'updated_at',
        ]
        read_only_fields = ['id', 'expires', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name cannot be blank')
        qs = Service.objects.filter(name__iexact=value)
        if self.instance:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError('A service with this name already exists')
        return value

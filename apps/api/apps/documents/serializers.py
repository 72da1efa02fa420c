"""
Consent document serializers.
"""
from rest_framework import serializers

from apps.clinical.models import Patient
from apps.clinical.serializers import MediaAccessURLField

from .models import ConsentDocument, ConsentDocumentTypeChoices


class ConsentDocumentSerializer(serializers.ModelSerializer):
    """
    Read serializer.

    ``status`` reports ``superseded`` for replaced instances even though
    the stored status stays ``pending`` or ``signed``.
    """
    status = serializers.CharField(source='effective_status', read_only=True)
    patient_name = serializers.CharField(source='patient.full_name', read_only=True)
    signature_url = MediaAccessURLField(source='signature_path')
    supersedes = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = ConsentDocument
        fields = [
            'id',
            'patient',
            'patient_name',
            'document_type',
            'title',
            'status',
            'issued_at',
            'signed_at',
            'signing_method',
            'signature_path',
            'signature_url',
            'supersedes',
            'superseded_at',
            'updated_at',
        ]
        read_only_fields = fields


class ConsentDocumentRequestSerializer(serializers.Serializer):
    """Payload for request_signature and reissue."""
    patient = serializers.PrimaryKeyRelatedField(queryset=Patient.objects.filter(is_deleted=False))
    document_type = serializers.ChoiceField(choices=ConsentDocumentTypeChoices.choices)
    title = serializers.CharField(max_length=255, required=False, allow_blank=True)


class ConsentDocumentSignSerializer(serializers.Serializer):
    """
    Digital-pad signature: either the drawn image (multipart ``file``) or
    the stable path of an image uploaded beforehand.
    """
    file = serializers.FileField(required=False)
    signature_path = serializers.CharField(max_length=512, required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs.get('file') and not attrs.get('signature_path'):
            raise serializers.ValidationError('Provide a signature image or a signature path')
        return attrs

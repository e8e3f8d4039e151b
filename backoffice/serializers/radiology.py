import html

import bleach
from rest_framework import serializers


class RadiologyListQuerySerializer(serializers.Serializer):
    q = serializers.CharField(required=False, allow_blank=True, max_length=255)
    page = serializers.IntegerField(required=False, min_value=1)


class RadiologyImportSerializer(serializers.Serializer):
    file = serializers.FileField(required=False, allow_null=True)
    tariff = serializers.CharField(required=False, allow_blank=True, max_length=32)


class SubSpecialtySerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)

    def validate_name(self, v):
        v = html.unescape(bleach.clean((v or '').strip(), tags=set(), strip=True)).strip()
        if not v:
            raise serializers.ValidationError('Sub specialty name is required.')
        return v

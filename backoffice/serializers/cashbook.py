from rest_framework import serializers


class CashBalanceQuerySerializer(serializers.Serializer):
    upToDate = serializers.DateField(required=False, allow_null=True)


class CashBookEntriesQuerySerializer(serializers.Serializer):
    fromDate = serializers.DateField(required=False, allow_null=True)
    toDate = serializers.DateField(required=False, allow_null=True)
    createdBy = serializers.IntegerField(required=False, allow_null=True, min_value=1)
    voucherType = serializers.CharField(required=False, allow_blank=True, max_length=50)
    search = serializers.CharField(required=False, allow_blank=True, max_length=255)

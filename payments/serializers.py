from rest_framework import serializers


class MoMoIPNSerializer(serializers.Serializer):
    """
    Instant payment notification posted by MoMo.

    Only the fields the reconciliation needs are required; the signature is
    checked against the raw payload before this serializer runs.
    """

    partnerCode = serializers.CharField(required=False, allow_blank=True)
    orderId = serializers.CharField()
    requestId = serializers.CharField(required=False, allow_blank=True)
    amount = serializers.IntegerField(required=False)
    orderInfo = serializers.CharField(required=False, allow_blank=True)
    orderType = serializers.CharField(required=False, allow_blank=True)
    transId = serializers.CharField(required=False, allow_blank=True)
    resultCode = serializers.IntegerField()
    message = serializers.CharField(required=False, allow_blank=True, default='')
    payType = serializers.CharField(required=False, allow_blank=True)
    responseTime = serializers.IntegerField(required=False)
    extraData = serializers.CharField(required=False, allow_blank=True)
    signature = serializers.CharField()


class MoMoPaymentRequestSerializer(serializers.Serializer):
    orderId = serializers.CharField(
        error_messages={'required': 'Order ID is required', 'blank': 'Order ID is required'},
    )

from rest_framework import serializers

from .models import PortName, Transaction, TransactionLog


class TransactionLogSerializer(serializers.ModelSerializer):

    class Meta:
        model = TransactionLog
        fields = ['id', 'result_code', 'result_message', 'log_date']
        read_only_fields = fields


class TransactionSerializer(serializers.ModelSerializer):
    """
    Serializer for transaction data.
    Includes gateway result logs and display names.
    """
    port_display = serializers.CharField(source='get_port_display', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    logs = TransactionLogSerializer(many=True, read_only=True)

    class Meta:
        model = Transaction
        fields = [
            'id',
            'port',
            'port_display',
            'price',
            'ref_id',
            'tracking_code',
            'card_number',
            'status',
            'status_display',
            'description',
            'payment_date',
            'created_at',
            'updated_at',
            'logs',
        ]
        read_only_fields = fields


class PaymentRequestSerializer(serializers.Serializer):
    """
    Serializer for starting a payment through a port.
    """
    port = serializers.CharField(max_length=30)
    amount = serializers.IntegerField(min_value=1)
    callback_url = serializers.URLField(required=False)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    card_number = serializers.RegexField(
        regex=r'^\d{16}$',
        required=False,
        help_text="Restrict the payment to this card (16 digits)"
    )

    def validate_port(self, value):
        """Port names are case-insensitive"""
        name = value.strip().upper()
        if name not in PortName.values:
            supported = ', '.join(PortName.values)
            raise serializers.ValidationError(
                f"Unsupported payment port: {value}. Supported ports: {supported}"
            )
        return name

"""
Django Admin configuration for Payments app.

Provides admin interfaces for:
- Transactions (with inline gateway logs)
- Transaction logs
"""

from django.contrib import admin
from django.urls import reverse
from django.utils.html import format_html

from .models import Transaction, TransactionLog, TransactionStatus


class TransactionLogInline(admin.TabularInline):
    """
    Inline admin for displaying gateway logs within Transaction admin.
    """
    model = TransactionLog
    extra = 0
    fields = ['result_code', 'result_message', 'log_date']
    readonly_fields = ['result_code', 'result_message', 'log_date']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Transaction)
class TransactionAdmin(admin.ModelAdmin):
    """
    Admin interface for Transaction model.

    Transactions are written only by the gateway flow, so every field is
    read-only here.
    """

    list_display = [
        'id',
        'port',
        'price',
        'status_display',
        'ref_id',
        'tracking_code',
        'card_number',
        'created_at',
    ]

    list_filter = [
        'status',
        'port',
        'created_at',
    ]

    search_fields = [
        'id',
        'ref_id',
        'tracking_code',
        'card_number',
    ]

    readonly_fields = [
        'id',
        'port',
        'price',
        'status',
        'ref_id',
        'tracking_code',
        'card_number',
        'ip',
        'description',
        'payment_date',
        'created_at',
        'updated_at',
    ]

    fieldsets = (
        ('Basic Information', {
            'fields': ('id', 'port', 'price', 'description')
        }),
        ('Gateway Details', {
            'fields': ('ref_id', 'tracking_code', 'card_number', 'ip')
        }),
        ('Status', {
            'fields': ('status', 'payment_date')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at')
        }),
    )

    inlines = [TransactionLogInline]

    def status_display(self, obj):
        """Display status with color coding"""
        status_colors = {
            TransactionStatus.PENDING: 'orange',
            TransactionStatus.SUCCEEDED: 'green',
            TransactionStatus.FAILED: 'red',
        }
        color = status_colors.get(obj.status, 'gray')
        return format_html(
            '<span style="color: {}; font-weight: bold;">{}</span>',
            color,
            obj.get_status_display()
        )
    status_display.short_description = 'Status'
    status_display.admin_order_field = 'status'

    def has_add_permission(self, request):
        return False


@admin.register(TransactionLog)
class TransactionLogAdmin(admin.ModelAdmin):

    list_display = ['transaction_link', 'result_code', 'result_message', 'log_date']
    list_filter = ['log_date']
    search_fields = ['transaction__id', 'result_code']
    readonly_fields = ['transaction', 'result_code', 'result_message', 'log_date']

    def transaction_link(self, obj):
        url = reverse('admin:payments_transaction_change', args=[obj.transaction_id])
        return format_html('<a href="{}">{}</a>', url, obj.transaction_id)
    transaction_link.short_description = 'Transaction'
    transaction_link.admin_order_field = 'transaction'

    def has_add_permission(self, request):
        return False

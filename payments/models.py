from typing import Optional

from django.db import models
from django.utils import timezone


class PortName(models.TextChoices):
    """Supported payment gateways (ports)."""
    NOVINPAL = 'NOVINPAL', 'Novinpal'
    ZARINPAL = 'ZARINPAL', 'Zarinpal'
    RAZORPAY = 'RAZORPAY', 'Razorpay'


class TransactionStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    SUCCEEDED = 'SUCCEEDED', 'Succeeded'
    FAILED = 'FAILED', 'Failed'


TERMINAL_STATUSES = (TransactionStatus.SUCCEEDED, TransactionStatus.FAILED)


class TransactionQuerySet(models.QuerySet):

    def pending(self):
        return self.filter(status=TransactionStatus.PENDING)

    def terminal(self):
        return self.filter(status__in=TERMINAL_STATUSES)


class TransactionManager(models.Manager.from_queryset(TransactionQuerySet)):
    """
    Persistence operations used by the gateway resolver and port drivers.

    Status writes are conditional on the row still being pending, so a
    transaction can reach a terminal state exactly once even when the same
    callback is delivered concurrently.
    """

    def find(self, transaction_id) -> Optional['Transaction']:
        """Return the transaction with the given id, or None if absent or malformed."""
        try:
            return self.get(pk=int(transaction_id))
        except (TypeError, ValueError, self.model.DoesNotExist):
            return None

    def create_pending(self, port: str, price: int, ip: Optional[str] = None,
                       description: str = '') -> 'Transaction':
        return self.create(
            port=port,
            price=price,
            ip=ip,
            description=description or '',
            status=TransactionStatus.PENDING,
        )

    def transition(self, transaction_id, status: str, **fields) -> bool:
        """
        Move a pending transaction to a terminal status.

        Args:
            transaction_id: Primary key of the transaction
            status: Target status (SUCCEEDED or FAILED)
            **fields: Extra columns to write along with the status

        Returns:
            True if the row was pending and has been updated, False otherwise
        """
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Cannot transition a transaction to {status}")

        updated = self.filter(
            pk=transaction_id,
            status=TransactionStatus.PENDING
        ).update(status=status, updated_at=timezone.now(), **fields)
        return updated == 1

    def set_ref_id(self, transaction_id, ref_id: str) -> bool:
        updated = self.filter(
            pk=transaction_id,
            status=TransactionStatus.PENDING
        ).update(ref_id=ref_id, updated_at=timezone.now())
        return updated == 1


class Transaction(models.Model):
    """
    A single payment attempt through one gateway.

    Created as PENDING when a driver sends its payment request, and moved to
    SUCCEEDED or FAILED by the verify step. Terminal transactions are never
    written again.
    """
    id = models.BigAutoField(primary_key=True)
    port = models.CharField(
        max_length=30,
        choices=PortName.choices,
        help_text="Gateway this transaction was sent through"
    )
    price = models.BigIntegerField(
        help_text="Amount in the gateway's unit (e.g. rials, paise)"
    )
    ref_id = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        db_index=True,
        help_text="Reference/authority token issued by the gateway"
    )
    tracking_code = models.CharField(
        max_length=100,
        null=True,
        blank=True,
        help_text="Receipt identifier issued by the gateway after payment"
    )
    card_number = models.CharField(
        max_length=50,
        null=True,
        blank=True,
        help_text="Masked card number of the payer"
    )
    status = models.CharField(
        max_length=20,
        choices=TransactionStatus.choices,
        default=TransactionStatus.PENDING,
        help_text="Current state of the transaction"
    )
    ip = models.GenericIPAddressField(
        null=True,
        blank=True,
        help_text="IP address of the payer when the payment was started"
    )
    description = models.CharField(max_length=255, blank=True, default='')
    payment_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the gateway confirmed the payment"
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = TransactionManager()

    class Meta:
        ordering = ['-created_at']
        verbose_name = 'Transaction'
        verbose_name_plural = 'Transactions'
        indexes = [
            models.Index(fields=['port', 'status'], name='payments_tx_port_status_idx'),
            models.Index(fields=['status', 'created_at'], name='payments_tx_status_created_idx'),
        ]

    def __str__(self):
        return f"Transaction {self.pk} - {self.get_port_display()} ({self.status})"

    @property
    def is_pending(self):
        return self.status == TransactionStatus.PENDING

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    def append_log(self, code, message) -> 'TransactionLog':
        """Record a gateway result code against this transaction"""
        return TransactionLog.objects.create(
            transaction=self,
            result_code=str(code),
            result_message=str(message)
        )


class TransactionLog(models.Model):
    """Result codes reported by the gateway for a transaction."""
    transaction = models.ForeignKey(
        Transaction,
        on_delete=models.CASCADE,
        related_name='logs'
    )
    result_code = models.CharField(max_length=255, null=True, blank=True)
    result_message = models.TextField(null=True, blank=True)
    log_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['log_date', 'id']
        verbose_name = 'Transaction Log'
        verbose_name_plural = 'Transaction Logs'

    def __str__(self):
        return f"{self.transaction_id}: {self.result_code}"

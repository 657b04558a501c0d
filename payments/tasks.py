"""
Celery tasks for the payments app.

Payers who never return from the gateway leave their transaction pending;
expire_pending_transactions settles those as failed.
"""
from datetime import timedelta
import logging

from celery import shared_task
from django.utils import timezone

from .gateways.config import GatewayConfig
from .models import Transaction, TransactionStatus

logger = logging.getLogger(__name__)

EXPIRED_CODE = 'EXPIRED'


@shared_task(bind=True, max_retries=3, default_retry_delay=300)
def expire_pending_transactions(self, max_age_minutes=None):
    """
    Fail pending transactions older than the configured age.

    Uses the same conditional status update as the callback flow, so a
    transaction verified concurrently is left alone.

    Args:
        max_age_minutes: Override PAYMENT_GATEWAYS['PENDING_EXPIRY_MINUTES']

    Returns:
        dict: Summary of expire operation
    """
    if max_age_minutes is None:
        max_age_minutes = GatewayConfig.from_settings().pending_expiry_minutes

    cutoff = timezone.now() - timedelta(minutes=max_age_minutes)

    try:
        stale = Transaction.objects.pending().filter(created_at__lt=cutoff)

        expired_ids = []
        for transaction in stale.iterator():
            if Transaction.objects.transition(transaction.pk, TransactionStatus.FAILED):
                transaction.append_log(
                    EXPIRED_CODE,
                    f"No callback received within {max_age_minutes} minutes"
                )
                expired_ids.append(transaction.pk)

        result = {
            'status': 'completed',
            'expired_count': len(expired_ids),
            'expired_transactions': expired_ids,
            'message': f'Expired {len(expired_ids)} pending transactions',
        }

        logger.info(f"Expire pending transactions task completed: {result}")
        return result

    except Exception as exc:
        logger.error(f"Critical error in expire_pending_transactions task: {str(exc)}", exc_info=True)
        raise self.retry(exc=exc)

import logging

from celery import shared_task

from onramp.services.container import get_services

logger = logging.getLogger(__name__)


@shared_task(name="onramp.execute_transfer", ignore_result=True)
def execute_transfer(transaction_id):
    """Settle a paid transaction on-chain. No automatic retry: a failed transfer stays failed."""
    return get_services().trigger.execute_transfer(transaction_id)


def enqueue_transfer(transaction_id):
    try:
        execute_transfer.delay(transaction_id)
    except Exception:
        logger.exception("Could not enqueue transfer", extra={"transaction_id": transaction_id})
        raise
    logger.info("Transfer enqueued", extra={"transaction_id": transaction_id})

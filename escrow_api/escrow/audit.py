import logging

from .models import EscrowEvent

logger = logging.getLogger('audit')


def record(event, escrow_key='', actor=None, amount=None, **data):
    """Append an audit entry and mirror it to the ``audit`` logger."""
    entry = EscrowEvent.objects.create(
        event=event,
        escrow_key=escrow_key,
        actor=actor,
        amount=amount,
        data=data,
    )
    logger.info(f"{event} escrow={escrow_key} actor={actor} amount={amount} {data}")
    return entry

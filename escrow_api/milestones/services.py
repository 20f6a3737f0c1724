import logging

from django.db import transaction
from django.utils import timezone

from escrow import audit
from escrow.errors import DeadlineError, MilestoneNotFoundError, StateConflictError
from escrow.models import EscrowEvent
from escrow.validation import calculate_fee
from settlement.services import SettlementService
from .models import Milestone

logger = logging.getLogger(__name__)


class MilestoneTracker:
    """
    Owns the milestone sequences, keyed by escrow key.

    The tracker is driven by the escrow state machine, which authorizes the
    caller and hands over every parameter a call needs (payout wallets, fee
    percent, token handle). It performs no array-shape validation of its own.
    """
    def __init__(self, settlement=None):
        self.settlement = settlement or SettlementService()

    def add_milestones(self, escrow_key, descriptions, amounts, due_dates):
        start = self.get_milestone_count(escrow_key)
        milestones = [
            Milestone(
                escrow_key=escrow_key,
                index=start + offset,
                description=description,
                amount=amount,
                due_date=due_date,
            )
            for offset, (description, amount, due_date) in enumerate(zip(descriptions, amounts, due_dates))
        ]
        return Milestone.objects.bulk_create(milestones)

    def get_milestones(self, escrow_key):
        return list(Milestone.objects.filter(escrow_key=escrow_key).order_by('index'))

    def get_milestone_count(self, escrow_key):
        return Milestone.objects.filter(escrow_key=escrow_key).count()

    def get_milestone(self, escrow_key, index, for_update=False):
        queryset = Milestone.objects.select_for_update() if for_update else Milestone.objects
        try:
            return queryset.get(escrow_key=escrow_key, index=index)
        except Milestone.DoesNotExist:
            raise MilestoneNotFoundError(f"Escrow {escrow_key} has no milestone {index}")

    def all_approved(self, escrow_key, excluding=None):
        """
        True when the escrow has milestones and all of them are approved.
        ``excluding`` leaves one index out of the check.
        """
        milestones = Milestone.objects.filter(escrow_key=escrow_key)
        if not milestones.exists():
            return False
        pending = milestones.filter(approved=False)
        if excluding is not None:
            pending = pending.exclude(index=excluding)
        return not pending.exists()

    def complete_milestone(self, escrow_key, index, actor=None):
        with transaction.atomic():
            milestone = self.get_milestone(escrow_key, index, for_update=True)
            if milestone.completed:
                raise StateConflictError("Milestone already completed")

            now = timezone.now()
            if now > milestone.due_date:
                raise DeadlineError("Milestone due date has passed")

            milestone.completed = True
            milestone.completed_at = now
            milestone.save(update_fields=['completed', 'completed_at'])

            audit.record(
                EscrowEvent.MILESTONE_COMPLETED,
                escrow_key=escrow_key,
                actor=actor,
                amount=milestone.amount,
                index=index,
            )
        return milestone

    def approve_milestone(self, escrow_key, index, freelancer, platform_wallet, fee_percent, token, is_token_escrow, actor=None):
        """
        Approve a completed milestone and pay it out: the freelancer receives
        the milestone amount minus the platform fee, the platform wallet the fee.
        """
        with transaction.atomic():
            milestone = self.get_milestone(escrow_key, index, for_update=True)
            if not milestone.completed:
                raise StateConflictError("Milestone has not been completed")
            if milestone.approved:
                raise StateConflictError("Milestone already approved")

            fee, freelancer_share = calculate_fee(milestone.amount, fee_percent)

            milestone.approved = True
            milestone.approved_at = timezone.now()
            milestone.save(update_fields=['approved', 'approved_at'])

            self.settlement.pay(to=freelancer, amount=freelancer_share, is_token=is_token_escrow, token=token, reference=escrow_key)
            self.settlement.pay(to=platform_wallet, amount=fee, is_token=is_token_escrow, token=token, reference=escrow_key)

            audit.record(
                EscrowEvent.MILESTONE_APPROVED,
                escrow_key=escrow_key,
                actor=actor,
                amount=milestone.amount,
                index=index,
                freelancer_amount=freelancer_share,
                platform_fee=fee,
            )

        logger.info(f"Milestone {index} of {escrow_key} paid: {freelancer_share} to freelancer, {fee} fee")
        return {
            'index': index,
            'amount': milestone.amount,
            'freelancer_amount': freelancer_share,
            'platform_fee': fee,
        }

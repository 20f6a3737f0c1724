from contextlib import contextmanager
from django.db import transaction
from django.conf import settings
from django.utils import timezone
import logging

from disputes.models import Dispute
from milestones.services import MilestoneTracker
from settlement.errors import SettlementError
from settlement.services import SettlementService
from . import audit
from .errors import (
    DisputeNotFoundError,
    EscrowError,
    EscrowExistsError,
    EscrowNotFoundError,
    FeeTooHighError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidDeadlineError,
    InvalidPercentageError,
    StateConflictError,
)
from .guards import (
    NonReentrant,
    after,
    enforce,
    in_status,
    not_after,
    not_paused,
    only_arbitrator,
    only_client,
    only_freelancer,
    only_party,
)
from .models import Escrow, EscrowEvent, PlatformConfig
from .validation import (
    MAX_AMOUNT,
    calculate_fee,
    calculate_total_amount,
    checked_mul,
    is_deadline_valid,
    is_valid_address,
    validate_milestone_arrays,
)

logger = logging.getLogger(__name__)

MILESTONE_STATUSES = (
    Escrow.STATUS_FUNDED,
    Escrow.STATUS_WORK_IN_PROGRESS,
    Escrow.STATUS_WORK_COMPLETED,
)


class EscrowService:
    """
    The escrow lifecycle state machine.

    Every mutating operation runs under the instance's reentrancy lock and a
    database transaction, locks the escrow row, checks its preconditions,
    saves the new state and only then moves value through settlement. A
    settlement failure rolls the whole operation back.
    """
    def __init__(self, settlement=None, tracker=None):
        self.settlement = settlement or SettlementService()
        self.tracker = tracker or MilestoneTracker(settlement=self.settlement)
        self._lock = NonReentrant()

    @contextmanager
    def _operation(self, name, escrow_id=''):
        try:
            with self._lock, transaction.atomic():
                yield
        except EscrowError as e:
            logger.warning(f"{name} rejected for escrow {escrow_id}: {e.message}")
            raise
        except SettlementError as e:
            logger.error(f"{name} settlement failed for escrow {escrow_id}: {e.message}")
            raise

    def _locked_escrow(self, escrow_id):
        try:
            return Escrow.objects.select_for_update().get(pk=escrow_id)
        except Escrow.DoesNotExist:
            raise EscrowNotFoundError(f"Escrow {escrow_id} does not exist")

    def _pay(self, escrow, to, amount):
        return self.settlement.pay(
            to=to,
            amount=amount,
            is_token=escrow.is_token_escrow,
            token=escrow.token,
            reference=escrow.pk,
        )

    # Lifecycle

    def create_escrow(self, *, user, escrow_id, freelancer, deadline,
                      milestone_descriptions=(), milestone_amounts=(), milestone_due_dates=(),
                      use_token=False, deposited_value=0):
        """
        Create and fund an escrow in one step.

        Token escrows pull the explicit milestone total, or the client's whole
        allowance to custody when no milestones are given. Native escrows take
        ``deposited_value``. Every check runs before any value moves.
        """
        with self._operation('create_escrow', escrow_id):
            config = PlatformConfig.load()
            now = timezone.now()
            enforce(not_paused(config))

            if not escrow_id:
                raise EscrowError("Escrow identifier is required")
            if freelancer is None or not is_valid_address(freelancer.wallet_address):
                raise InvalidAddressError("Invalid freelancer address")
            if not is_valid_address(user.wallet_address):
                raise InvalidAddressError("Client has no settlement wallet")
            if freelancer.pk == user.pk:
                raise InvalidAddressError("Client and freelancer must be different accounts")
            if freelancer.wallet_address == user.wallet_address:
                raise InvalidAddressError("Client and freelancer must use different wallets")
            if not is_deadline_valid(deadline, now):
                raise InvalidDeadlineError()
            if Escrow.objects.filter(pk=escrow_id).exists():
                raise EscrowExistsError(f"Escrow {escrow_id} already exists")

            descriptions = list(milestone_descriptions)
            amounts = list(milestone_amounts)
            due_dates = list(milestone_due_dates)
            has_milestones = bool(descriptions or amounts or due_dates)
            milestone_total = 0
            if has_milestones:
                validate_milestone_arrays(len(descriptions), len(amounts), len(due_dates))
                if any(amount < 0 for amount in amounts):
                    raise InvalidAmountError("Milestone amounts cannot be negative")
                milestone_total = calculate_total_amount(amounts)

            token = ''
            if use_token:
                if deposited_value:
                    raise InvalidAmountError("Native value cannot fund a token escrow")
                token = config.token
                if not is_valid_address(token):
                    raise InvalidAddressError("Settlement token is not configured")
                if has_milestones:
                    amount = milestone_total
                else:
                    amount = self.settlement.allowance(token=token, owner=user.wallet_address)
            else:
                amount = deposited_value or 0

            if amount <= 0:
                raise InvalidAmountError("Escrow amount must be greater than zero")
            if amount > MAX_AMOUNT:
                raise InvalidAmountError(f"Escrow amount exceeds {MAX_AMOUNT}")
            if has_milestones and milestone_total != amount:
                raise InvalidAmountError(
                    f"Milestone amounts add up to {milestone_total}, escrow amount is {amount}"
                )

            fee, freelancer_amount = calculate_fee(amount, config.fee_percent)
            escrow = Escrow.objects.create(
                id=escrow_id,
                client=user,
                freelancer=freelancer,
                amount=amount,
                platform_fee=fee,
                freelancer_amount=freelancer_amount,
                fee_percent=config.fee_percent,
                token=token,
                is_token_escrow=use_token,
                status=Escrow.STATUS_FUNDED,
                created_at=now,
                deadline=deadline,
            )
            if has_milestones:
                self.tracker.add_milestones(escrow.pk, descriptions, amounts, due_dates)

            user.bump_escrow_counter('client')
            freelancer.bump_escrow_counter('freelancer')

            if use_token:
                self.settlement.collect_token(token=token, owner=user.wallet_address, amount=amount, reference=escrow.pk)
            else:
                self.settlement.collect_native(sender=user.wallet_address, amount=amount, reference=escrow.pk)

            audit.record(
                EscrowEvent.ESCROW_CREATED,
                escrow_key=escrow.pk,
                actor=user,
                amount=amount,
                client=user.wallet_address,
                freelancer=freelancer.wallet_address,
                deadline=deadline.isoformat(),
                milestones=len(amounts),
            )
            audit.record(
                EscrowEvent.ESCROW_FUNDED,
                escrow_key=escrow.pk,
                actor=user,
                amount=amount,
                token=token,
            )

        logger.info(f"Escrow {escrow.pk} funded with {amount} ({'token' if use_token else 'native'})")
        return escrow

    def start_work(self, *, user, escrow_id):
        with self._operation('start_work', escrow_id):
            escrow = self._locked_escrow(escrow_id)
            enforce(
                only_freelancer(escrow, user),
                in_status(escrow, Escrow.STATUS_FUNDED),
                not_after(escrow.deadline, timezone.now()),
            )
            escrow.status = Escrow.STATUS_WORK_IN_PROGRESS
            escrow.save(update_fields=['status', 'updated_at'])
            audit.record(EscrowEvent.WORK_STARTED, escrow_key=escrow.pk, actor=user)
        return escrow

    def complete_work(self, *, user, escrow_id):
        with self._operation('complete_work', escrow_id):
            escrow = self._locked_escrow(escrow_id)
            enforce(
                only_freelancer(escrow, user),
                in_status(escrow, Escrow.STATUS_FUNDED, Escrow.STATUS_WORK_IN_PROGRESS),
                not_after(escrow.deadline, timezone.now()),
            )
            escrow.freelancer_completed = True
            escrow.status = Escrow.STATUS_WORK_COMPLETED
            escrow.save(update_fields=['freelancer_completed', 'status', 'updated_at'])
            audit.record(EscrowEvent.WORK_COMPLETED, escrow_key=escrow.pk, actor=user)
        return escrow

    def approve_work(self, *, user, escrow_id):
        with self._operation('approve_work', escrow_id):
            config = PlatformConfig.load()
            escrow = self._locked_escrow(escrow_id)
            enforce(
                not_paused(config),
                only_client(escrow, user),
                in_status(escrow, Escrow.STATUS_WORK_COMPLETED),
            )
            escrow.client_approved = True
            escrow.save(update_fields=['client_approved', 'updated_at'])
            result = self._release(escrow, config, actor=user)
        return result

    def _release(self, escrow, config, actor=None):
        enforce(in_status(escrow, Escrow.STATUS_WORK_COMPLETED))

        outstanding = escrow.outstanding_amount
        if escrow.settled_amount == 0:
            fee, freelancer_share = escrow.platform_fee, escrow.freelancer_amount
        else:
            fee, freelancer_share = calculate_fee(outstanding, escrow.fee_percent)

        escrow.status = Escrow.STATUS_RELEASED
        escrow.settled_amount = escrow.amount
        escrow.save(update_fields=['status', 'settled_amount', 'updated_at'])

        self._pay(escrow, escrow.freelancer.wallet_address, freelancer_share)
        self._pay(escrow, config.platform_wallet, fee)

        audit.record(
            EscrowEvent.FUNDS_RELEASED,
            escrow_key=escrow.pk,
            actor=actor,
            amount=outstanding,
            freelancer_amount=freelancer_share,
            platform_fee=fee,
        )
        logger.info(f"Escrow {escrow.pk} released: {freelancer_share} to freelancer, {fee} fee")
        return {
            'status': 'success',
            'escrow_id': escrow.pk,
            'freelancer_amount': freelancer_share,
            'platform_fee': fee,
        }

    def request_refund(self, *, user, escrow_id):
        with self._operation('request_refund', escrow_id):
            config = PlatformConfig.load()
            escrow = self._locked_escrow(escrow_id)
            enforce(
                not_paused(config),
                only_client(escrow, user),
                in_status(escrow, Escrow.STATUS_FUNDED, Escrow.STATUS_WORK_IN_PROGRESS),
                after(escrow.deadline, timezone.now(), "Refunds open only after the deadline"),
            )
            refund = escrow.outstanding_amount
            escrow.status = Escrow.STATUS_REFUNDED
            escrow.settled_amount = escrow.amount
            escrow.save(update_fields=['status', 'settled_amount', 'updated_at'])

            self._pay(escrow, escrow.client.wallet_address, refund)
            audit.record(EscrowEvent.FUNDS_REFUNDED, escrow_key=escrow.pk, actor=user, amount=refund)

        logger.info(f"Escrow {escrow.pk} refunded: {refund} to client")
        return {'status': 'success', 'escrow_id': escrow.pk, 'refund_amount': refund}

    # Disputes

    def raise_dispute(self, *, user, escrow_id, reason=''):
        with self._operation('raise_dispute', escrow_id):
            escrow = self._locked_escrow(escrow_id)
            enforce(
                only_party(escrow, user),
                in_status(escrow, Escrow.STATUS_WORK_COMPLETED, Escrow.STATUS_WORK_IN_PROGRESS),
            )
            existing = Dispute.objects.filter(escrow=escrow).first()
            if existing is not None:
                if existing.resolved:
                    raise StateConflictError("Dispute already resolved for this escrow")
                raise StateConflictError("A dispute is already open for this escrow")

            escrow.status = Escrow.STATUS_DISPUTED
            escrow.save(update_fields=['status', 'updated_at'])
            dispute = Dispute.objects.create(
                escrow=escrow,
                raised_by=user,
                reason=reason,
                raised_at=timezone.now(),
            )
            audit.record(EscrowEvent.DISPUTE_RAISED, escrow_key=escrow.pk, actor=user, reason=reason)
        return dispute

    def resolve_dispute(self, *, user, escrow_id, release_to_freelancer, freelancer_percentage=0):
        """
        Settle a disputed escrow.

        Releasing gives the freelancer ``freelancer_percentage`` of the value
        still in custody (minus the platform fee on that share) and returns the
        rest to the client. Refunding returns everything to the client.
        """
        with self._operation('resolve_dispute', escrow_id):
            config = PlatformConfig.load()
            escrow = self._locked_escrow(escrow_id)
            enforce(
                not_paused(config),
                only_arbitrator(config, user),
                in_status(escrow, Escrow.STATUS_DISPUTED),
            )
            if not 0 <= freelancer_percentage <= 100:
                raise InvalidPercentageError()

            dispute = Dispute.objects.select_for_update().get(escrow=escrow)
            outstanding = escrow.outstanding_amount
            fee = freelancer_share = 0
            if release_to_freelancer:
                freelancer_total = checked_mul(outstanding, freelancer_percentage) // 100
                client_share = outstanding - freelancer_total
                fee, freelancer_share = calculate_fee(freelancer_total, escrow.fee_percent)
                escrow.status = Escrow.STATUS_RELEASED
            else:
                freelancer_percentage = 0
                client_share = outstanding
                escrow.status = Escrow.STATUS_REFUNDED

            escrow.settled_amount = escrow.amount
            escrow.save(update_fields=['status', 'settled_amount', 'updated_at'])

            dispute.resolved = True
            dispute.resolved_by = user
            dispute.resolved_at = timezone.now()
            dispute.release_to_freelancer = release_to_freelancer
            dispute.freelancer_percentage = freelancer_percentage
            dispute.save()

            self._pay(escrow, escrow.freelancer.wallet_address, freelancer_share)
            self._pay(escrow, escrow.client.wallet_address, client_share)
            self._pay(escrow, config.platform_wallet, fee)

            audit.record(
                EscrowEvent.DISPUTE_RESOLVED,
                escrow_key=escrow.pk,
                actor=user,
                amount=outstanding,
                release_to_freelancer=release_to_freelancer,
                freelancer_percentage=freelancer_percentage,
                freelancer_amount=freelancer_share,
                client_amount=client_share,
                platform_fee=fee,
            )

        logger.info(
            f"Dispute on {escrow.pk} resolved: {freelancer_share} to freelancer, "
            f"{client_share} to client, {fee} fee"
        )
        return {
            'status': 'success',
            'escrow_id': escrow.pk,
            'escrow_status': escrow.status,
            'freelancer_amount': freelancer_share,
            'client_amount': client_share,
            'platform_fee': fee,
        }

    def emergency_withdraw(self, *, user, escrow_id):
        """Sweep whatever the escrow still holds to the arbitrator and cancel it."""
        with self._operation('emergency_withdraw', escrow_id):
            config = PlatformConfig.load()
            escrow = self._locked_escrow(escrow_id)
            enforce(only_arbitrator(config, user))

            swept = escrow.outstanding_amount
            if swept == 0:
                raise InvalidAmountError("Escrow holds no funds")
            if not is_valid_address(user.wallet_address):
                raise InvalidAddressError("Arbitrator has no settlement wallet")

            escrow.status = Escrow.STATUS_CANCELLED
            escrow.amount = 0
            escrow.platform_fee = 0
            escrow.freelancer_amount = 0
            escrow.settled_amount = 0
            escrow.save(update_fields=[
                'status', 'amount', 'platform_fee', 'freelancer_amount', 'settled_amount', 'updated_at',
            ])

            self._pay(escrow, user.wallet_address, swept)
            audit.record(EscrowEvent.EMERGENCY_WITHDRAWAL, escrow_key=escrow.pk, actor=user, amount=swept)

        logger.warning(f"Emergency withdrawal of {swept} from escrow {escrow.pk}")
        return {'status': 'success', 'escrow_id': escrow.pk, 'amount': swept}

    # Milestones

    def complete_milestone(self, *, user, escrow_id, index):
        with self._operation('complete_milestone', escrow_id):
            escrow = self._locked_escrow(escrow_id)
            enforce(
                only_freelancer(escrow, user),
                in_status(escrow, *MILESTONE_STATUSES),
            )
            milestone = self.tracker.complete_milestone(escrow.pk, index, actor=user)
        return milestone

    def approve_milestone(self, *, user, escrow_id, index):
        """
        Approve and pay one milestone. Approving the last open milestone
        releases the escrow, since nothing is left in custody.
        """
        with self._operation('approve_milestone', escrow_id):
            config = PlatformConfig.load()
            escrow = self._locked_escrow(escrow_id)
            enforce(
                not_paused(config),
                only_client(escrow, user),
                in_status(escrow, *MILESTONE_STATUSES),
            )
            milestone = self.tracker.get_milestone(escrow.pk, index)
            is_last = self.tracker.all_approved(escrow.pk, excluding=milestone.index)

            escrow.settled_amount += milestone.amount
            update_fields = ['settled_amount', 'updated_at']
            if is_last and milestone.completed and not milestone.approved:
                escrow.status = Escrow.STATUS_RELEASED
                escrow.client_approved = True
                update_fields += ['status', 'client_approved']
            escrow.save(update_fields=update_fields)

            result = self.tracker.approve_milestone(
                escrow.pk,
                index,
                freelancer=escrow.freelancer.wallet_address,
                platform_wallet=config.platform_wallet,
                fee_percent=escrow.fee_percent,
                token=escrow.token,
                is_token_escrow=escrow.is_token_escrow,
                actor=user,
            )
            if escrow.status == Escrow.STATUS_RELEASED:
                audit.record(
                    EscrowEvent.FUNDS_RELEASED,
                    escrow_key=escrow.pk,
                    actor=user,
                    amount=milestone.amount,
                    via='milestones',
                )
        result['escrow_status'] = escrow.status
        return result

    # Reads

    def get_escrow(self, escrow_id):
        try:
            return Escrow.objects.select_related('client', 'freelancer').get(pk=escrow_id)
        except Escrow.DoesNotExist:
            raise EscrowNotFoundError(f"Escrow {escrow_id} does not exist")

    def get_dispute(self, escrow_id):
        escrow = self.get_escrow(escrow_id)
        try:
            return Dispute.objects.select_related('raised_by', 'resolved_by').get(escrow=escrow)
        except Dispute.DoesNotExist:
            raise DisputeNotFoundError(f"No dispute raised for escrow {escrow_id}")

    def get_milestones(self, escrow_id):
        escrow = self.get_escrow(escrow_id)
        return self.tracker.get_milestones(escrow.pk)

    def get_milestone(self, escrow_id, index):
        escrow = self.get_escrow(escrow_id)
        return self.tracker.get_milestone(escrow.pk, index)

    def escrows_for(self, user):
        return Escrow.objects.for_participant(user).select_related('client', 'freelancer')

    # Platform administration

    def update_platform(self, *, user, fee_percent=None, wallet=None, token=None):
        """
        Apply any of fee, wallet and token together. Every given value is
        checked before the row is saved, so a bad field leaves all of them
        unchanged.
        """
        with self._operation('update_platform'):
            config = PlatformConfig.load(for_update=True)
            enforce(only_arbitrator(config, user))
            if fee_percent is not None and not 0 <= fee_percent <= settings.MAX_PLATFORM_FEE_PERCENT:
                raise FeeTooHighError(
                    f"Platform fee must be between 0 and {settings.MAX_PLATFORM_FEE_PERCENT}%"
                )
            if wallet is not None and not is_valid_address(wallet):
                raise InvalidAddressError("Invalid platform wallet")
            if token is not None and not is_valid_address(token):
                raise InvalidAddressError("Invalid token handle")

            previous_fee = config.fee_percent
            update_fields = ['updated_at']
            if fee_percent is not None:
                config.fee_percent = fee_percent
                update_fields.append('fee_percent')
            if wallet is not None:
                config.platform_wallet = wallet
                update_fields.append('platform_wallet')
            if token is not None:
                config.token = token
                update_fields.append('token')
            config.save(update_fields=update_fields)

            if fee_percent is not None:
                audit.record(EscrowEvent.PLATFORM_FEE_UPDATED, actor=user, previous=previous_fee, fee_percent=fee_percent)
            if wallet is not None:
                audit.record(EscrowEvent.PLATFORM_WALLET_UPDATED, actor=user, wallet=wallet)
            if token is not None:
                audit.record(EscrowEvent.TOKEN_UPDATED, actor=user, token=token)
        return config

    def set_platform_fee(self, *, user, fee_percent):
        return self.update_platform(user=user, fee_percent=fee_percent)

    def set_platform_wallet(self, *, user, wallet):
        return self.update_platform(user=user, wallet=wallet)

    def set_token(self, *, user, token):
        return self.update_platform(user=user, token=token)

    def pause(self, *, user):
        with self._operation('pause'):
            config = PlatformConfig.load(for_update=True)
            enforce(only_arbitrator(config, user), not_paused(config))
            config.paused = True
            config.save(update_fields=['paused', 'updated_at'])
            audit.record(EscrowEvent.PAUSED, actor=user)
        logger.warning(f"Escrow operations paused by {user}")
        return config

    def unpause(self, *, user):
        with self._operation('unpause'):
            config = PlatformConfig.load(for_update=True)
            enforce(only_arbitrator(config, user))
            if not config.paused:
                raise StateConflictError("Escrow operations are not paused")
            config.paused = False
            config.save(update_fields=['paused', 'updated_at'])
            audit.record(EscrowEvent.UNPAUSED, actor=user)
        logger.info(f"Escrow operations resumed by {user}")
        return config

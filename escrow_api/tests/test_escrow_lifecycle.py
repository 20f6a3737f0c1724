from datetime import timedelta

import pytest
from django.contrib.auth import get_user_model

from escrow.errors import (
    AuthorizationError,
    ContractPausedError,
    DeadlineError,
    EscrowExistsError,
    EscrowNotFoundError,
    FeeTooHighError,
    InvalidAddressError,
    InvalidAmountError,
    InvalidDeadlineError,
    StateConflictError,
)
from escrow.models import Escrow, EscrowEvent, PlatformConfig
from settlement.errors import InsufficientFundsError
from settlement.models import NATIVE_ASSET, LedgerBalance, Transfer

from .conftest import CLIENT_WALLET, FREELANCER_WALLET, ARBITRATOR_WALLET, PLATFORM_WALLET, STARTING_BALANCE

pytestmark = pytest.mark.django_db

User = get_user_model()


def events_for(escrow_id):
    return list(EscrowEvent.objects.filter(escrow_key=escrow_id).values_list('event', flat=True))


def test_create_funds_escrow_and_splits_fee(make_escrow, ledger, client_user, freelancer):
    escrow = make_escrow(amount=1000)

    assert escrow.status == Escrow.STATUS_FUNDED
    assert escrow.platform_fee == 200
    assert escrow.freelancer_amount == 800
    assert escrow.fee_percent == 20
    assert not escrow.is_token_escrow
    assert ledger.balance_of(ledger.custody_account) == 1000
    assert ledger.balance_of(CLIENT_WALLET) == STARTING_BALANCE - 1000
    assert events_for('job-1') == [EscrowEvent.ESCROW_CREATED, EscrowEvent.ESCROW_FUNDED]

    client_user.refresh_from_db()
    freelancer.refresh_from_db()
    assert client_user.escrows_as_client == 1
    assert freelancer.escrows_as_freelancer == 1


def test_complete_then_approve_pays_freelancer_and_platform(service, make_escrow, ledger, client_user, freelancer):
    make_escrow(amount=1000)

    service.complete_work(user=freelancer, escrow_id='job-1')
    result = service.approve_work(user=client_user, escrow_id='job-1')

    escrow = Escrow.objects.get(pk='job-1')
    assert escrow.status == Escrow.STATUS_RELEASED
    assert escrow.client_approved and escrow.freelancer_completed
    assert result['freelancer_amount'] == 800
    assert result['platform_fee'] == 200
    assert ledger.balance_of(FREELANCER_WALLET) == 800
    assert ledger.balance_of(PLATFORM_WALLET) == 200
    assert ledger.balance_of(ledger.custody_account) == 0
    assert events_for('job-1')[-2:] == [EscrowEvent.WORK_COMPLETED, EscrowEvent.FUNDS_RELEASED]


def test_start_work_moves_to_in_progress(service, make_escrow, freelancer):
    make_escrow()

    escrow = service.start_work(user=freelancer, escrow_id='job-1')
    assert escrow.status == Escrow.STATUS_WORK_IN_PROGRESS

    with pytest.raises(StateConflictError):
        service.start_work(user=freelancer, escrow_id='job-1')

    escrow = service.complete_work(user=freelancer, escrow_id='job-1')
    assert escrow.status == Escrow.STATUS_WORK_COMPLETED


def test_complete_work_allowed_at_deadline_but_not_after(service, make_escrow, freelancer, clock):
    deadline = clock.now + timedelta(days=1)
    make_escrow('on-time', deadline=deadline)
    make_escrow('late', deadline=deadline)

    clock.now = deadline
    service.complete_work(user=freelancer, escrow_id='on-time')

    clock.advance(seconds=1)
    with pytest.raises(DeadlineError):
        service.complete_work(user=freelancer, escrow_id='late')
    assert Escrow.objects.get(pk='late').status == Escrow.STATUS_FUNDED


def test_refund_only_after_deadline(service, make_escrow, ledger, client_user, clock):
    deadline = clock.now + timedelta(days=1)
    make_escrow(amount=1000, deadline=deadline)

    with pytest.raises(DeadlineError):
        service.request_refund(user=client_user, escrow_id='job-1')

    clock.now = deadline
    with pytest.raises(DeadlineError):
        service.request_refund(user=client_user, escrow_id='job-1')

    clock.advance(seconds=1)
    result = service.request_refund(user=client_user, escrow_id='job-1')

    assert result['refund_amount'] == 1000
    assert Escrow.objects.get(pk='job-1').status == Escrow.STATUS_REFUNDED
    assert ledger.balance_of(CLIENT_WALLET) == STARTING_BALANCE
    assert ledger.balance_of(ledger.custody_account) == 0
    assert events_for('job-1')[-1] == EscrowEvent.FUNDS_REFUNDED


def test_refund_rejected_once_work_is_completed(service, make_escrow, client_user, freelancer, clock):
    make_escrow()
    service.complete_work(user=freelancer, escrow_id='job-1')
    clock.advance(days=30)

    with pytest.raises(StateConflictError):
        service.request_refund(user=client_user, escrow_id='job-1')


def test_double_approval_pays_once(service, make_escrow, ledger, client_user, freelancer):
    make_escrow(amount=1000)
    service.complete_work(user=freelancer, escrow_id='job-1')
    service.approve_work(user=client_user, escrow_id='job-1')

    with pytest.raises(StateConflictError):
        service.approve_work(user=client_user, escrow_id='job-1')

    assert ledger.balance_of(FREELANCER_WALLET) == 800
    assert Transfer.objects.filter(reference='job-1', recipient=FREELANCER_WALLET).count() == 1


def test_only_parties_may_drive_transitions(service, make_escrow, client_user, freelancer, outsider):
    make_escrow()

    with pytest.raises(AuthorizationError):
        service.complete_work(user=client_user, escrow_id='job-1')
    with pytest.raises(AuthorizationError):
        service.complete_work(user=outsider, escrow_id='job-1')

    service.complete_work(user=freelancer, escrow_id='job-1')
    with pytest.raises(AuthorizationError):
        service.approve_work(user=freelancer, escrow_id='job-1')


def test_unknown_escrow(service, client_user):
    with pytest.raises(EscrowNotFoundError):
        service.approve_work(user=client_user, escrow_id='missing')
    with pytest.raises(EscrowNotFoundError):
        service.get_escrow('missing')


class TestCreateValidation:
    def test_duplicate_id(self, make_escrow, ledger):
        make_escrow()
        with pytest.raises(EscrowExistsError):
            make_escrow()
        assert ledger.balance_of(ledger.custody_account) == 1000

    def test_zero_deposit(self, make_escrow):
        with pytest.raises(InvalidAmountError):
            make_escrow(deposited_value=0)

    def test_deadline_must_be_in_future(self, make_escrow, clock):
        with pytest.raises(InvalidDeadlineError):
            make_escrow(deadline=clock.now)

    def test_freelancer_must_differ_from_client(self, service, client_user, clock):
        with pytest.raises(InvalidAddressError):
            service.create_escrow(
                user=client_user,
                escrow_id='self',
                freelancer=client_user,
                deadline=clock.now + timedelta(days=1),
                deposited_value=100,
            )

    def test_freelancer_must_use_another_wallet(self, service, client_user, ledger, clock):
        twin = User.objects.create_user(
            email='twin@example.com', password='pass12345', wallet_address=CLIENT_WALLET, user_type='freelancer'
        )
        with pytest.raises(InvalidAddressError):
            service.create_escrow(
                user=client_user,
                escrow_id='shared-wallet',
                freelancer=twin,
                deadline=clock.now + timedelta(days=1),
                deposited_value=100,
            )

        assert not Escrow.objects.filter(pk='shared-wallet').exists()
        assert ledger.balance_of(CLIENT_WALLET) == STARTING_BALANCE

    def test_freelancer_needs_wallet(self, service, client_user, clock):
        nobody = User.objects.create_user(email='nowallet@example.com', password='pass12345')
        with pytest.raises(InvalidAddressError):
            service.create_escrow(
                user=client_user,
                escrow_id='no-wallet',
                freelancer=nobody,
                deadline=clock.now + timedelta(days=1),
                deposited_value=100,
            )

    def test_insufficient_funds_leaves_nothing_behind(self, make_escrow, client_user):
        with pytest.raises(InsufficientFundsError):
            make_escrow(amount=STARTING_BALANCE + 1)

        assert not Escrow.objects.filter(pk='job-1').exists()
        assert not EscrowEvent.objects.exists()
        client_user.refresh_from_db()
        assert client_user.escrows_as_client == 0


def test_fee_snapshot_survives_fee_change(service, make_escrow, ledger, client_user, freelancer, arbitrator):
    make_escrow(amount=1000)
    service.set_platform_fee(user=arbitrator, fee_percent=10)

    service.complete_work(user=freelancer, escrow_id='job-1')
    service.approve_work(user=client_user, escrow_id='job-1')

    assert ledger.balance_of(PLATFORM_WALLET) == 200
    assert ledger.balance_of(FREELANCER_WALLET) == 800


def test_settlement_failure_rolls_back_release(service, make_escrow, ledger, client_user, freelancer):
    make_escrow(amount=1000)
    service.complete_work(user=freelancer, escrow_id='job-1')
    LedgerBalance.objects.filter(account=ledger.custody_account, asset=NATIVE_ASSET).update(balance=0)

    with pytest.raises(InsufficientFundsError):
        service.approve_work(user=client_user, escrow_id='job-1')

    escrow = Escrow.objects.get(pk='job-1')
    assert escrow.status == Escrow.STATUS_WORK_COMPLETED
    assert not escrow.client_approved
    assert EscrowEvent.FUNDS_RELEASED not in events_for('job-1')


class TestPlatformAdministration:
    def test_fee_bounds(self, service, arbitrator):
        config = service.set_platform_fee(user=arbitrator, fee_percent=30)
        assert config.fee_percent == 30

        with pytest.raises(FeeTooHighError):
            service.set_platform_fee(user=arbitrator, fee_percent=31)

    def test_admin_operations_require_arbitrator(self, service, client_user):
        with pytest.raises(AuthorizationError):
            service.set_platform_fee(user=client_user, fee_percent=1)
        with pytest.raises(AuthorizationError):
            service.set_platform_wallet(user=client_user, wallet='0xmine')
        with pytest.raises(AuthorizationError):
            service.pause(user=client_user)

    def test_wallet_and_token_must_be_valid(self, service, arbitrator):
        with pytest.raises(InvalidAddressError):
            service.set_platform_wallet(user=arbitrator, wallet='0x' + '0' * 40)
        with pytest.raises(InvalidAddressError):
            service.set_token(user=arbitrator, token='')

        config = service.set_token(user=arbitrator, token='0xnewtoken')
        assert config.token == '0xnewtoken'
        assert EscrowEvent.objects.filter(event=EscrowEvent.TOKEN_UPDATED).count() == 1

    def test_combined_update_is_all_or_nothing(self, service, arbitrator):
        with pytest.raises(InvalidAddressError):
            service.update_platform(user=arbitrator, fee_percent=25, wallet='0x' + '0' * 40)

        config = PlatformConfig.load()
        assert config.fee_percent == 20
        assert config.platform_wallet == PLATFORM_WALLET
        assert not EscrowEvent.objects.filter(event=EscrowEvent.PLATFORM_FEE_UPDATED).exists()

        config = service.update_platform(user=arbitrator, fee_percent=25, wallet='0xtreasury')
        assert (config.fee_percent, config.platform_wallet) == (25, '0xtreasury')
        updates = EscrowEvent.objects.filter(
            event__in=[EscrowEvent.PLATFORM_FEE_UPDATED, EscrowEvent.PLATFORM_WALLET_UPDATED]
        )
        assert updates.count() == 2

    def test_pause_blocks_creation_and_payouts(self, service, make_escrow, client_user, freelancer, arbitrator):
        make_escrow('before-pause')
        service.complete_work(user=freelancer, escrow_id='before-pause')
        service.pause(user=arbitrator)

        with pytest.raises(ContractPausedError):
            make_escrow('during-pause')
        with pytest.raises(ContractPausedError):
            service.approve_work(user=client_user, escrow_id='before-pause')
        with pytest.raises(ContractPausedError):
            service.pause(user=arbitrator)

        service.unpause(user=arbitrator)
        service.approve_work(user=client_user, escrow_id='before-pause')
        assert Escrow.objects.get(pk='before-pause').status == Escrow.STATUS_RELEASED

    def test_unpause_when_running_is_rejected(self, service, arbitrator):
        with pytest.raises(StateConflictError):
            service.unpause(user=arbitrator)


class TestEmergencyWithdraw:
    def test_sweeps_to_arbitrator_and_cancels(self, service, make_escrow, ledger, arbitrator):
        make_escrow(amount=1000)
        service.pause(user=arbitrator)

        result = service.emergency_withdraw(user=arbitrator, escrow_id='job-1')

        escrow = Escrow.objects.get(pk='job-1')
        assert result['amount'] == 1000
        assert escrow.status == Escrow.STATUS_CANCELLED
        assert escrow.amount == 0
        assert escrow.platform_fee + escrow.freelancer_amount == escrow.amount
        assert ledger.balance_of(ARBITRATOR_WALLET) == 1000
        assert ledger.balance_of(ledger.custody_account) == 0

        with pytest.raises(InvalidAmountError):
            service.emergency_withdraw(user=arbitrator, escrow_id='job-1')

    def test_nothing_to_sweep_after_release(self, service, make_escrow, client_user, freelancer, arbitrator):
        make_escrow()
        service.complete_work(user=freelancer, escrow_id='job-1')
        service.approve_work(user=client_user, escrow_id='job-1')

        with pytest.raises(InvalidAmountError):
            service.emergency_withdraw(user=arbitrator, escrow_id='job-1')

    def test_arbitrator_only(self, service, make_escrow, client_user):
        make_escrow()
        with pytest.raises(AuthorizationError):
            service.emergency_withdraw(user=client_user, escrow_id='job-1')


def test_audit_entries_are_append_only(make_escrow):
    make_escrow()
    entry = EscrowEvent.objects.first()

    entry.amount = 1
    with pytest.raises(ValueError):
        entry.save()
    with pytest.raises(ValueError):
        entry.delete()

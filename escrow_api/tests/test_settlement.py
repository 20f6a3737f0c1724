from datetime import timedelta
from unittest import mock

import pytest
import requests
from django.utils import timezone

from escrow.models import Escrow
from escrow.services import EscrowService
from settlement.errors import (
    InsufficientAllowanceError,
    InsufficientFundsError,
    SettlementError,
    UnsolicitedTransferError,
)
from settlement.models import Transfer
from settlement.providers import get_settlement_provider
from settlement.providers.custody_api import CustodyApiProvider
from settlement.providers.ledger import LedgerProvider
from settlement.services import SettlementService

from .conftest import CLIENT_WALLET, FREELANCER_WALLET, STARTING_BALANCE, TOKEN


def test_factory_returns_configured_providers(settings):
    settings.ESCROW_CUSTODY_ACCOUNT = 'vault'
    assert isinstance(get_settlement_provider('ledger'), LedgerProvider)
    assert get_settlement_provider('ledger').custody_account == 'vault'
    assert isinstance(get_settlement_provider('custody_api', base_url='https://custody.test/'), CustodyApiProvider)

    with pytest.raises(ValueError):
        get_settlement_provider('carrier-pigeon')


@pytest.mark.django_db
class TestLedgerProvider:
    def test_receive_and_pay_out(self, ledger):
        ledger.receive_native(CLIENT_WALLET, 700, reference='job-9')
        ledger.transfer_native(FREELANCER_WALLET, 300, reference='job-9')

        assert ledger.balance_of(CLIENT_WALLET) == STARTING_BALANCE - 700
        assert ledger.balance_of(ledger.custody_account) == 400
        assert ledger.balance_of(FREELANCER_WALLET) == 300
        assert list(Transfer.objects.filter(reference='job-9').values_list('amount', flat=True)) == [700, 300]

    def test_overdraft_is_rejected(self, ledger):
        with pytest.raises(InsufficientFundsError):
            ledger.transfer_native(FREELANCER_WALLET, 1)
        assert not Transfer.objects.exists()

    def test_direct_transfer_into_custody_is_rejected(self, ledger):
        with pytest.raises(UnsolicitedTransferError):
            ledger.transfer_native(ledger.custody_account, 10)
        with pytest.raises(UnsolicitedTransferError):
            ledger.transfer_token(TOKEN, ledger.custody_account, 10)

    def test_non_positive_amounts_are_rejected(self, ledger):
        with pytest.raises(SettlementError):
            ledger.receive_native(CLIENT_WALLET, 0)

    def test_transfer_from_consumes_allowance(self, ledger):
        with pytest.raises(InsufficientAllowanceError):
            ledger.transfer_token_from(TOKEN, CLIENT_WALLET, ledger.custody_account, 100)

        ledger.approve(TOKEN, CLIENT_WALLET, ledger.custody_account, 150)
        ledger.transfer_token_from(TOKEN, CLIENT_WALLET, ledger.custody_account, 100)

        assert ledger.allowance(TOKEN, CLIENT_WALLET, ledger.custody_account) == 50
        assert ledger.balance_of(ledger.custody_account, TOKEN) == 100
        with pytest.raises(InsufficientAllowanceError):
            ledger.transfer_token_from(TOKEN, CLIENT_WALLET, ledger.custody_account, 100)


@pytest.mark.django_db
def test_service_skips_zero_payouts(ledger):
    service = SettlementService(provider=ledger)

    assert service.pay(to=FREELANCER_WALLET, amount=0, is_token=False) is None
    assert not Transfer.objects.exists()


def custody_response(payload, status_code=200):
    response = mock.Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class TestCustodyApiProvider:
    @pytest.fixture
    def provider(self):
        return CustodyApiProvider(base_url='https://custody.test/v1/', api_key='secret', custody_account='vault')

    def test_native_transfer_posts_with_idempotency_key(self, provider):
        with mock.patch('settlement.providers.custody_api.requests.post') as post:
            post.return_value = custody_response({'status': 'success', 'data': {'transfer_id': 'tx-1'}})
            result = provider.transfer_native('0xbob', 250, reference='job-1')

        assert result == {'status': 'success', 'reference': 'job-1', 'transfer_id': 'tx-1', 'provider': 'custody_api'}
        url = post.call_args.args[0]
        kwargs = post.call_args.kwargs
        assert url == 'https://custody.test/v1/native/transfers'
        assert kwargs['json'] == {'from': 'vault', 'to': '0xbob', 'amount': '250', 'reference': 'job-1'}
        assert kwargs['headers']['Authorization'] == 'Bearer secret'
        assert kwargs['headers']['Idempotency-Key'].startswith('escrow-')

    def test_rejected_transfer_raises(self, provider):
        with mock.patch('settlement.providers.custody_api.requests.post') as post:
            post.return_value = custody_response({'status': 'failed', 'message': 'frozen account'})
            with pytest.raises(SettlementError, match='frozen account'):
                provider.transfer_token(TOKEN, '0xbob', 10)

    def test_network_failure_raises(self, provider):
        with mock.patch('settlement.providers.custody_api.requests.post', side_effect=requests.exceptions.Timeout('slow')):
            with pytest.raises(SettlementError):
                provider.receive_native('0xalice', 10)

    def test_allowance_lookup(self, provider):
        with mock.patch('settlement.providers.custody_api.requests.get') as get:
            get.return_value = custody_response({'status': 'success', 'data': {'allowance': '420'}})
            assert provider.allowance(TOKEN, '0xalice', 'vault') == 420

        assert get.call_args.kwargs['params'] == {'owner': '0xalice', 'spender': 'vault'}

    @pytest.mark.django_db
    def test_failed_funding_leaves_no_escrow(self, provider, platform, client_user, freelancer):
        service = EscrowService(settlement=SettlementService(provider=provider))

        with mock.patch('settlement.providers.custody_api.requests.post') as post:
            post.return_value = custody_response({'status': 'failed', 'message': 'card declined'})
            with pytest.raises(SettlementError):
                service.create_escrow(
                    user=client_user,
                    escrow_id='remote-1',
                    freelancer=freelancer,
                    deadline=timezone.now() + timedelta(days=1),
                    deposited_value=500,
                )

        assert not Escrow.objects.filter(pk='remote-1').exists()
        assert post.call_args.kwargs['json']['from'] == CLIENT_WALLET

from datetime import timedelta
from unittest import mock

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from escrow.models import PlatformConfig
from escrow.services import EscrowService
from settlement.models import NATIVE_ASSET, LedgerBalance
from settlement.providers.ledger import LedgerProvider
from settlement.services import SettlementService

User = get_user_model()

CLIENT_WALLET = '0xclient'
FREELANCER_WALLET = '0xfreelancer'
ARBITRATOR_WALLET = '0xarbitrator'
PLATFORM_WALLET = '0xplatform'
TOKEN = '0xtoken'
STARTING_BALANCE = 100_000


class Clock:
    """Controllable replacement for ``timezone.now``."""

    def __init__(self):
        self.now = timezone.now()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    clock = Clock()
    with mock.patch('django.utils.timezone.now', side_effect=clock):
        yield clock


@pytest.fixture
def client_user(db):
    return User.objects.create_user(email='client@example.com', password='pass12345', wallet_address=CLIENT_WALLET, user_type='client')


@pytest.fixture
def freelancer(db):
    return User.objects.create_user(email='freelancer@example.com', password='pass12345', wallet_address=FREELANCER_WALLET, user_type='freelancer')


@pytest.fixture
def arbitrator(db):
    return User.objects.create_user(email='arbitrator@example.com', password='pass12345', wallet_address=ARBITRATOR_WALLET)


@pytest.fixture
def outsider(db):
    return User.objects.create_user(email='outsider@example.com', password='pass12345', wallet_address='0xoutsider')


@pytest.fixture
def platform(db, arbitrator):
    config = PlatformConfig.load()
    config.fee_percent = 20
    config.platform_wallet = PLATFORM_WALLET
    config.token = TOKEN
    config.arbitrator = arbitrator
    config.save()
    return config


@pytest.fixture
def ledger(db):
    provider = LedgerProvider()
    LedgerBalance.objects.create(account=CLIENT_WALLET, asset=NATIVE_ASSET, balance=STARTING_BALANCE)
    LedgerBalance.objects.create(account=CLIENT_WALLET, asset=TOKEN, balance=STARTING_BALANCE)
    return provider


@pytest.fixture
def service(ledger, platform):
    return EscrowService(settlement=SettlementService(provider=ledger))


@pytest.fixture
def make_escrow(service, client_user, freelancer, clock):
    def make(escrow_id='job-1', amount=1000, deadline=None, **kwargs):
        kwargs.setdefault('deposited_value', 0 if kwargs.get('use_token') else amount)
        return service.create_escrow(
            user=client_user,
            escrow_id=escrow_id,
            freelancer=freelancer,
            deadline=deadline or clock.now + timedelta(days=7),
            **kwargs
        )
    return make


@pytest.fixture
def api_client():
    return APIClient()

import logging

from django.conf import settings

from .providers import get_settlement_provider

logger = logging.getLogger(__name__)


class SettlementService:
    """
    Provider adapter. This class should NOT create or update Escrow/Milestone records.
    It only calls the configured settlement provider.
    """
    def __init__(self, provider_name=None, provider=None):
        if provider is None:
            provider = get_settlement_provider(provider_name or settings.SETTLEMENT_PROVIDER)
        self.provider = provider

    @property
    def custody_account(self):
        return self.provider.custody_account

    def collect_native(self, *, sender, amount, reference=''):
        return self.provider.receive_native(sender, amount, reference=reference)

    def collect_token(self, *, token, owner, amount, reference=''):
        return self.provider.transfer_token_from(token, owner, self.custody_account, amount, reference=reference)

    def allowance(self, *, token, owner):
        return self.provider.allowance(token, owner, self.custody_account)

    def pay(self, *, to, amount, is_token, token='', reference=''):
        """
        Pay ``amount`` out of custody with the primitive matching ``is_token``.
        Zero amounts are skipped and return ``None``.
        """
        if amount == 0:
            logger.debug(f"Skipping zero-amount payout to {to} ({reference})")
            return None
        if is_token:
            return self.provider.transfer_token(token, to, amount, reference=reference)
        return self.provider.transfer_native(to, amount, reference=reference)

import logging

from django.db import transaction
from django.db.models import F

from .base import BaseSettlementProvider
from ..errors import InsufficientAllowanceError, InsufficientFundsError, SettlementError, UnsolicitedTransferError
from ..models import NATIVE_ASSET, LedgerBalance, TokenAllowance, Transfer

logger = logging.getLogger(__name__)


class LedgerProvider(BaseSettlementProvider):
    """
    Settlement against the database ledger (``LedgerBalance`` rows).

    Each movement runs in its own savepoint so a failed debit never leaves a
    dangling credit. Value can only enter custody through ``receive_native``
    or ``transfer_token_from``; a plain transfer addressed to the custody
    account is rejected.
    """
    name = 'ledger'

    def receive_native(self, sender, amount, reference=''):
        return self._move(NATIVE_ASSET, sender, self.custody_account, amount, reference)

    def transfer_native(self, to, amount, reference=''):
        self._reject_custody_recipient(to)
        return self._move(NATIVE_ASSET, self.custody_account, to, amount, reference)

    def transfer_token(self, token, to, amount, reference=''):
        self._reject_custody_recipient(to)
        return self._move(token, self.custody_account, to, amount, reference)

    def transfer_token_from(self, token, owner, to, amount, reference=''):
        with transaction.atomic():
            updated = TokenAllowance.objects.filter(
                token=token,
                owner=owner,
                spender=self.custody_account,
                amount__gte=amount,
            ).update(amount=F('amount') - amount)
            if not updated:
                raise InsufficientAllowanceError(
                    "Token allowance is lower than the requested amount",
                    token=token, owner=owner, amount=amount,
                )
            return self._move(token, owner, to, amount, reference)

    def allowance(self, token, owner, spender):
        row = TokenAllowance.objects.filter(token=token, owner=owner, spender=spender).first()
        return row.amount if row else 0

    def approve(self, token, owner, spender, amount):
        """Token ``approve``: set the allowance ``spender`` may pull from ``owner``."""
        if amount < 0:
            raise SettlementError("Allowance cannot be negative")
        allowance, _ = TokenAllowance.objects.update_or_create(
            token=token, owner=owner, spender=spender, defaults={'amount': amount},
        )
        return allowance

    def balance_of(self, account, asset=NATIVE_ASSET):
        row = LedgerBalance.objects.filter(account=account, asset=asset).first()
        return row.balance if row else 0

    def _reject_custody_recipient(self, to):
        if to == self.custody_account:
            raise UnsolicitedTransferError("Direct transfers into escrow custody are not accepted")

    def _move(self, asset, sender, recipient, amount, reference):
        if amount <= 0:
            raise SettlementError("Transfer amount must be positive", amount=amount)

        with transaction.atomic():
            debited = LedgerBalance.objects.filter(
                account=sender, asset=asset, balance__gte=amount,
            ).update(balance=F('balance') - amount)
            if not debited:
                raise InsufficientFundsError(
                    f"{sender} cannot cover {amount} {asset}",
                    account=sender, asset=asset, amount=amount,
                )

            credit, _ = LedgerBalance.objects.select_for_update().get_or_create(account=recipient, asset=asset)
            credit.balance = F('balance') + amount
            credit.save(update_fields=['balance', 'updated_at'])

            record = Transfer.objects.create(
                asset=asset,
                sender=sender,
                recipient=recipient,
                amount=amount,
                reference=reference,
                provider=self.name,
            )

        logger.info(f"Ledger transfer {record.id}: {amount} {asset} {sender} -> {recipient} ({reference})")
        return {
            'status': 'success',
            'reference': reference,
            'transfer_id': record.id,
            'provider': self.name,
        }

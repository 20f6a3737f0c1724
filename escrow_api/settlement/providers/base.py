from abc import ABC, abstractmethod

from django.conf import settings


class BaseSettlementProvider(ABC):
    """
    Abstract base class for settlement providers.

    A provider moves value in and out of the escrow custody account. Every
    method is atomic and fail-closed: it either completes or raises
    ``SettlementError`` without a partial effect.
    """
    name = ''

    def __init__(self, **kwargs):
        """Initialize the provider with configuration."""
        self.config = kwargs
        self.custody_account = kwargs.get('custody_account') or settings.ESCROW_CUSTODY_ACCOUNT

    @abstractmethod
    def receive_native(self, sender, amount, reference=''):
        """
        Take native value attached to an escrow operation into custody.

        Args:
            sender: Account the value comes from
            amount: Amount in the smallest unit
            reference: Escrow key the value is attached to
        """

    @abstractmethod
    def transfer_native(self, to, amount, reference=''):
        """
        Pay native value out of custody.

        Args:
            to: Recipient account
            amount: Amount in the smallest unit
            reference: Escrow key the payout belongs to
        """

    @abstractmethod
    def transfer_token(self, token, to, amount, reference=''):
        """
        Pay fungible tokens out of custody.

        Args:
            token: Token handle
            to: Recipient account
            amount: Amount in the token's smallest unit
            reference: Escrow key the payout belongs to
        """

    @abstractmethod
    def transfer_token_from(self, token, owner, to, amount, reference=''):
        """
        Pull tokens from ``owner`` using the allowance granted to custody.

        Args:
            token: Token handle
            owner: Account that granted the allowance
            to: Recipient account (custody when funding an escrow)
            amount: Amount in the token's smallest unit
            reference: Escrow key the pull belongs to
        """

    @abstractmethod
    def allowance(self, token, owner, spender):
        """
        Returns:
            int: Amount of ``token`` that ``spender`` may pull from ``owner``
        """

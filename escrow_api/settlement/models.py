from django.db import models


NATIVE_ASSET = 'native'


class LedgerBalance(models.Model):
    """
    Balance of one asset held by one account in the built-in ledger.
    ``asset`` is ``NATIVE_ASSET`` for native currency or a token handle.
    """
    account = models.CharField(max_length=128)
    asset = models.CharField(max_length=128, default=NATIVE_ASSET)
    balance = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['account', 'asset']

    def __str__(self):
        return f"{self.account} [{self.asset}]: {self.balance}"


class TokenAllowance(models.Model):
    """
    Amount of ``token`` that ``spender`` may pull from ``owner`` (token ``approve``).
    """
    token = models.CharField(max_length=128)
    owner = models.CharField(max_length=128)
    spender = models.CharField(max_length=128)
    amount = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ['token', 'owner', 'spender']

    def __str__(self):
        return f"{self.owner} -> {self.spender} [{self.token}]: {self.amount}"


class Transfer(models.Model):
    """
    Record of a completed value movement. ``reference`` is the escrow key the
    transfer was issued for.
    """
    asset = models.CharField(max_length=128, default=NATIVE_ASSET)
    sender = models.CharField(max_length=128)
    recipient = models.CharField(max_length=128)
    amount = models.BigIntegerField()
    reference = models.CharField(max_length=128, blank=True, db_index=True)
    provider = models.CharField(max_length=50, blank=True)
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.amount} {self.asset} {self.sender} -> {self.recipient}"

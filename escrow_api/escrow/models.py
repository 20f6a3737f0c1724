from django.conf import settings
from django.db import models
from django.db.models import Q
from auditlog.registry import auditlog


class EscrowQuerySet(models.QuerySet):
    def for_participant(self, user):
        return self.filter(Q(client=user) | Q(freelancer=user))


class Escrow(models.Model):
    STATUS_CREATED = 'created'
    STATUS_FUNDED = 'funded'
    STATUS_WORK_IN_PROGRESS = 'work_in_progress'
    STATUS_WORK_COMPLETED = 'work_completed'
    STATUS_DISPUTED = 'disputed'
    STATUS_RELEASED = 'released'
    STATUS_REFUNDED = 'refunded'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = (
        (STATUS_CREATED, 'Created'),
        (STATUS_FUNDED, 'Funded'),
        (STATUS_WORK_IN_PROGRESS, 'Work In Progress'),
        (STATUS_WORK_COMPLETED, 'Work Completed'),
        (STATUS_DISPUTED, 'Disputed'),
        (STATUS_RELEASED, 'Released'),
        (STATUS_REFUNDED, 'Refunded'),
        (STATUS_CANCELLED, 'Cancelled'),
    )
    TERMINAL_STATUSES = (STATUS_RELEASED, STATUS_REFUNDED, STATUS_CANCELLED)

    # caller-supplied key, unique per agreement
    id = models.CharField(primary_key=True, max_length=128)
    client = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='client_escrows')
    freelancer = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='freelancer_escrows')
    amount = models.PositiveBigIntegerField()
    platform_fee = models.PositiveBigIntegerField()
    freelancer_amount = models.PositiveBigIntegerField()
    fee_percent = models.PositiveSmallIntegerField()
    settled_amount = models.PositiveBigIntegerField(default=0)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_CREATED)
    created_at = models.DateTimeField()
    deadline = models.DateTimeField()
    client_approved = models.BooleanField(default=False)
    freelancer_completed = models.BooleanField(default=False)
    is_token_escrow = models.BooleanField(default=False)
    token = models.CharField(max_length=128, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = EscrowQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Escrow {self.id} ({self.client} -> {self.freelancer}, {self.amount})"

    @property
    def outstanding_amount(self):
        """Value still in custody for this escrow."""
        return self.amount - self.settled_amount

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class PlatformConfig(models.Model):
    """
    Singleton holding the administrative surface: fee, wallet, settlement token,
    pause flag and the arbitrator (owner) account.
    """
    fee_percent = models.PositiveSmallIntegerField()
    platform_wallet = models.CharField(max_length=128)
    token = models.CharField(max_length=128, blank=True)
    paused = models.BooleanField(default=False)
    arbitrator = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
    )
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Platform config (fee {self.fee_percent}%, paused={self.paused})"

    @classmethod
    def load(cls, for_update=False):
        queryset = cls.objects.select_for_update() if for_update else cls.objects
        config, _ = queryset.get_or_create(
            pk=1,
            defaults={
                'fee_percent': settings.PLATFORM_FEE_PERCENT,
                'platform_wallet': settings.PLATFORM_WALLET,
                'token': settings.SETTLEMENT_TOKEN,
            },
        )
        return config


class EscrowEvent(models.Model):
    """
    Append-only audit entry. Written by ``escrow.audit.record`` for every state
    transition; never updated, never deleted, never read back by the services.
    """
    ESCROW_CREATED = 'escrow_created'
    ESCROW_FUNDED = 'escrow_funded'
    WORK_STARTED = 'work_started'
    WORK_COMPLETED = 'work_completed'
    FUNDS_RELEASED = 'funds_released'
    FUNDS_REFUNDED = 'funds_refunded'
    DISPUTE_RAISED = 'dispute_raised'
    DISPUTE_RESOLVED = 'dispute_resolved'
    MILESTONE_COMPLETED = 'milestone_completed'
    MILESTONE_APPROVED = 'milestone_approved'
    EMERGENCY_WITHDRAWAL = 'emergency_withdrawal'
    PLATFORM_FEE_UPDATED = 'platform_fee_updated'
    PLATFORM_WALLET_UPDATED = 'platform_wallet_updated'
    TOKEN_UPDATED = 'token_updated'
    PAUSED = 'paused'
    UNPAUSED = 'unpaused'

    EVENT_CHOICES = (
        (ESCROW_CREATED, 'Escrow Created'),
        (ESCROW_FUNDED, 'Escrow Funded'),
        (WORK_STARTED, 'Work Started'),
        (WORK_COMPLETED, 'Work Completed'),
        (FUNDS_RELEASED, 'Funds Released'),
        (FUNDS_REFUNDED, 'Funds Refunded'),
        (DISPUTE_RAISED, 'Dispute Raised'),
        (DISPUTE_RESOLVED, 'Dispute Resolved'),
        (MILESTONE_COMPLETED, 'Milestone Completed'),
        (MILESTONE_APPROVED, 'Milestone Approved'),
        (EMERGENCY_WITHDRAWAL, 'Emergency Withdrawal'),
        (PLATFORM_FEE_UPDATED, 'Platform Fee Updated'),
        (PLATFORM_WALLET_UPDATED, 'Platform Wallet Updated'),
        (TOKEN_UPDATED, 'Token Updated'),
        (PAUSED, 'Paused'),
        (UNPAUSED, 'Unpaused'),
    )

    event = models.CharField(max_length=40, choices=EVENT_CHOICES)
    escrow_key = models.CharField(max_length=128, blank=True, db_index=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='escrow_events',
    )
    amount = models.PositiveBigIntegerField(null=True, blank=True)
    data = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return f"{self.event} {self.escrow_key}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Audit entries are immutable")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit entries cannot be deleted")


auditlog.register(Escrow)
auditlog.register(PlatformConfig)

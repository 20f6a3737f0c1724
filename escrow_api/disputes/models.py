from django.conf import settings
from django.db import models
from auditlog.registry import auditlog

from escrow.models import Escrow


class Dispute(models.Model):
    """
    At most one dispute per escrow. Created and resolved exclusively by the
    escrow state machine; a resolved dispute is never reopened.
    """
    escrow = models.OneToOneField(Escrow, on_delete=models.PROTECT, primary_key=True, related_name='dispute')
    raised_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='disputes')
    reason = models.TextField()
    raised_at = models.DateTimeField()

    resolved = models.BooleanField(default=False)
    resolved_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='resolved_disputes')
    resolved_at = models.DateTimeField(null=True, blank=True)
    release_to_freelancer = models.BooleanField(null=True, blank=True)
    freelancer_percentage = models.PositiveSmallIntegerField(null=True, blank=True)

    def __str__(self):
        return f"Dispute for {self.escrow_id} by {self.raised_by}"


auditlog.register(Dispute)

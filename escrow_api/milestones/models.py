from django.db import models
from auditlog.registry import auditlog


class Milestone(models.Model):
    """
    One deliverable of an escrow. Milestones are keyed by the escrow key and
    their position; the tracker never holds a reference to the escrow row.
    """
    escrow_key = models.CharField(max_length=128, db_index=True)
    index = models.PositiveIntegerField()
    description = models.TextField()
    amount = models.PositiveBigIntegerField()
    due_date = models.DateTimeField()
    completed = models.BooleanField(default=False)
    approved = models.BooleanField(default=False)
    completed_at = models.DateTimeField(null=True, blank=True)
    approved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        unique_together = ['escrow_key', 'index']
        ordering = ['escrow_key', 'index']

    def __str__(self):
        return f"Milestone {self.index} of {self.escrow_key} ({self.amount})"


auditlog.register(Milestone)

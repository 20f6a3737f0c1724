from rest_framework import serializers

from .models import Milestone


class MilestoneSerializer(serializers.ModelSerializer):
    class Meta:
        model = Milestone
        fields = (
            "index",
            "description",
            "amount",
            "due_date",
            "completed",
            "approved",
            "completed_at",
            "approved_at",
        )
        read_only_fields = fields

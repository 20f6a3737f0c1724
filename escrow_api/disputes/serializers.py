from rest_framework import serializers

from .models import Dispute


class DisputeCreateSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=False)


class DisputeDetailSerializer(serializers.ModelSerializer):
    """
    Read-only view of a dispute, including the recorded outcome once the
    arbitrator has resolved it.
    """
    escrow_id = serializers.CharField(read_only=True)
    escrow_status = serializers.CharField(source='escrow.status', read_only=True)
    raised_by = serializers.StringRelatedField()
    resolved_by = serializers.StringRelatedField()

    class Meta:
        model = Dispute
        fields = [
            'escrow_id', 'escrow_status', 'raised_by', 'reason', 'raised_at',
            'resolved', 'resolved_by', 'resolved_at', 'release_to_freelancer', 'freelancer_percentage',
        ]
        read_only_fields = fields

from django.contrib.auth import get_user_model
from rest_framework import serializers

from milestones.serializers import MilestoneSerializer
from .models import Escrow, PlatformConfig
from .validation import MAX_AMOUNT

User = get_user_model()


class EscrowSerializer(serializers.ModelSerializer):
    client_id = serializers.IntegerField(read_only=True)
    client_email = serializers.EmailField(source="client.email", read_only=True)
    client_wallet = serializers.CharField(source="client.wallet_address", read_only=True)
    freelancer_id = serializers.IntegerField(read_only=True)
    freelancer_email = serializers.EmailField(source="freelancer.email", read_only=True)
    freelancer_wallet = serializers.CharField(source="freelancer.wallet_address", read_only=True)
    outstanding_amount = serializers.IntegerField(read_only=True)
    is_terminal = serializers.BooleanField(read_only=True)

    class Meta:
        model = Escrow
        fields = (
            "id",
            "client_id",
            "client_email",
            "client_wallet",
            "freelancer_id",
            "freelancer_email",
            "freelancer_wallet",
            "amount",
            "platform_fee",
            "freelancer_amount",
            "fee_percent",
            "settled_amount",
            "outstanding_amount",
            "status",
            "is_terminal",
            "created_at",
            "deadline",
            "client_approved",
            "freelancer_completed",
            "is_token_escrow",
            "token",
            "updated_at",
        )
        read_only_fields = fields


class EscrowDetailSerializer(EscrowSerializer):
    milestones = serializers.SerializerMethodField()

    class Meta(EscrowSerializer.Meta):
        fields = EscrowSerializer.Meta.fields + ("milestones",)
        read_only_fields = fields

    def get_milestones(self, obj):
        milestones = self.context.get("milestones", [])
        return MilestoneSerializer(milestones, many=True).data


class EscrowCreateSerializer(serializers.Serializer):
    """
    Input for creating a funded escrow. The three milestone lists are passed
    through as given; length and sum checks belong to the service.
    """
    escrow_id = serializers.CharField(max_length=128)
    freelancer = serializers.PrimaryKeyRelatedField(queryset=User.objects.all())
    deadline = serializers.DateTimeField()
    use_token = serializers.BooleanField(default=False)
    deposited_value = serializers.IntegerField(required=False, default=0, min_value=0, max_value=MAX_AMOUNT)
    milestone_descriptions = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    milestone_amounts = serializers.ListField(
        child=serializers.IntegerField(min_value=0, max_value=MAX_AMOUNT),
        required=False,
        default=list,
    )
    milestone_due_dates = serializers.ListField(child=serializers.DateTimeField(), required=False, default=list)


class DisputeResolutionSerializer(serializers.Serializer):
    release_to_freelancer = serializers.BooleanField()
    freelancer_percentage = serializers.IntegerField(required=False, default=0)


class PlatformConfigSerializer(serializers.ModelSerializer):
    arbitrator_email = serializers.EmailField(source="arbitrator.email", read_only=True, default=None)

    class Meta:
        model = PlatformConfig
        fields = ("fee_percent", "platform_wallet", "token", "paused", "arbitrator_email", "updated_at")
        read_only_fields = ("paused", "arbitrator_email", "updated_at")


class PlatformConfigUpdateSerializer(serializers.Serializer):
    fee_percent = serializers.IntegerField(required=False)
    platform_wallet = serializers.CharField(max_length=128, required=False)
    token = serializers.CharField(max_length=128, required=False)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError("Provide at least one of fee_percent, platform_wallet or token.")
        return attrs

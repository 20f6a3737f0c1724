from rest_framework import generics, permissions, status, views
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from .models import Escrow, PlatformConfig
from .permissions import IsEscrowParticipantOrArbitrator
from .serializers import (
    EscrowCreateSerializer,
    EscrowDetailSerializer,
    EscrowSerializer,
    PlatformConfigSerializer,
    PlatformConfigUpdateSerializer,
)
from .services import EscrowService

ESCROW_ID_PARAMETER = openapi.Parameter(
    'pk',
    openapi.IN_PATH,
    description="Escrow identifier",
    type=openapi.TYPE_STRING,
)

TRANSITION_RESPONSES = {
    200: openapi.Response(description="Transition applied"),
    400: "Validation error",
    403: "Forbidden",
    404: "Not found",
    409: "Invalid state or deadline",
    502: "Settlement failed",
}


class EscrowListCreateView(generics.ListCreateAPIView):
    """List the escrows the current user takes part in, or create a funded one."""

    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]
    filterset_fields = ['status', 'is_token_escrow']

    def get_serializer_class(self):
        if self.request.method == 'POST':
            return EscrowCreateSerializer
        return EscrowSerializer

    @swagger_auto_schema(
        operation_summary="List escrows for the current user",
        responses={200: EscrowSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    @swagger_auto_schema(
        operation_summary="Create and fund an escrow",
        request_body=EscrowCreateSerializer,
        responses={201: EscrowSerializer(), 400: "Validation error", 409: "Identifier in use or paused"}
    )
    def post(self, request, *args, **kwargs):
        return super().post(request, *args, **kwargs)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        escrow = EscrowService().create_escrow(user=request.user, **serializer.validated_data)
        return Response(
            {"detail": "Escrow created and funded.", "escrow": EscrowSerializer(escrow).data},
            status=status.HTTP_201_CREATED,
        )

    def get_queryset(self):
        user = self.request.user
        if user.is_staff:
            return Escrow.objects.select_related("client", "freelancer")
        return EscrowService().escrows_for(user)


class EscrowDetailView(views.APIView):
    permission_classes = [permissions.IsAuthenticated, IsEscrowParticipantOrArbitrator]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Retrieve an escrow with its milestones",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses={200: EscrowDetailSerializer(), 403: "Forbidden", 404: "Not found"}
    )
    def get(self, request, pk):
        service = EscrowService()
        escrow = service.get_escrow(pk)
        self.check_object_permissions(request, escrow)
        serializer = EscrowDetailSerializer(escrow, context={"milestones": service.get_milestones(pk)})
        return Response(serializer.data)


class EscrowTransitionView(views.APIView):
    """
    Runs one state-machine operation against an escrow. Authorization,
    state and deadline checks all live in the service.
    """
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]
    operation = None

    def post(self, request, pk):
        service = EscrowService()
        result = getattr(service, self.operation)(user=request.user, escrow_id=pk)

        payload = {"status": "success", "escrow": EscrowSerializer(service.get_escrow(pk)).data}
        if isinstance(result, dict):
            payload["settlement"] = {k: v for k, v in result.items() if k not in ("status", "escrow_id")}
        return Response(payload, status=status.HTTP_200_OK)


class StartWorkView(EscrowTransitionView):
    operation = 'start_work'

    @swagger_auto_schema(
        operation_summary="Freelancer starts work on a funded escrow",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses=TRANSITION_RESPONSES
    )
    def post(self, request, pk):
        return super().post(request, pk)


class CompleteWorkView(EscrowTransitionView):
    operation = 'complete_work'

    @swagger_auto_schema(
        operation_summary="Freelancer marks the work as completed",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses=TRANSITION_RESPONSES
    )
    def post(self, request, pk):
        return super().post(request, pk)


class ApproveWorkView(EscrowTransitionView):
    operation = 'approve_work'

    @swagger_auto_schema(
        operation_summary="Client approves completed work and releases the funds",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses=TRANSITION_RESPONSES
    )
    def post(self, request, pk):
        return super().post(request, pk)


class RequestRefundView(EscrowTransitionView):
    operation = 'request_refund'

    @swagger_auto_schema(
        operation_summary="Client reclaims the funds after the deadline",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses=TRANSITION_RESPONSES
    )
    def post(self, request, pk):
        return super().post(request, pk)


class EmergencyWithdrawView(EscrowTransitionView):
    operation = 'emergency_withdraw'

    @swagger_auto_schema(
        operation_summary="Arbitrator sweeps the escrow balance and cancels it",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses=TRANSITION_RESPONSES
    )
    def post(self, request, pk):
        return super().post(request, pk)


class PlatformConfigView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Show the platform configuration",
        responses={200: PlatformConfigSerializer()}
    )
    def get(self, request):
        return Response(PlatformConfigSerializer(PlatformConfig.load()).data)

    @swagger_auto_schema(
        operation_summary="Update fee, platform wallet or settlement token (arbitrator only)",
        request_body=PlatformConfigUpdateSerializer,
        responses={200: PlatformConfigSerializer(), 400: "Validation error", 403: "Forbidden"}
    )
    def patch(self, request):
        serializer = PlatformConfigUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        config = EscrowService().update_platform(
            user=request.user,
            fee_percent=data.get('fee_percent'),
            wallet=data.get('platform_wallet'),
            token=data.get('token'),
        )
        return Response(PlatformConfigSerializer(config).data)


class PauseView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Pause escrow operations (arbitrator only)",
        responses={200: PlatformConfigSerializer(), 403: "Forbidden", 409: "Already paused"}
    )
    def post(self, request):
        config = EscrowService().pause(user=request.user)
        return Response(PlatformConfigSerializer(config).data)


class UnpauseView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Resume escrow operations (arbitrator only)",
        responses={200: PlatformConfigSerializer(), 403: "Forbidden", 409: "Not paused"}
    )
    def post(self, request):
        config = EscrowService().unpause(user=request.user)
        return Response(PlatformConfigSerializer(config).data)

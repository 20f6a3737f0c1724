from rest_framework import generics, permissions, status, filters, views
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication
from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from escrow.permissions import IsEscrowParticipantOrArbitrator, is_arbitrator
from escrow.serializers import DisputeResolutionSerializer
from escrow.services import EscrowService
from . import serializers as my_serializers
from .models import Dispute

ESCROW_ID_PARAMETER = openapi.Parameter(
    'pk',
    openapi.IN_PATH,
    description="Escrow identifier",
    type=openapi.TYPE_STRING,
)


class EscrowDisputeAPIView(views.APIView):
    """
    Read or raise the dispute of one escrow. Either party may raise it while
    work is in progress or completed; there is at most one per escrow.
    """
    permission_classes = [permissions.IsAuthenticated, IsEscrowParticipantOrArbitrator]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Retrieve the dispute of an escrow",
        manual_parameters=[ESCROW_ID_PARAMETER],
        responses={200: my_serializers.DisputeDetailSerializer(), 404: "Not found"}
    )
    def get(self, request, pk):
        service = EscrowService()
        dispute = service.get_dispute(pk)
        self.check_object_permissions(request, dispute)
        return Response(my_serializers.DisputeDetailSerializer(dispute).data)

    @swagger_auto_schema(
        operation_summary="Raise a dispute on an escrow",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=my_serializers.DisputeCreateSerializer,
        responses={
            201: openapi.Response(description="Dispute raised"),
            400: "Validation error",
            403: "Forbidden",
            409: "Invalid state",
        }
    )
    def post(self, request, pk):
        serializer = my_serializers.DisputeCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dispute = EscrowService().raise_dispute(
            user=request.user,
            escrow_id=pk,
            reason=serializer.validated_data['reason'],
        )
        return Response({
            "detail": "Dispute raised successfully.",
            "dispute": my_serializers.DisputeDetailSerializer(dispute).data,
        }, status=status.HTTP_201_CREATED)


class ResolveDisputeAPIView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Resolve a dispute (arbitrator only)",
        manual_parameters=[ESCROW_ID_PARAMETER],
        request_body=DisputeResolutionSerializer,
        responses={
            200: openapi.Response(description="Dispute resolved and funds settled"),
            400: "Validation error",
            403: "Forbidden",
            409: "Invalid state",
        }
    )
    def post(self, request, pk):
        serializer = DisputeResolutionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        service = EscrowService()
        result = service.resolve_dispute(user=request.user, escrow_id=pk, **serializer.validated_data)
        return Response({
            "status": "success",
            "settlement": result,
            "dispute": my_serializers.DisputeDetailSerializer(service.get_dispute(pk)).data,
        })


class ListDisputesAPIView(generics.ListAPIView):
    """
    List disputes.
    - Staff and the arbitrator see all disputes.
    - Clients/Freelancers see only disputes on their own escrows.
    """
    serializer_class = my_serializers.DisputeDetailSerializer
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]
    filter_backends = [filters.OrderingFilter, DjangoFilterBackend]
    filterset_fields = ['resolved']
    ordering_fields = ['raised_at', 'resolved_at']
    ordering = ['-raised_at']

    @swagger_auto_schema(
        operation_summary="List disputes with optional filtering",
        manual_parameters=[
            openapi.Parameter(
                'resolved',
                openapi.IN_QUERY,
                description="Filter disputes by resolution state",
                type=openapi.TYPE_BOOLEAN
            ),
            openapi.Parameter(
                'ordering',
                openapi.IN_QUERY,
                description="Order results by one of: raised_at, resolved_at",
                type=openapi.TYPE_STRING
            ),
        ],
        responses={200: my_serializers.DisputeDetailSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return super().get(request, *args, **kwargs)

    def get_queryset(self):
        user = self.request.user
        queryset = Dispute.objects.select_related('escrow', 'raised_by', 'resolved_by')
        if user.is_staff or is_arbitrator(user):
            return queryset

        return queryset.filter(
            Q(escrow__client=user) | Q(escrow__freelancer=user)
        )

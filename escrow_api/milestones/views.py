from rest_framework import permissions, status, views
from rest_framework.response import Response
from rest_framework_simplejwt.authentication import JWTAuthentication
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from escrow.permissions import IsEscrowParticipantOrArbitrator
from escrow.serializers import EscrowSerializer
from escrow.services import EscrowService
from .serializers import MilestoneSerializer

MILESTONE_PARAMETERS = [
    openapi.Parameter('pk', openapi.IN_PATH, description="Escrow identifier", type=openapi.TYPE_STRING),
    openapi.Parameter('index', openapi.IN_PATH, description="Milestone position", type=openapi.TYPE_INTEGER),
]


class MilestoneListView(views.APIView):
    permission_classes = [permissions.IsAuthenticated, IsEscrowParticipantOrArbitrator]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="List the milestones of an escrow",
        manual_parameters=MILESTONE_PARAMETERS[:1],
        responses={200: MilestoneSerializer(many=True), 404: "Not found"}
    )
    def get(self, request, pk):
        service = EscrowService()
        self.check_object_permissions(request, service.get_escrow(pk))
        milestones = service.get_milestones(pk)
        return Response({"count": len(milestones), "results": MilestoneSerializer(milestones, many=True).data})


class MilestoneDetailView(views.APIView):
    permission_classes = [permissions.IsAuthenticated, IsEscrowParticipantOrArbitrator]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Retrieve one milestone",
        manual_parameters=MILESTONE_PARAMETERS,
        responses={200: MilestoneSerializer(), 404: "Not found"}
    )
    def get(self, request, pk, index):
        service = EscrowService()
        self.check_object_permissions(request, service.get_escrow(pk))
        return Response(MilestoneSerializer(service.get_milestone(pk, index)).data)


class MilestoneCompleteView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Freelancer marks a milestone as completed",
        manual_parameters=MILESTONE_PARAMETERS,
        responses={200: MilestoneSerializer(), 403: "Forbidden", 404: "Not found", 409: "Invalid state or past due"}
    )
    def post(self, request, pk, index):
        milestone = EscrowService().complete_milestone(user=request.user, escrow_id=pk, index=index)
        return Response(
            {"status": "success", "milestone": MilestoneSerializer(milestone).data},
            status=status.HTTP_200_OK,
        )


class MilestoneApproveView(views.APIView):
    permission_classes = [permissions.IsAuthenticated]
    authentication_classes = [JWTAuthentication]

    @swagger_auto_schema(
        operation_summary="Client approves a completed milestone and pays it out",
        manual_parameters=MILESTONE_PARAMETERS,
        responses={200: openapi.Response(description="Milestone paid"), 403: "Forbidden", 404: "Not found", 409: "Invalid state"}
    )
    def post(self, request, pk, index):
        service = EscrowService()
        payout = service.approve_milestone(user=request.user, escrow_id=pk, index=index)
        return Response({
            "status": "success",
            "payout": payout,
            "milestone": MilestoneSerializer(service.get_milestone(pk, index)).data,
            "escrow": EscrowSerializer(service.get_escrow(pk)).data,
        })

from rest_framework.permissions import BasePermission

from .models import PlatformConfig


def is_arbitrator(user):
    return user.is_authenticated and PlatformConfig.load().arbitrator_id == user.pk


class IsEscrowParticipantOrArbitrator(BasePermission):
    """
    Allows access to an escrow (or anything hanging off it) only to its
    client, its freelancer, the arbitrator or staff.
    """
    message = "Not authorised to access this escrow."

    def has_object_permission(self, request, view, obj):
        escrow = getattr(obj, 'escrow', obj)
        user = request.user
        if user.is_staff:
            return True
        if user.pk in (escrow.client_id, escrow.freelancer_id):
            return True
        return is_arbitrator(user)

from rest_framework.response import Response
from rest_framework.views import exception_handler

from escrow.errors import EscrowError
from settlement.errors import SettlementError


def escrow_exception_handler(exc, context):
    """
    Render escrow and settlement failures as
    ``{"status": "error", "code", "kind", "message"}`` with the HTTP status the
    error class declares; everything else goes through DRF's default handler.
    """
    if isinstance(exc, EscrowError):
        return Response(exc.as_dict(), status=exc.status_code)

    if isinstance(exc, SettlementError):
        return Response(
            {
                'status': 'error',
                'code': exc.code,
                'kind': 'settlement',
                'message': exc.message,
            },
            status=exc.status_code,
        )

    return exception_handler(exc, context)

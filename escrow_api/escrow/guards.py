"""
Guard clauses for escrow operations.

Each guard is a plain predicate that returns ``None`` when the condition
holds and a typed ``EscrowError`` when it does not. ``enforce`` raises the
first failure, so an operation states its preconditions as one list:

    enforce(
        only_freelancer(escrow, caller),
        in_status(escrow, Escrow.STATUS_FUNDED),
        not_after(escrow.deadline, now),
    )
"""
import threading

from .errors import (
    AuthorizationError,
    ContractPausedError,
    DeadlineError,
    ReentrancyError,
    StateConflictError,
)


def enforce(*failures):
    for failure in failures:
        if failure is not None:
            raise failure


def only_client(escrow, caller):
    if caller is None or escrow.client_id != caller.pk:
        return AuthorizationError("Only the escrow client can perform this operation")
    return None


def only_freelancer(escrow, caller):
    if caller is None or escrow.freelancer_id != caller.pk:
        return AuthorizationError("Only the escrow freelancer can perform this operation")
    return None


def only_party(escrow, caller):
    if caller is None or caller.pk not in (escrow.client_id, escrow.freelancer_id):
        return AuthorizationError("Only the client or the freelancer can perform this operation")
    return None


def only_arbitrator(config, caller):
    if caller is None or config.arbitrator_id is None or config.arbitrator_id != caller.pk:
        return AuthorizationError("Only the arbitrator can perform this operation")
    return None


def in_status(escrow, *statuses):
    if escrow.status not in statuses:
        allowed = ', '.join(statuses)
        return StateConflictError(f"Escrow is '{escrow.status}', expected one of: {allowed}")
    return None


def not_paused(config):
    if config.paused:
        return ContractPausedError()
    return None


def not_after(deadline, now, message="Deadline has passed"):
    if now > deadline:
        return DeadlineError(message)
    return None


def after(deadline, now, message="Deadline has not passed yet"):
    if not now > deadline:
        return DeadlineError(message)
    return None


class NonReentrant:
    """
    Per-instance lock rejecting nested entry from the same thread of control.

    A settlement provider that calls back into the service while a payout is
    in flight gets ``ReentrancyError`` instead of a second execution.
    """

    def __init__(self):
        self._local = threading.local()

    def __enter__(self):
        if getattr(self._local, 'entered', False):
            raise ReentrancyError()
        self._local.entered = True
        return self

    def __exit__(self, exc_type, exc, tb):
        self._local.entered = False
        return False

from enum import Enum


class ErrorKind(str, Enum):
    AUTHORIZATION = 'authorization'
    NOT_FOUND = 'not_found'
    STATE_CONFLICT = 'state_conflict'
    TEMPORAL = 'temporal'
    VALIDATION = 'validation'
    RESOURCE = 'resource'


class EscrowError(Exception):
    """
    Base class of every escrow operation failure.

    ``kind`` groups failures for callers, ``code`` is a stable identifier and
    ``status_code`` is the HTTP status the API answers with.
    """
    kind = ErrorKind.VALIDATION
    code = 'escrow_error'
    status_code = 400
    default_message = "Escrow operation failed"

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def as_dict(self):
        return {
            'status': 'error',
            'code': self.code,
            'kind': self.kind.value,
            'message': self.message,
        }


# Authorization

class AuthorizationError(EscrowError):
    kind = ErrorKind.AUTHORIZATION
    code = 'unauthorized'
    status_code = 403
    default_message = "Caller is not allowed to perform this operation"


# Not found

class EscrowNotFoundError(EscrowError):
    kind = ErrorKind.NOT_FOUND
    code = 'escrow_not_found'
    status_code = 404
    default_message = "Escrow does not exist"


class MilestoneNotFoundError(EscrowNotFoundError):
    code = 'milestone_not_found'
    default_message = "Milestone index out of range"


class DisputeNotFoundError(EscrowNotFoundError):
    code = 'dispute_not_found'
    default_message = "No dispute has been raised for this escrow"


# State conflicts

class StateConflictError(EscrowError):
    kind = ErrorKind.STATE_CONFLICT
    code = 'invalid_state'
    status_code = 409
    default_message = "Operation not allowed in the current state"


class EscrowExistsError(StateConflictError):
    code = 'escrow_exists'
    default_message = "Escrow identifier already in use"


class ReentrancyError(StateConflictError):
    code = 'reentrant_call'
    default_message = "Reentrant call rejected"


class ContractPausedError(StateConflictError):
    code = 'paused'
    default_message = "Escrow operations are paused"


# Temporal

class DeadlineError(EscrowError):
    kind = ErrorKind.TEMPORAL
    code = 'deadline'
    status_code = 409
    default_message = "Deadline condition not met"


# Validation

class InvalidAddressError(EscrowError):
    code = 'invalid_address'
    default_message = "Invalid participant address"


class InvalidAmountError(EscrowError):
    code = 'invalid_amount'
    default_message = "Invalid amount"


class ArrayLengthMismatchError(EscrowError):
    code = 'array_length_mismatch'
    default_message = "Milestone arrays must have the same length"


class FeeTooHighError(EscrowError):
    code = 'fee_too_high'
    default_message = "Platform fee exceeds the allowed maximum"


class InvalidDeadlineError(EscrowError):
    code = 'invalid_deadline'
    default_message = "Deadline must be in the future"


class InvalidPercentageError(EscrowError):
    code = 'invalid_percentage'
    default_message = "Percentage must be between 0 and 100"


# Resource

class ArithmeticOverflowError(EscrowError):
    kind = ErrorKind.RESOURCE
    code = 'overflow'
    default_message = "Arithmetic overflow"

class SettlementError(Exception):
    """
    A value transfer could not be completed.

    Settlement is fail-closed: raising this inside an escrow operation aborts
    the whole operation and rolls back its state changes.
    """
    code = 'settlement_failed'
    status_code = 502

    def __init__(self, message="Settlement failed", **details):
        super().__init__(message)
        self.message = message
        self.details = details


class InsufficientFundsError(SettlementError):
    code = 'insufficient_funds'


class InsufficientAllowanceError(SettlementError):
    code = 'insufficient_allowance'


class UnsolicitedTransferError(SettlementError):
    code = 'unsolicited_transfer'

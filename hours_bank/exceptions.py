"""
Domain exceptions for the hours bank engine.

Every error carries a machine-readable code, a human message and
a details dict with enough context (company, month, cause) for the
caller to fix the problem and resume. The API layer turns them into
HTTP responses using ``status_code``.
"""


class HoursBankError(Exception):
    """Base exception for all domain errors."""

    code = "HOURS_BANK_ERROR"
    status_code = 400

    def __init__(self, message, details=None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(HoursBankError):
    """Requested resource does not exist."""

    code = "NOT_FOUND"
    status_code = 404


class ContractNotConfigured(HoursBankError):
    """No contract parameters are effective for the company and month."""

    code = "CONTRACT_NOT_CONFIGURED"
    status_code = 404


class InvalidContractParameters(HoursBankError):
    code = "INVALID_CONTRACT_PARAMETERS"
    status_code = 400


class RateNotFound(HoursBankError):
    """
    A cycle closed with a deficit but no rate is configured.

    The overage cannot be priced, so the month is not finalised.
    """

    code = "RATE_NOT_FOUND"
    status_code = 422
    remediation = "Configure a rate for this company and period, then recalculate."

    def __init__(self, message, details=None):
        details = dict(details or {})
        details.setdefault("remediation", self.remediation)
        super().__init__(message, details)


class InvalidAdjustment(HoursBankError):
    code = "INVALID_ADJUSTMENT"
    status_code = 400


class InvalidAllocation(HoursBankError):
    code = "INVALID_ALLOCATION"
    status_code = 400


class InvalidObservation(HoursBankError):
    code = "INVALID_OBSERVATION"
    status_code = 400


class DataSourceUnavailable(HoursBankError):
    """
    Consumption or billed-requirement data could not be fetched.

    Recoverable: the caller may retry after a short wait.
    """

    code = "DATA_SOURCE_UNAVAILABLE"
    status_code = 503
    retryable = True


class ConcurrentRecalculation(HoursBankError):
    """Another recalculation for the same company is in progress."""

    code = "RECALCULATION_IN_PROGRESS"
    status_code = 409

"""
Course Payment Exceptions

Error taxonomy for the course settlement engine. Every exception carries a
stable ``kind`` code that is returned to API clients unchanged, plus the
HTTP status code the views should answer with.

Hierarchy:
- CoursePaymentException
  - CheckoutValidationError   (eligibility / validation, nothing mutated)
  - OrderNotFound
  - InvalidManualOutcome
  - NotManualOrder

Gateway failures are raised as ``core.stripe_integration.gateway.GatewayError``
which also derives from ``CoursePaymentException``.

Author: DSP Development Team
Version: 1.0.0
"""

from typing import Optional, Dict, Any


class CoursePaymentException(Exception):
    """
    Base exception for all course payment errors.

    Attributes:
        message (str): Human-readable error message
        kind (str): Stable machine-readable error code
        status_code (int): HTTP status code for API responses
        details (Dict[str, Any]): Additional context for logs

    Example:
        >>> try:
        ...     checkout.start_checkout(user, course_id, "gateway")
        ... except CoursePaymentException as e:
        ...     return Response(e.to_dict(), status=e.status_code)
    """

    default_kind = "payment_error"
    default_status_code = 400

    def __init__(
        self,
        message: str,
        kind: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.kind = kind or self.default_kind
        self.status_code = status_code or self.default_status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to the public error payload.

        Returns:
            Dictionary with ``kind`` and ``message``
        """
        return {"kind": self.kind, "message": self.message}


class CheckoutValidationError(CoursePaymentException):
    """
    Raised when a buyer is not eligible to start a checkout.

    The ``kind`` is one of ``not_found``, ``missing_seller``, ``own_course``,
    ``already_enrolled``, ``not_payable``, ``course_paid``,
    ``invalid_amount`` or ``invalid_method``.
    """

    STATUS_BY_KIND = {"not_found": 404}

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(
            message=message,
            kind=kind,
            status_code=self.STATUS_BY_KIND.get(kind, 400),
        )


class OrderNotFound(CoursePaymentException):
    default_kind = "order_not_found"
    default_status_code = 404

    def __init__(self, message: str = "Course order not found.") -> None:
        super().__init__(message)


class InvalidManualOutcome(CoursePaymentException):
    default_kind = "invalid_outcome"

    def __init__(self, outcome: Any) -> None:
        super().__init__(
            f"Unknown manual payment outcome: {outcome!r}.",
            details={"outcome": outcome},
        )


class NotManualOrder(CoursePaymentException):
    default_kind = "not_manual"

    def __init__(self, order_id: Any) -> None:
        super().__init__(
            "Only manual-verification orders can be confirmed by an operator.",
            details={"order_id": order_id},
        )

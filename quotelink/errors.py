# quotelink/errors.py
"""Domain errors. Each carries the HTTP status it maps to and a message that
is safe to return to the caller."""


class QuoteLinkError(Exception):
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
        self.message = message


class AuthError(QuoteLinkError):
    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ValidationError(QuoteLinkError):
    status_code = 400


class InvalidStateError(QuoteLinkError):
    status_code = 400


class PaymentNotVerifiedError(QuoteLinkError):
    status_code = 400


class NotFoundError(QuoteLinkError):
    status_code = 404


class CheckoutError(QuoteLinkError):
    status_code = 502

    def __init__(self, message: str = "Failed to create checkout session"):
        super().__init__(message)


class StoreError(QuoteLinkError):
    status_code = 500

"""
Custom application exceptions.
"""

class CIOException(Exception):
    """Base exception for the cio app."""
    pass


class CompanyNotFoundError(CIOException):
    """Raised when a company is not found."""
    pass


class RecordNotFoundError(CIOException):
    """Raised when a synced record is not found."""
    pass


class FunctionNotFoundError(CIOException):
    """Raised when a function run is not found."""
    pass


class APITokenNotFoundError(CIOException):
    """Raised when a company has no stored token for a product."""

    def __init__(self, product: str, company: str):
        super().__init__(f"No API token for {product} on company {company}")
        self.product = product
        self.company = company


class UnauthorizedError(CIOException):
    """Raised when a caller is not authorized."""
    pass


class WebhookVerificationError(CIOException):
    """Raised when a webhook signature does not verify."""
    pass


class UnknownJobError(CIOException):
    """Raised when a job name does not map to a sync job."""
    pass


class ValidationError(CIOException):
    """Raised when validation fails."""
    pass

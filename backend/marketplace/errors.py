"""Domain error taxonomy.

Services raise these; ``marketplace.main`` turns them into JSON responses of
the form ``{"message": ...}`` with the matching HTTP status. Messages are
user-facing, so they never carry internal detail.
"""
from fastapi import status


class MarketplaceError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong. Please try again."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationError(MarketplaceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication required"


class PermissionDenied(MarketplaceError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied"


class NotFoundError(MarketplaceError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Already exists"


class InvalidStateError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Operation not allowed in the current state"


class EmptyCartError(MarketplaceError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Cart is empty"


class DeliveryError(MarketplaceError):
    default_message = "Failed to send email"


class PersistenceError(MarketplaceError):
    default_message = "Failed to save changes"

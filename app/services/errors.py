"""
Exceptions raised by the provisioning, ingestion and inventory services.
main.py turns these into {"success": false, "error": ...} responses with the
error's status_code. Anything else raised under the webhook route becomes a 500.
"""
from typing import Iterable, Optional


class FulfillmentBridgeError(Exception):
    """Base class for all application errors."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ShopifyAPIError(FulfillmentBridgeError):
    """Transport-level or top-level GraphQL error from the Admin API."""

    status_code = 502


class RemoteValidationError(FulfillmentBridgeError):
    """A mutation returned userErrors that are not a known conflict signature."""

    status_code = 422

    def __init__(self, kind: str, messages: Iterable[str], action: str = "create"):
        self.kind = kind
        self.messages = [m for m in messages if m]
        detail = "; ".join(self.messages) or "No payload returned"
        super().__init__(f"Failed to {action} {kind}: {detail}")


class ResolutionInconsistencyError(FulfillmentBridgeError):
    """Shopify claims a resource exists but it cannot be located."""

    status_code = 409


class MissingConfigurationError(FulfillmentBridgeError):
    """Setup is incomplete; the message is meant for the merchant."""

    status_code = 400


class NotFoundError(FulfillmentBridgeError):
    """A record addressed by the request does not exist for this shop."""

    status_code = 404


class DuplicateRegistrationError(FulfillmentBridgeError):
    status_code = 409

    def __init__(self, titles: list[str]):
        self.titles = titles
        names = ", ".join(titles)
        if len(titles) == 1:
            message = f"This product is already added: {names}"
        else:
            message = f"These products are already added: {names}"
        super().__init__(message)


class ExternalServiceError(FulfillmentBridgeError):
    """Decision, calculation or tracking service failed or answered non-2xx."""

    status_code = 502

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class CalculationServiceError(ExternalServiceError):
    pass

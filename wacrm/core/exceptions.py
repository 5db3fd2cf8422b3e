"""Custom HTTP exceptions and domain errors."""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """Exception raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} with id '{identifier}' not found",
        )


class WhatsAppAPIError(HTTPException):
    """Exception raised when the WhatsApp Cloud API returns an error."""

    def __init__(self, detail: str, errors: list[dict] | None = None):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"WhatsApp API error: {detail}",
        )
        self.errors = errors or []


class UnauthorizedError(HTTPException):
    """Exception raised for authentication failures."""

    def __init__(self, detail: str = "Missing or invalid account"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
        )


class ForbiddenError(HTTPException):
    """Exception raised when access to a resource is forbidden."""

    def __init__(self, detail: str = "Access to this resource is forbidden"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


class ConflictError(HTTPException):
    """Exception raised when there's a resource conflict."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
        )


class BadGatewayError(HTTPException):
    """Exception raised when a downstream dependency rejects a request."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=detail,
        )


# Domain errors raised by services; routers translate them to HTTP errors.


class ConversationError(Exception):
    """Base class for conversation/session errors."""


class ConversationNotFoundError(ConversationError):
    """Outbound send target does not exist for the account."""

    def __init__(self, conversation_id):
        super().__init__(f"conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class SessionExpiredError(ConversationError):
    """The 24h messaging session has closed; free-form sends are blocked."""

    def __init__(self, conversation_id):
        super().__init__(f"conversation {conversation_id} session expired (24h limit)")
        self.conversation_id = conversation_id


class ConversationOptedOutError(ConversationError):
    """The contact opted out of messaging."""

    def __init__(self, conversation_id):
        super().__init__(f"conversation {conversation_id} contact opted out")
        self.conversation_id = conversation_id


class NumberNotApprovedError(ConversationError):
    """The business number is not approved for sending."""

    def __init__(self, number_id):
        super().__init__(f"whatsapp number {number_id} is not approved")
        self.number_id = number_id


class OutboundDispatchError(Exception):
    """A message was recorded but could not be handed to the transport."""


class StoreUnavailableError(Exception):
    """The database could not be reached; the operation may be retried."""


class WebhookVerificationError(Exception):
    """Subscription handshake rejected."""


class SignatureVerificationError(Exception):
    """Webhook HMAC signature missing or invalid."""

"""Error taxonomy shared by the chat service, the REST routes and the gateway."""
from fastapi import status


class ChatError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Chat operation failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(ChatError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Bad request"


class AuthenticationError(ChatError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Authentication failed"


class ForbiddenError(ChatError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(ChatError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"

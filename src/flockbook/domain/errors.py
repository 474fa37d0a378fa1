class AppError(Exception):
    """Base app error."""


class AuthenticationError(AppError):
    pass


class NetworkError(AppError):
    pass


class ServerError(AppError):
    def __init__(self, message: str, status_code: int = 500, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ValidationError(AppError):
    pass


class NotFoundError(AppError):
    pass


ERROR_MESSAGES: dict[type, str] = {
    AuthenticationError: "Session expired. Please log in again.",
    NetworkError: "Unable to connect to server. Please check your internet connection.",
    ServerError: "Something went wrong on our end. Please try again later.",
    NotFoundError: "That record no longer exists. Refresh and try again.",
}


def user_message(error: BaseException) -> str:
    """One human-readable line for an error, chosen by its kind."""
    if isinstance(error, ValidationError):
        return str(error) or "The provided data is invalid. Please check your input."
    for kind, message in ERROR_MESSAGES.items():
        if isinstance(error, kind):
            return message
    return "An unexpected error occurred. Please try again."

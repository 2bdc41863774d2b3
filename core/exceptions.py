"""
Custom exception hierarchy for the menu board.
Provides specific exceptions for better error handling and debugging.
"""


class MenuBoardException(Exception):
    """Base exception for all menu board errors."""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(MenuBoardException):
    """Exception for configuration errors."""

    pass


class MissingConfigException(ConfigurationException):
    """Exception when required server configuration is missing."""

    pass


class MissingEndpointError(ConfigurationException):
    """No remote menu endpoint is configured on the client."""

    pass


# =============================================================================
# Auth Exceptions
# =============================================================================


class AuthException(MenuBoardException):
    """Base exception for session/authorization errors."""

    requires_reauth = True


class SessionExpiredError(AuthException):
    """No usable session token is stored locally."""

    pass


class AuthorizationError(AuthException):
    """The server rejected the session token (HTTP 401)."""

    pass


class InvalidCredentialsError(AuthException):
    """Wrong admin password."""

    requires_reauth = False


# =============================================================================
# Network / Sync Exceptions
# =============================================================================


class NetworkException(MenuBoardException):
    """Exception for network/HTTP errors."""

    pass


class PublishFailedError(MenuBoardException):
    """Publish reached the server but did not succeed (non-2xx or transport error)."""

    pass


# =============================================================================
# Document / Storage Exceptions
# =============================================================================


class DocumentValidationError(MenuBoardException):
    """Menu document does not have the required shape."""

    pass


class StorageException(MenuBoardException):
    """Base exception for menu store errors."""

    pass


class StorageReadError(StorageException):
    pass


class StorageWriteError(StorageException):
    pass


# =============================================================================
# AI Service Exceptions
# =============================================================================


class AIServiceException(MenuBoardException):
    """Base exception for AI service errors."""

    pass


class AINotConfiguredException(AIServiceException):
    """Exception when no AI key is configured."""

    pass


class APIQuotaExceededException(AIServiceException):
    """Exception when API quota is exceeded."""

    pass


class InvalidResponseException(AIServiceException):
    """Exception when AI returns an unusable response."""

    pass


# =============================================================================
# Image Exceptions
# =============================================================================


class ImageProcessingException(MenuBoardException):
    """Base exception for image upload/processing errors."""

    pass


class InvalidDataUrlError(ImageProcessingException):
    pass


class UnsupportedImageTypeError(ImageProcessingException):
    pass


class EmptyImageError(ImageProcessingException):
    pass


class ImageTooLargeError(ImageProcessingException):
    pass

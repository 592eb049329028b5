"""
Custom exceptions for the application
"""

from typing import List, Optional


class ConfigurationError(Exception):
    """Raised at startup when required configuration is missing or invalid"""

    def __init__(self, message: str, missing: Optional[List[str]] = None):
        self.message = message
        self.missing = missing or []
        super().__init__(message)


class DatabaseNotConnectedError(Exception):
    """Raised when the user directory or match ledger is used without a database connection"""

    def __init__(self, message: str = "Database not connected"):
        self.message = message
        super().__init__(message)


class InvalidInputError(ValueError):
    """Base class for command input that is rejected before any state change"""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidPhoneNumberError(InvalidInputError):
    """Raised when a phone number is not in international format"""


class InvalidCharacterLimitError(InvalidInputError):
    """Raised when a character limit is not an integer between 1 and 1000"""


class InvalidDestinationError(InvalidInputError):
    """Raised when a notification destination is not a numeric chat ID"""


class InvalidKeywordError(InvalidInputError):
    """Raised when a keyword is empty or too long"""


class AuthenticationError(Exception):
    """Raised when the Telegram login handshake fails"""

    def __init__(self, message: str, original_error: Exception = None):
        self.message = message
        self.original_error = original_error
        super().__init__(message)


class PasswordRequiredError(AuthenticationError):
    """Raised when the account has two-step verification enabled"""

    def __init__(self, message: str = "Two-step verification password required"):
        super().__init__(message)

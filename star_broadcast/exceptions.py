"""
Star Broadcast Exceptions

Custom exception classes for error handling
"""


class StarBroadcastError(Exception):
    """Base Star Broadcast exception"""

    def __init__(self, message: str, error_code: str = "STAR000", details: dict = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert to dictionary format"""
        return {
            "error_code": self.error_code,
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# Transport errors
class TransportError(StarBroadcastError):
    """Read or write failure on a client connection"""

    def __init__(self, session_id: str, message: str, details: dict = None):
        super().__init__(f"Session {session_id}: {message}", "CONN001", details)
        self.session_id = session_id


# Configuration errors
class ConfigurationError(StarBroadcastError):
    """Configuration error"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message, "CONFIG001", details)


class InvalidConfigurationError(ConfigurationError):
    """Invalid configuration error"""

    def __init__(self, key: str, value: str, details: dict = None):
        message = f"Invalid configuration: {key} = {value}"
        super().__init__(message, details)
        self.error_code = "CONFIG002"
        self.key = key
        self.value = value


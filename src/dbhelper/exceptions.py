"""
Exception types for dbhelper
Driver errors from psycopg are propagated unwrapped; these cover the client's own failures
"""


class DatabaseClientError(Exception):
    """Base class for dbhelper errors"""


class ConnectError(DatabaseClientError):
    """Raised (or returned by ping) when the database cannot be reached"""

    def __init__(self, host: str, cause):
        self.host = host
        self.cause = cause
        super().__init__(f"host: {host} error: {cause}")


class ConfigurationError(DatabaseClientError):
    """Raised when a required setting or secret is missing or unreadable"""

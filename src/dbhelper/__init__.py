"""
dbhelper - convenience client around a pooled PostgreSQL connection
"""
from .client import Client, connect, connect_from_config
from .exceptions import ConfigurationError, ConnectError, DatabaseClientError

__all__ = [
    "Client",
    "connect",
    "connect_from_config",
    "ConnectError",
    "ConfigurationError",
    "DatabaseClientError",
]

__version__ = "1.0.0"

"""
Configuration management for dbhelper
Reads connection settings from environment variables, with credentials optionally
taken from AWS Secrets Manager (DB_SECRET_NAME)
"""
import os
import logging
from typing import Dict, Any

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULTS = {
    'DB_HOST': 'localhost',
    'DB_PORT': '5432',
    'DB_NAME': 'postgres',
    'DB_USER': 'postgres',
    'DB_PASSWORD': '',
    'DB_CONNECT_TIMEOUT': '10',
    'DB_POOL_MIN_SIZE': '1',
    'DB_POOL_MAX_SIZE': '10',
    'DB_POOL_TIMEOUT': '30',
    'DB_MAX_LIFETIME': '3600',
}


def get_env_var(key: str, default: str = None, required: bool = False) -> str:
    """Get environment variable with optional default and required validation"""
    value = os.environ.get(key, default)
    
    if required and not value:
        raise ConfigurationError(f"Required environment variable {key} is not set")
    
    return value


def _env(key: str) -> str:
    return get_env_var(key, DEFAULTS[key])


def _load_secret_credentials(secret_name: str) -> Dict[str, str]:
    # boto3 is only needed when a secret is configured
    from .secrets_client import SecretsManagerClient
    
    try:
        return SecretsManagerClient().get_database_credentials(secret_name)
    except Exception as e:
        logger.warning(f"Failed to get credentials from Secrets Manager: {e}")
        logger.info("Falling back to environment variables")
        return {}


def get_database_config() -> Dict[str, Any]:
    """
    Build the database configuration
    
    Returns:
        Dictionary with connection strings (host, port, database, user, password,
        connect_timeout) and pool settings (pool_min_size, pool_max_size as int;
        pool_timeout, max_lifetime as float seconds)
    """
    try:
        config = {
            'host': _env('DB_HOST'),
            'port': _env('DB_PORT'),
            'database': _env('DB_NAME'),
            'user': _env('DB_USER'),
            'password': _env('DB_PASSWORD'),
            'connect_timeout': _env('DB_CONNECT_TIMEOUT'),
            'pool_min_size': int(_env('DB_POOL_MIN_SIZE')),
            'pool_max_size': int(_env('DB_POOL_MAX_SIZE')),
            'pool_timeout': float(_env('DB_POOL_TIMEOUT')),
            'max_lifetime': float(_env('DB_MAX_LIFETIME')),
        }
    except ValueError as e:
        raise ConfigurationError(f"Invalid numeric database setting: {e}") from e
    
    secret_name = get_env_var('DB_SECRET_NAME')
    if secret_name:
        credentials = _load_secret_credentials(secret_name)
        config.update(credentials)
        if credentials:
            logger.info(f"Database credentials loaded from secret {secret_name}: "
                        f"{config['host']}:{config['port']}/{config['database']}")
    
    return config

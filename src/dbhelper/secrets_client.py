"""
Secrets Manager client for dbhelper
Resolves database credentials stored in AWS Secrets Manager (KMS decryption is handled by AWS)
"""
import json
import os
import boto3
from botocore.exceptions import BotoCoreError, ClientError
from typing import Dict, Any
import logging

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

_ERROR_MESSAGES = {
    'DecryptionFailureException': "Cannot decrypt secret {name}. Check KMS permissions.",
    'InternalServiceErrorException': "AWS service error retrieving secret {name}",
    'InvalidParameterException': "Invalid secret name: {name}",
    'InvalidRequestException': "Invalid request for secret: {name}",
    'ResourceNotFoundException': "Secret not found: {name}",
}


class SecretsManagerClient:
    """Client for reading JSON secrets from AWS Secrets Manager"""
    
    def __init__(self, region: str = None, endpoint_url: str = None):
        """
        Initialize Secrets Manager client
        
        Args:
            region: AWS region (defaults to AWS_DEFAULT_REGION)
            endpoint_url: Custom endpoint, e.g. LocalStack (defaults to AWS_ENDPOINT_URL)
        """
        self.region = region or os.getenv('AWS_DEFAULT_REGION', 'us-east-1')
        self.endpoint_url = endpoint_url or os.getenv('AWS_ENDPOINT_URL')
        
        client_config = {
            'region_name': self.region
        }
        if self.endpoint_url:
            client_config['endpoint_url'] = self.endpoint_url
            logger.info(f"Using custom Secrets Manager endpoint: {self.endpoint_url}")
        
        self.client = boto3.client('secretsmanager', **client_config)
        self._cache = {}
    
    def get_secret(self, secret_name: str, use_cache: bool = True) -> Dict[str, Any]:
        """
        Retrieve a secret and parse it as JSON
        
        Raises:
            ConfigurationError: If the secret cannot be retrieved or is not valid JSON
            ClientError: For AWS error codes not listed in _ERROR_MESSAGES
        """
        if use_cache and secret_name in self._cache:
            logger.debug(f"Using cached secret: {secret_name}")
            return self._cache[secret_name]
        
        try:
            logger.info(f"Retrieving secret: {secret_name}")
            response = self.client.get_secret_value(SecretId=secret_name)
            secret_data = json.loads(response['SecretString'])
        except ClientError as e:
            error_code = e.response['Error']['Code']
            if error_code in _ERROR_MESSAGES:
                logger.error(f"Secrets Manager returned {error_code} for secret: {secret_name}")
                raise ConfigurationError(_ERROR_MESSAGES[error_code].format(name=secret_name)) from e
            logger.error(f"Unexpected error retrieving secret {secret_name}: {e}")
            raise
        except json.JSONDecodeError as e:
            logger.error(f"Secret {secret_name} is not valid JSON: {e}")
            raise ConfigurationError(f"Secret {secret_name} contains invalid JSON") from e
        
        if use_cache:
            self._cache[secret_name] = secret_data
        
        logger.info(f"Successfully retrieved secret: {secret_name}")
        return secret_data
    
    def get_database_credentials(self, secret_name: str) -> Dict[str, Any]:
        """
        Read database credentials from a secret
        
        Accepts both the RDS-managed key layout (username, dbname) and a plain
        one (user, database). Only keys present in the secret are returned.
        """
        secret = self.get_secret(secret_name)
        aliases = {
            'host': ('host',),
            'port': ('port',),
            'database': ('dbname', 'database'),
            'user': ('username', 'user'),
            'password': ('password',),
        }
        
        credentials = {}
        for key, names in aliases.items():
            for name in names:
                if secret.get(name) not in (None, ''):
                    credentials[key] = str(secret[name])
                    break
        return credentials
    
    def clear_cache(self):
        """Clear the secrets cache"""
        self._cache.clear()
        logger.info("Secrets cache cleared")
    
    def health_check(self) -> bool:
        """Return True if Secrets Manager answers a list request"""
        try:
            self.client.list_secrets(MaxResults=1)
            return True
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Secrets Manager health check failed: {e}")
            return False

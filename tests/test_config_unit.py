"""
Unit tests for config module
Tests environment and Secrets Manager configuration
"""
import pytest
import os
from unittest.mock import patch, MagicMock

from dbhelper.config import get_database_config, get_env_var
from dbhelper.exceptions import ConfigurationError


@pytest.mark.unit
class TestConfig:
    """Test configuration management"""
    
    @patch.dict(os.environ, {}, clear=True)
    def test_defaults(self):
        """Test defaults when nothing is set"""
        config = get_database_config()
        
        assert config['host'] == 'localhost'
        assert config['port'] == '5432'
        assert config['database'] == 'postgres'
        assert config['connect_timeout'] == '10'
        assert config['pool_min_size'] == 1
        assert config['pool_max_size'] == 10
        assert config['pool_timeout'] == 30.0
        assert config['max_lifetime'] == 3600.0
    
    @patch.dict(os.environ, {
        'DB_HOST': 'db.internal',
        'DB_PORT': '6543',
        'DB_NAME': 'shop',
        'DB_USER': 'app',
        'DB_PASSWORD': 'pw',
        'DB_CONNECT_TIMEOUT': '3',
        'DB_POOL_MAX_SIZE': '4',
    }, clear=True)
    def test_environment_values(self):
        """Test environment variables override defaults"""
        config = get_database_config()
        
        assert config['host'] == 'db.internal'
        assert config['port'] == '6543'
        assert config['database'] == 'shop'
        assert config['user'] == 'app'
        assert config['password'] == 'pw'
        assert config['connect_timeout'] == '3'
        assert config['pool_max_size'] == 4
    
    @patch.dict(os.environ, {'DB_POOL_MAX_SIZE': 'lots'}, clear=True)
    def test_invalid_number(self):
        """Test a non-numeric pool setting is rejected"""
        with pytest.raises(ConfigurationError, match="Invalid numeric"):
            get_database_config()
    
    @patch.dict(os.environ, {}, clear=True)
    def test_required_env_var_missing(self):
        """Test required variables raise when unset"""
        with pytest.raises(ConfigurationError, match="DB_SECRET_NAME"):
            get_env_var('DB_SECRET_NAME', required=True)
    
    @patch.dict(os.environ, {'DB_HOST': 'db'}, clear=True)
    def test_env_var_default(self):
        """Test get_env_var returns values and defaults"""
        assert get_env_var('DB_HOST') == 'db'
        assert get_env_var('DB_NAME', 'fallback') == 'fallback'
    
    @patch('dbhelper.secrets_client.SecretsManagerClient')
    @patch.dict(os.environ, {'DB_SECRET_NAME': 'shop/database', 'DB_USER': 'env-user'}, clear=True)
    def test_secret_credentials_override(self, mock_client_cls):
        """Test credentials from Secrets Manager take precedence"""
        mock_client_cls.return_value.get_database_credentials.return_value = {
            'host': 'aurora.example.com',
            'user': 'secret-user',
            'password': 'secret-pw',
        }
        
        config = get_database_config()
        
        mock_client_cls.return_value.get_database_credentials.assert_called_once_with('shop/database')
        assert config['host'] == 'aurora.example.com'
        assert config['user'] == 'secret-user'
        assert config['password'] == 'secret-pw'
        assert config['database'] == 'postgres'
    
    @patch('dbhelper.secrets_client.SecretsManagerClient')
    @patch.dict(os.environ, {'DB_SECRET_NAME': 'shop/database', 'DB_USER': 'env-user'}, clear=True)
    def test_secret_failure_falls_back(self, mock_client_cls):
        """Test a Secrets Manager failure leaves environment values in place"""
        mock_client_cls.return_value.get_database_credentials.side_effect = ConfigurationError(
            "Secret not found: shop/database"
        )
        
        config = get_database_config()
        
        assert config['user'] == 'env-user'
    
    @patch('dbhelper.secrets_client.SecretsManagerClient')
    @patch.dict(os.environ, {}, clear=True)
    def test_no_secret_name_skips_secrets_manager(self, mock_client_cls):
        """Test Secrets Manager is not contacted without DB_SECRET_NAME"""
        get_database_config()
        
        mock_client_cls.assert_not_called()

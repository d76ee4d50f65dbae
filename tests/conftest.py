"""
Pytest configuration and fixtures for dbhelper tests
Provides mocked psycopg_pool pools, connections and cursors
"""
import sys
import pytest
from pathlib import Path
from unittest.mock import patch, MagicMock

# Add src directory to Python path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (no database required)"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests that need a running PostgreSQL server"
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow running"
    )


class FakePGResult:
    """Stands in for psycopg.pq.PGresult: rows of text values, None for NULL"""
    
    def __init__(self, rows, nfields):
        self._rows = rows
        self.ntuples = len(rows)
        self.nfields = nfields
    
    def get_value(self, row, col):
        value = self._rows[row][col]
        if value is None:
            return None
        return value.encode('utf-8')


def load_result(cursor, columns, rows):
    """Make a mocked cursor expose the given result"""
    cursor.description = [(name,) for name in columns]
    cursor.pgresult = FakePGResult(rows, len(columns))
    cursor.connection.info.encoding = 'utf-8'


@pytest.fixture
def set_result():
    """Return the load_result helper"""
    return load_result


@pytest.fixture
def mock_cursor():
    """A cursor with no result loaded"""
    cursor = MagicMock()
    cursor.description = None
    cursor.pgresult = None
    cursor.rowcount = -1
    return cursor


@pytest.fixture
def mock_connection(mock_cursor):
    """A connection whose cursor() context yields mock_cursor"""
    conn = MagicMock()
    conn.cursor.return_value.__enter__.return_value = mock_cursor
    return conn


@pytest.fixture
def mock_pool(mock_connection):
    """A pool whose connection() context and getconn() hand out mock_connection"""
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = mock_connection
    pool.getconn.return_value = mock_connection
    pool.min_size = 1
    pool.max_size = 10
    return pool


@pytest.fixture
def client(mock_pool):
    """A healthy client backed by mock_pool"""
    from dbhelper.client import Client
    
    return Client('db.example.com:5432', mock_pool, conninfo='host=db.example.com port=5432')


@pytest.fixture
def direct_connection():
    """
    Patch psycopg.Connection.connect used for liveness checks

    Yields (connect mock, connection the with block receives).
    """
    conn = MagicMock()
    with patch('dbhelper.client.psycopg.Connection.connect') as mock_connect:
        mock_connect.return_value.__enter__.return_value = conn
        yield mock_connect, conn

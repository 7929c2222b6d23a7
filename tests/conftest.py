import pytest

from remote_db._testing import local_connection


@pytest.fixture
def anyio_backend():
    return 'asyncio'


@pytest.fixture
def engine_conn():
    return local_connection()


@pytest.fixture
def conn(engine_conn):
    return engine_conn[0]


@pytest.fixture
def engine(engine_conn):
    return engine_conn[1]

import pytest

from app import SCHEMA_PATH, app as flask_app, init_db
from store import connect, init_schema, seed_catalog

ALICE = {
    "username": "alice1",
    "password": "hunter2x",
    "confirm": "hunter2x",
    "fname": "Alice",
    "lname": "Smith",
    "email": "alice@example.com",
    "ccard": "4111111111111111",
}


@pytest.fixture
def conn(tmp_path):
    c = connect(str(tmp_path / "catalog.db"))
    init_schema(c, SCHEMA_PATH)
    seed_catalog(c)
    yield c
    c.close()


@pytest.fixture
def app(tmp_path):
    flask_app.config.update(TESTING=True, DB_PATH=str(tmp_path / "app.db"))
    init_db()
    yield flask_app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_path(app):
    return app.config["DB_PATH"]


def customer_count(c):
    return c.execute("SELECT COUNT(*) FROM customer").fetchone()[0]


def lookup_customer(path, username):
    c = connect(path)
    try:
        return c.execute("SELECT * FROM customer WHERE username=?", (username,)).fetchone()
    finally:
        c.close()

import pytest

import auth
from errors import DuplicateUsernameError, InvalidCredentialsError, ValidationError
from store import QueryKind
from tests.conftest import ALICE, customer_count


def form(**overrides):
    data = dict(ALICE)
    data.update(overrides)
    return data


def test_register_inserts_hashed_customer(conn):
    cust_id = auth.register(conn, form())
    row = conn.execute("SELECT * FROM customer WHERE custID=?", (cust_id,)).fetchone()
    assert row["username"] == "alice1"
    assert row["password"] != "hunter2x"
    assert "hunter2x" not in row["password"]


def test_register_assigns_unique_ids(conn):
    ids = {auth.register(conn, form(username=f"user{i}x")) for i in range(4)}
    assert len(ids) == 4


def test_register_password_mismatch(conn):
    with pytest.raises(ValidationError) as exc:
        auth.register(conn, form(confirm="hunter3x"))
    assert "confirm" in exc.value.errors
    assert customer_count(conn) == 0


@pytest.mark.parametrize("field,value", [
    ("username", "abc"),
    ("password", "abc"),
    ("email", "not-an-email"),
    ("ccard", "4111"),
    ("fname", ""),
    ("lname", "   "),
])
def test_register_field_rules(conn, field, value):
    overrides = {field: value}
    if field == "password":
        overrides["confirm"] = value
    with pytest.raises(ValidationError) as exc:
        auth.register(conn, form(**overrides))
    assert field in exc.value.errors
    assert customer_count(conn) == 0


def test_register_reports_every_bad_field(conn):
    with pytest.raises(ValidationError) as exc:
        auth.register(conn, {})
    assert set(exc.value.errors) == set(auth.REGISTER_FIELDS)


def test_register_duplicate_username(conn):
    auth.register(conn, form())
    with pytest.raises(DuplicateUsernameError):
        auth.register(conn, form(email="other@example.com"))
    assert customer_count(conn) == 1


def test_login_sets_session(conn):
    cust_id = auth.register(conn, form())
    sess = auth.SessionAccessor({})
    assert auth.login(conn, sess, {"username": "alice1", "password": "hunter2x"}) == cust_id
    assert sess.is_authenticated
    assert sess.username == "alice1"
    assert sess.cust_id == cust_id


def test_login_wrong_password(conn):
    auth.register(conn, form())
    store = {}
    with pytest.raises(InvalidCredentialsError):
        auth.login(conn, auth.SessionAccessor(store), {"username": "alice1", "password": "wrong"})
    assert store == {}


def test_login_unknown_user_same_error(conn):
    with pytest.raises(InvalidCredentialsError) as exc:
        auth.login(conn, auth.SessionAccessor({}), {"username": "nobody", "password": "whatever"})
    assert exc.value.message == InvalidCredentialsError.message


def test_login_requires_both_fields(conn):
    with pytest.raises(ValidationError) as exc:
        auth.login(conn, auth.SessionAccessor({}), {"username": "alice1"})
    assert list(exc.value.errors) == ["password"]


@pytest.mark.parametrize("prior", [
    {},
    {"is_user": True, "user": "alice1", "custID": 1},
    {"is_user": False, "other": "x"},
])
def test_logout_clears_any_state(prior):
    sess = auth.SessionAccessor(dict(prior))
    auth.logout(sess)
    auth.logout(sess)
    assert not sess.is_authenticated
    assert sess.store == {}
    assert sess.username == ""
    assert sess.cust_id is None


def test_register_then_login_scenario(conn):
    cust_id = auth.register(conn, form())
    row = conn.execute("SELECT custID, password FROM customer WHERE username='alice1'").fetchone()
    assert row["custID"] == cust_id
    assert row["password"] != "hunter2x"

    sess = auth.SessionAccessor({})
    with pytest.raises(InvalidCredentialsError):
        auth.login(conn, sess, {"username": "alice1", "password": "wrong"})
    assert not sess.is_authenticated

    auth.login(conn, sess, {"username": "alice1", "password": "hunter2x"})
    assert sess.cust_id == row["custID"]


def test_unknown_user_still_checks_a_hash(conn, monkeypatch):
    checked = []

    def fake_check(pw_hash, password):
        checked.append((pw_hash, password))
        return False

    monkeypatch.setattr(auth, "check_password_hash", fake_check)
    with pytest.raises(InvalidCredentialsError):
        auth.login(conn, auth.SessionAccessor({}), {"username": "nobody", "password": "whatever"})
    assert checked == [(auth._DUMMY_HASH, "whatever")]


def test_register_race_reports_duplicate(conn, monkeypatch):
    auth.register(conn, form())
    real_query_db = auth.query_db

    def skip_username_check(c, kind, query, params=()):
        # another request inserted the same name after our SELECT
        if kind is QueryKind.READ and "FROM customer WHERE username" in query:
            return []
        return real_query_db(c, kind, query, params)

    monkeypatch.setattr(auth, "query_db", skip_username_check)
    with pytest.raises(DuplicateUsernameError):
        auth.register(conn, form(email="other@example.com"))
    assert customer_count(conn) == 1

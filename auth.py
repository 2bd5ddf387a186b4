import logging
import re

from werkzeug.security import check_password_hash, generate_password_hash

from errors import (
    DuplicateUsernameError,
    IntegrityViolation,
    InvalidCredentialsError,
    ValidationError,
)
from store import QueryKind, query_db

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

REGISTER_FIELDS = ["username", "password", "confirm", "fname", "lname", "email", "ccard"]
LOGIN_FIELDS = ["username", "password"]

MIN_USERNAME = 5
MIN_PASSWORD = 5
MIN_CCARD = 16

# checked on unknown usernames; every failed login costs one hash
_DUMMY_HASH = generate_password_hash("streamtv-no-such-user")


class SessionAccessor:
    """Authentication state kept in a per-visitor session mapping.

    Handlers get one wrapped around ``flask.session``; tests can hand in a
    plain dict instead.
    """

    def __init__(self, store):
        self.store = store

    @property
    def is_authenticated(self):
        return bool(self.store.get("is_user"))

    @property
    def username(self):
        return self.store.get("user", "") if self.is_authenticated else ""

    @property
    def cust_id(self):
        return self.store.get("custID") if self.is_authenticated else None

    def login(self, username, cust_id):
        self.store.clear()
        self.store["is_user"] = True
        self.store["user"] = username
        self.store["custID"] = cust_id

    def clear(self):
        self.store.clear()


def _clean(form, fields):
    # passwords keep their whitespace
    out = {}
    for name in fields:
        value = form.get(name) or ""
        out[name] = value if name in ("password", "confirm") else value.strip()
    return out


def validate_registration(form):
    data = _clean(form, REGISTER_FIELDS)
    errors = {}
    for name in REGISTER_FIELDS:
        if not data[name]:
            errors[name] = "This value should not be blank."
    if data["username"] and len(data["username"]) < MIN_USERNAME:
        errors["username"] = f"User Name must be at least {MIN_USERNAME} characters."
    if data["password"] and len(data["password"]) < MIN_PASSWORD:
        errors["password"] = f"Password must be at least {MIN_PASSWORD} characters."
    if data["password"] and data["confirm"] and data["password"] != data["confirm"]:
        errors["confirm"] = "Password and Verify Password must match"
    if data["email"] and not EMAIL_RE.match(data["email"]):
        errors["email"] = "This value is not a valid email address."
    if data["ccard"] and len(data["ccard"]) < MIN_CCARD:
        errors["ccard"] = f"Credit card number must be at least {MIN_CCARD} characters."
    if errors:
        raise ValidationError(errors)
    return data


def validate_login(form):
    data = _clean(form, LOGIN_FIELDS)
    errors = {name: "This value should not be blank." for name in LOGIN_FIELDS if not data[name]}
    if errors:
        raise ValidationError(errors)
    return data


def register(conn, form):
    """Create a customer row and return its custID. Does not log the user in."""
    data = validate_registration(form)
    taken = query_db(
        conn, QueryKind.READ,
        "SELECT custID FROM customer WHERE username=?",
        (data["username"],),
    )
    if taken:
        raise DuplicateUsernameError()
    pw_hash = generate_password_hash(data["password"])
    try:
        res = query_db(
            conn, QueryKind.WRITE,
            "INSERT INTO customer (username,password,fname,lname,email,ccard) VALUES (?,?,?,?,?,?)",
            (data["username"], pw_hash, data["fname"], data["lname"], data["email"], data["ccard"]),
        )
    except IntegrityViolation as e:
        # lost a race with a concurrent registration of the same name
        raise DuplicateUsernameError() from e
    logger.info("Registered customer %s as custID=%s", data["username"], res.lastrowid)
    return res.lastrowid


def login(conn, sess, form):
    data = validate_login(form)
    rows = query_db(
        conn, QueryKind.READ,
        "SELECT password, custID FROM customer WHERE username=?",
        (data["username"],),
    )
    if len(rows) != 1:
        check_password_hash(_DUMMY_HASH, data["password"])
        logger.info("Failed login for %r: %d matching rows", data["username"], len(rows))
        raise InvalidCredentialsError()
    row = rows[0]
    if not check_password_hash(row["password"], data["password"]):
        logger.info("Failed login for %r: bad password", data["username"])
        raise InvalidCredentialsError()
    sess.login(data["username"], row["custID"])
    logger.info("Customer %s logged in", data["username"])
    return row["custID"]


def logout(sess):
    sess.clear()

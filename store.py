import enum
import logging
import sqlite3
from collections import namedtuple

from errors import IntegrityViolation, NotFoundError, StoreError

logger = logging.getLogger(__name__)


class QueryKind(enum.Enum):
    READ = "read"
    WRITE = "write"


WriteResult = namedtuple("WriteResult", ["rowcount", "lastrowid"])


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def connect(path, timeout=5.0):
    try:
        conn = sqlite3.connect(path, timeout=timeout)
    except sqlite3.Error as e:
        logger.error("Could not open database %s: %s", path, e)
        raise StoreError() from e
    conn.row_factory = sqlite3.Row
    # SQLite lower() only folds ASCII
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def query_db(conn, kind, query, params=()):
    """Run one parameterized statement.

    READ returns the full row list, WRITE commits and returns a WriteResult.
    Driver errors are logged here and re-raised as StoreError so that nothing
    above this layer ever sees statement text.
    """
    try:
        if kind is QueryKind.READ:
            return conn.execute(query, params).fetchall()
        if kind is QueryKind.WRITE:
            with conn:
                cur = conn.execute(query, params)
            return WriteResult(cur.rowcount, cur.lastrowid)
    except sqlite3.IntegrityError as e:
        logger.warning("Constraint violated: %s", e)
        raise IntegrityViolation() from e
    except sqlite3.Error as e:
        logger.error("Statement failed: %s -- %s", " ".join(query.split()), e)
        raise StoreError() from e
    raise ValueError(f"unknown query kind: {kind!r}")


def fetch_one(conn, query, params=(), what="Record"):
    rows = query_db(conn, QueryKind.READ, query, params)
    if not rows:
        raise NotFoundError(f"{what} not found")
    return rows[0]


def init_schema(conn, schema_path):
    with open(schema_path, "r", encoding="utf-8") as f:
        script = f.read()
    try:
        with conn:
            conn.executescript(script)
    except sqlite3.Error as e:
        logger.error("Could not apply schema %s: %s", schema_path, e)
        raise StoreError() from e


SAMPLE_SHOWS = [
    (1, "The Office", 2005, "NBC", "Greg Daniels", "Comedy"),
    (2, "Breaking Bad", 2008, "AMC", "Vince Gilligan", "Drama"),
    (3, "Stranger Things", 2016, "Netflix", "The Duffer Brothers", "Science Fiction"),
]

SAMPLE_EPISODES = [
    (1, 1, "Pilot", "2005-03-24"),
    (1, 2, "Diversity Day", "2005-03-29"),
    (1, 3, "Health Care", "2005-04-05"),
    (2, 4, "Pilot", "2008-01-20"),
    (2, 5, "Cat's in the Bag...", "2008-01-27"),
    (3, 6, "Chapter One: The Vanishing of Will Byers", "2016-07-15"),
]

SAMPLE_ACTORS = [
    (1, "Steve", "Carell"),
    (2, "Rainn", "Wilson"),
    (3, "Bryan", "Cranston"),
    (4, "Aaron", "Paul"),
    (5, "Winona", "Ryder"),
    (6, "David", "Harbour"),
    (7, "Creed", "Bratton"),
]

SAMPLE_MAIN_CAST = [
    (1, 1, "Michael Scott"),
    (1, 2, "Dwight Schrute"),
    (2, 3, "Walter White"),
    (2, 4, "Jesse Pinkman"),
    (3, 5, "Joyce Byers"),
    (3, 6, "Jim Hopper"),
]

SAMPLE_RECURRING_CAST = [
    (1, 7, "Creed Bratton", 3),
]


def seed_catalog(conn):
    """Load the sample catalog when the shows table is empty."""
    count = query_db(conn, QueryKind.READ, "SELECT COUNT(*) c FROM shows")[0]["c"]
    if count:
        return False
    # bulk load in one transaction; query_db runs single statements only
    with conn:
        conn.executemany(
            "INSERT INTO shows (showID,title,premiere_year,network,creator,category) VALUES (?,?,?,?,?,?)",
            SAMPLE_SHOWS,
        )
        conn.executemany(
            "INSERT INTO episode (showID,episodeID,title,airdate) VALUES (?,?,?,?)",
            SAMPLE_EPISODES,
        )
        conn.executemany("INSERT INTO actor (actID,fname,lname) VALUES (?,?,?)", SAMPLE_ACTORS)
        conn.executemany("INSERT INTO main_cast (showID,actID,role) VALUES (?,?,?)", SAMPLE_MAIN_CAST)
        conn.executemany(
            "INSERT INTO recurring_cast (showID,actID,role,episodes) VALUES (?,?,?,?)",
            SAMPLE_RECURRING_CAST,
        )
    logger.info("Seeded sample catalog (%d shows)", len(SAMPLE_SHOWS))
    return True

import enum
import logging
from collections import namedtuple
from datetime import datetime, timezone

from store import QueryKind, fetch_one, query_db

logger = logging.getLogger(__name__)

SearchResults = namedtuple("SearchResults", ["actors", "shows"])


class CastRole(enum.Enum):
    MAIN = "main_cast"
    RECURRING = "recurring_cast"


def get_cast(conn, role, show_id=None, act_id=None):
    """Cast assignments from one role table, filtered by show or by actor.

    The table name comes from the CastRole enum, never from the request.
    """
    if (show_id is None) == (act_id is None):
        raise ValueError("exactly one of show_id or act_id is required")
    table = CastRole(role).value
    column, key = ("c.showID", show_id) if show_id is not None else ("c.actID", act_id)
    rows = query_db(conn, QueryKind.READ, f"""
        SELECT a.actID, a.fname, a.lname, c.role, s.showID, s.title
        FROM {table} c
        JOIN actor a ON a.actID = c.actID
        JOIN shows s ON s.showID = c.showID
        WHERE {column} = ?
        ORDER BY a.lname, a.fname, c.role
    """, (key,))
    return [dict(r) for r in rows]


def get_show(conn, show_id):
    row = fetch_one(conn, """
        SELECT showID, title, network, premiere_year, creator, category
        FROM shows WHERE showID=?
    """, (show_id,), what="Show")
    return dict(row)


def show_detail(conn, show_id):
    show = get_show(conn, show_id)
    show["main_cast"] = get_cast(conn, CastRole.MAIN, show_id=show_id)
    show["recurring_cast"] = get_cast(conn, CastRole.RECURRING, show_id=show_id)
    return show


def show_episodes(conn, show_id):
    show = get_show(conn, show_id)
    rows = query_db(conn, QueryKind.READ, """
        SELECT episodeID, title, airdate
        FROM episode WHERE showID=?
        ORDER BY episodeID ASC
    """, (show_id,))
    show["episodes"] = [dict(r) for r in rows]
    return show


def episode_detail(conn, episode_id):
    row = fetch_one(conn, """
        SELECT e.episodeID, e.title, e.airdate, s.showID, s.title AS show_title
        FROM episode e JOIN shows s ON s.showID = e.showID
        WHERE e.episodeID=?
    """, (episode_id,), what="Episode")
    ep = dict(row)
    ep["main_cast"] = get_cast(conn, CastRole.MAIN, show_id=ep["showID"])
    ep["recurring_cast"] = get_cast(conn, CastRole.RECURRING, show_id=ep["showID"])
    return ep


def actor_detail(conn, act_id):
    actor = dict(fetch_one(conn, "SELECT actID, fname, lname FROM actor WHERE actID=?", (act_id,), what="Actor"))
    actor["main_credits"] = get_cast(conn, CastRole.MAIN, act_id=act_id)
    actor["recurring_credits"] = get_cast(conn, CastRole.RECURRING, act_id=act_id)
    return actor


def customer_queue(conn, cust_id):
    """Queued shows for a customer, most recently queued first."""
    fetch_one(conn, "SELECT custID FROM customer WHERE custID=?", (cust_id,), what="Customer")
    rows = query_db(conn, QueryKind.READ, """
        SELECT s.showID, s.title, q.datequeued
        FROM queue q JOIN shows s ON s.showID = q.showID
        WHERE q.custID=?
        ORDER BY q.datequeued DESC, s.showID ASC
    """, (cust_id,))
    return [dict(r) for r in rows]


def enqueue(conn, cust_id, show_id, now=None):
    """Add a show to a customer's queue. Returns False if it was already queued."""
    get_show(conn, show_id)
    now = now or datetime.now(timezone.utc)
    res = query_db(
        conn, QueryKind.WRITE,
        "INSERT OR IGNORE INTO queue (custID,showID,datequeued) VALUES (?,?,?)",
        (cust_id, show_id, now.strftime("%Y-%m-%d %H:%M:%S")),
    )
    if res.rowcount:
        logger.info("custID=%s queued showID=%s", cust_id, show_id)
    return bool(res.rowcount)


def _like_pattern(text):
    text = text.casefold().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{text}%"


def search(conn, query):
    q = (query or "").strip()
    if not q:
        return SearchResults([], [])
    pattern = _like_pattern(q)
    actors = query_db(conn, QueryKind.READ, """
        SELECT actID, fname, lname FROM actor
        WHERE casefold(fname) LIKE ? ESCAPE '\\' OR casefold(lname) LIKE ? ESCAPE '\\'
        ORDER BY actID
    """, (pattern, pattern))
    shows = query_db(conn, QueryKind.READ, """
        SELECT showID, title FROM shows
        WHERE casefold(title) LIKE ? ESCAPE '\\'
        ORDER BY showID
    """, (pattern,))
    return SearchResults([dict(r) for r in actors], [dict(r) for r in shows])

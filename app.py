import os
import logging
from flask import Flask, g, jsonify, redirect, render_template, request, session, url_for
from flask_cors import CORS
from werkzeug.exceptions import NotFound

import auth
import catalog
from errors import (
    DuplicateUsernameError,
    InvalidCredentialsError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from store import connect, init_schema, query_db, QueryKind, seed_catalog

DB_PATH = os.environ.get("DB_PATH", "streamtv.db")
DB_TIMEOUT = float(os.environ.get("DB_TIMEOUT", "5"))
SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_change")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
LOG_FILE = os.environ.get("LOG_FILE", "")
SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "schema.sql")


def parse_log_level(value):
    return (value or "").strip().upper() or "INFO"


logging.basicConfig(
    level=parse_log_level(LOG_LEVEL),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
)
if LOG_FILE:
    _fh = logging.FileHandler(LOG_FILE, encoding="utf-8")
    _fh.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    logging.getLogger().addHandler(_fh)

app = Flask(__name__, template_folder="templates")
app.config.update(DB_PATH=DB_PATH, DB_TIMEOUT=DB_TIMEOUT, SECRET_KEY=SECRET_KEY)
CORS(app, supports_credentials=True)

LOGIN_FORM = [
    ("username", "User Name", "text"),
    ("password", "Password", "password"),
]
REGISTER_FORM = [
    ("username", "User Name", "text"),
    ("password", "Password", "password"),
    ("confirm", "Verify Password", "password"),
    ("fname", "First Name", "text"),
    ("lname", "Last Name", "text"),
    ("email", "Email", "email"),
    ("ccard", "Credit Card", "text"),
]


def get_db():
    conn = getattr(g, "_database", None)
    if conn is None:
        conn = g._database = connect(app.config["DB_PATH"], timeout=app.config["DB_TIMEOUT"])
    return conn


@app.teardown_appcontext
def close_connection(exc):
    conn = g.pop("_database", None)
    if conn is not None:
        conn.close()


def init_db():
    conn = connect(app.config["DB_PATH"], timeout=app.config["DB_TIMEOUT"])
    try:
        init_schema(conn, SCHEMA_PATH)
        seed_catalog(conn)
    finally:
        conn.close()


@app.cli.command("init-db")
def init_db_command():
    init_db()
    print(f"Initialized {app.config['DB_PATH']}")


def current_session():
    return auth.SessionAccessor(session)


@app.context_processor
def inject_user():
    sess = current_session()
    return {"is_authenticated": sess.is_authenticated, "username": sess.username, "cust_id": sess.cust_id}


def render_form(page_title, fields, status=200, results="", errors=None):
    # never echo passwords back into the form
    values = {k: v for k, v in request.form.items() if k not in ("password", "confirm")}
    return render_template(
        "form.html",
        pageTitle=page_title,
        fields=fields,
        values=values,
        errors=errors or {},
        results=results,
    ), status


@app.errorhandler(NotFoundError)
def not_found(e):
    return render_template("not_found.html", pageTitle="Not Found", message=e.message), 404


@app.errorhandler(NotFound)
def page_not_found(e):
    return render_template("not_found.html", pageTitle="Not Found", message="Page not found"), 404


@app.errorhandler(StoreError)
def store_failure(e):
    app.logger.exception("Store failure on %s %s", request.method, request.path)
    return render_template("error.html", pageTitle="Error", message=e.message), 500


@app.errorhandler(500)
def internal_error(e):
    return render_template("error.html", pageTitle="Error", message="Something went wrong - Try again later"), 500


@app.route("/")
def index():
    return render_template("home.html", pageTitle="Home", user=current_session().username)


@app.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        return render_form("Login", LOGIN_FORM)
    try:
        auth.login(get_db(), current_session(), request.form)
    except ValidationError as e:
        return render_form("Login", LOGIN_FORM, 400, e.message, e.errors)
    except InvalidCredentialsError as e:
        return render_form("Login", LOGIN_FORM, 401, e.message)
    return redirect(url_for("index"))


@app.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "GET":
        return render_form("Register", REGISTER_FORM)
    try:
        auth.register(get_db(), request.form)
    except ValidationError as e:
        return render_form("Register", REGISTER_FORM, 400, e.message, e.errors)
    except DuplicateUsernameError as e:
        return render_form("Register", REGISTER_FORM, 409, e.message)
    return redirect(url_for("index"))


@app.route("/logout")
def logout():
    auth.logout(current_session())
    return redirect(url_for("index"))


@app.route("/search/<int:showID>")
def show_page(showID):
    show = catalog.show_detail(get_db(), showID)
    return render_template("show.html", pageTitle=show["title"], show=show)


@app.route("/shows/<int:showID>")
def show_episodes(showID):
    show = catalog.show_episodes(get_db(), showID)
    return render_template("show_episodes.html", pageTitle=show["title"], show=show)


@app.route("/episode/<int:episodeID>")
def episode_page(episodeID):
    ep = catalog.episode_detail(get_db(), episodeID)
    return render_template("episode.html", pageTitle=ep["title"], episode=ep)


@app.route("/search", methods=["GET", "POST"])
def search():
    if request.method == "POST":
        q = request.form.get("search", "")
    else:
        q = request.args.get("q", "")
    results = catalog.search(get_db(), q)
    return render_template(
        "search.html",
        pageTitle="Search",
        query=q.strip(),
        actorresults=results.actors,
        showresults=results.shows,
    )


@app.route("/queue/<int:custID>")
def queue(custID):
    entries = catalog.customer_queue(get_db(), custID)
    return render_template("queue.html", pageTitle="Queue", custID=custID, results=entries)


@app.route("/queue/add/<int:showID>", methods=["POST"])
def queue_add(showID):
    sess = current_session()
    if not sess.is_authenticated:
        return redirect(url_for("login"))
    catalog.enqueue(get_db(), sess.cust_id, showID)
    return redirect(url_for("queue", custID=sess.cust_id))


@app.route("/actor/<int:actID>")
def actor_page(actID):
    actor = catalog.actor_detail(get_db(), actID)
    return render_template("actor.html", pageTitle=f"{actor['fname']} {actor['lname']}", actor=actor)


@app.route("/health")
def health():
    try:
        query_db(get_db(), QueryKind.READ, "SELECT 1")
        return jsonify({"ok": True})
    except StoreError:
        return jsonify({"ok": False, "error": "store_unavailable"}), 500


if __name__ == "__main__":
    init_db()
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))

import atexit
import logging

from flask import Flask, Response, jsonify, request

from .config import Config, load_config
from .cors import cors_headers
from .dashboard import load_records, render_dashboard
from .flush import flush_logs
from .geo import CountryLookup
from .store import KVStore, create_store
from .writer import (
    NO_CACHE_HEADERS,
    PIXEL_BYTES,
    build_event_record,
    build_pixel_record,
    store_log_best_effort,
)

logger = logging.getLogger(__name__)

CORS_PATHS = ("/pixel", "/log", "/flush")
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
# OPTIONS left to Flask so preflights get a 200 plus CORS headers
ROUTED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def configure_logging(level="INFO"):
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(config: Config | None = None, store: KVStore | None = None,
               geo: CountryLookup | None = None) -> Flask:
    """
    Application factory. The store and geo lookup are injected so tests
    (and alternative deployments) can swap them.
    """
    if config is None:
        config = load_config()
    if store is None:
        store = create_store(config)
    if geo is None:
        geo = CountryLookup(config.geoip_db_path)
        atexit.register(geo.close)

    app = Flask(__name__)
    app.config["TRACKLOG"] = config
    app.extensions["tracklog.store"] = store
    app.extensions["tracklog.geo"] = geo

    @app.after_request
    def add_cors_headers(resp):
        """
        Beacon and flush endpoints are called cross-origin from the tracked site.
        """
        if request.path in CORS_PATHS:
            for name, value in cors_headers(request.headers.get("Origin"), config.cors_allow_origins).items():
                resp.headers[name] = value
        return resp

    # -------------------------------------------------------------------------
    # Ingest routes
    # -------------------------------------------------------------------------
    @app.route("/pixel", methods=ROUTED_METHODS)
    def pixel():
        """
        Tracking pixel. Include it like:
          <img src="https://collector.example/pixel?session=abc&section=work&action=click">
        The GIF is returned whether or not the write succeeded.
        """
        record = build_pixel_record(request, tz_name=config.timezone, geo=geo)
        store_log_best_effort(store, record)

        resp = Response(PIXEL_BYTES, mimetype="image/gif")
        resp.headers.update(NO_CACHE_HEADERS)
        return resp

    @app.route("/log", methods=ALL_METHODS)
    def log_event():
        """
        Script event endpoint. Any JSON body is stored as-is; a body that
        doesn't parse is stored as {}.
        """
        if request.method == "OPTIONS":
            return Response(b"", status=200)
        if request.method != "POST":
            return Response("Method not allowed", status=405, mimetype="text/plain")

        record = build_event_record(request, tz_name=config.timezone, geo=geo)
        store_log_best_effort(store, record)
        return Response("logged", status=200, mimetype="text/plain")

    # -------------------------------------------------------------------------
    # Dashboard / admin
    # -------------------------------------------------------------------------
    @app.route("/dashboard", methods=ROUTED_METHODS)
    def dashboard():
        records = load_records(store, page_size=config.list_page_size)
        return Response(render_dashboard(records), mimetype="text/html")

    @app.route("/flush", methods=ROUTED_METHODS)
    def flush():
        result = flush_logs(
            store,
            request.args.get("password"),
            config.flush_password,
            page_size=config.list_page_size,
            max_workers=config.flush_workers,
        )
        return jsonify(result.payload), result.status

    # -------------------------------------------------------------------------
    # Fallback
    # -------------------------------------------------------------------------
    @app.route("/", defaults={"path": ""}, methods=ALL_METHODS)
    @app.route("/<path:path>", methods=ALL_METHODS)
    def fallback(path):
        return Response("OK", status=200, mimetype="text/plain")

    return app

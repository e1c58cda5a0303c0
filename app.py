import functools
import logging
import os
import time
from datetime import datetime, timezone

from flask import Flask, request, jsonify

from aggregation import AggregationEngine
from config import Config
from errors import AnalyticsError, InvalidParameter, MalformedInput
from evaluation import EvaluationHarness
from ingestion import IngestionPipeline
from record_store import RecordStore
from temporal import active_users_per_day
from validator import RecordValidator

logger = logging.getLogger(__name__)


def envelope(status, body):
    """Wrap a payload as ``{"status", "body"}`` with the matching HTTP status."""
    return jsonify({"status": status, "body": body}), status


def timed(handler):
    """Add ``timestamp`` and ``execution_time_ms`` to a query handler's payload."""

    @functools.wraps(handler)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        payload = handler(*args, **kwargs)
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        body = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "execution_time_ms": elapsed_ms,
        }
        body.update(payload)
        return envelope(200, body)

    return wrapper


def parse_limit(raw, default):
    if raw is None:
        return default
    try:
        limit = int(raw)
    except ValueError:
        raise InvalidParameter("limit must be an integer", f"got {raw!r}")
    if limit < 1:
        raise InvalidParameter("limit must be at least 1", f"got {limit}")
    return limit


def create_app(config=None, http_session=None):
    """Flask application factory."""
    app = Flask(__name__)

    if config is None:
        config = Config(os.environ.get("CONFIG_PATH", "config.yaml"))

    store = RecordStore()
    validator = RecordValidator(config["schema"]["path"])
    pipeline = IngestionPipeline(store, validator)
    engine = AggregationEngine(store, min_score=config["analytics"]["superuser_min_score"])
    harness = EvaluationHarness(
        store,
        base_url=config["evaluation"]["base_url"],
        endpoints=config["evaluation"]["endpoints"],
        timeout_seconds=config["evaluation"]["timeout_seconds"],
        session=http_session,
    )
    upload_field = config["ingestion"]["upload_field"]
    default_limit = config["analytics"]["top_countries_limit"]

    # Store components on app for access in tests
    app.config["components"] = {
        "config": config,
        "store": store,
        "validator": validator,
        "pipeline": pipeline,
        "engine": engine,
        "harness": harness,
    }

    # --- Error handlers ---

    @app.errorhandler(AnalyticsError)
    def handle_analytics_error(exc):
        return envelope(exc.status_code, exc.to_dict())

    @app.errorhandler(404)
    @app.errorhandler(405)
    def handle_http_error(exc):
        return envelope(exc.code, {"error": exc.name, "detailed_error": exc.description})

    # --- Routes ---

    @app.route("/health")
    def health():
        return envelope(200, {
            "status": "healthy",
            "user_count": len(store),
            "validation_stats": validator.get_stats(),
        })

    @app.route("/users", methods=["POST"])
    def store_users():
        # touching request.files parses (and drains) urlencoded bodies
        if request.mimetype == "multipart/form-data":
            upload = request.files.get(upload_field)
            if upload is None:
                raise MalformedInput(
                    "Could not read the uploaded JSON file",
                    f"missing form field '{upload_field}'",
                )
            stream = upload.stream
        else:
            stream = request.stream

        result = pipeline.ingest(stream)
        return envelope(200, {
            "message": "File stored in memory successfully.",
            "user_count": result.record_count,
            "accepted": result.accepted,
            "skipped": result.skipped,
        })

    @app.route("/superusers")
    @timed
    def superusers():
        users = engine.superusers()
        return {"data": [u.to_dict() for u in users], "count": len(users)}

    @app.route("/top-countries")
    @timed
    def top_countries():
        limit = parse_limit(request.args.get("limit"), default_limit)
        return {"countries": [c.to_dict() for c in engine.top_countries(limit)]}

    @app.route("/team-insights")
    @timed
    def team_insights():
        return {"teams": [t.to_dict() for t in engine.team_insights()]}

    @app.route("/active-users-per-day")
    @timed
    def active_users():
        return {"logins": [d.to_dict() for d in active_users_per_day(store)]}

    @app.route("/evaluation")
    @timed
    def evaluation():
        report = harness.evaluate()
        return {
            "tested_endpoints": {k: v.to_dict() for k, v in report.results.items()},
            "endpoints_with_errors": report.errors,
        }

    return app


# For gunicorn: `gunicorn 'app:create_app()'`

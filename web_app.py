"""
CHIPCASINO - Chips Casino API Server
Slots, Roulette, Landmines and Crash for virtual chips.
"""
import json, logging, os, secrets, time
from datetime import timedelta
from pathlib import Path

from config.settings import ServerConfig

# ── Structured logging ──
logging.basicConfig(
    level=getattr(logging, ServerConfig.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("chipcasino")
timing_logger = logging.getLogger("chipcasino.api")

from flask import Flask, g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from admin import admin_bp
from api import api_bp
from config.database import SQLITE_PATH, USE_POSTGRES, close_db_on_teardown, get_db, init_db
from config.game_schema import first_error_message
from sim_engine.rmg.errors import CooldownError, GameError

app = Flask(__name__)
app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # Trust the reverse proxy

app.register_blueprint(api_bp)
app.register_blueprint(admin_bp)
app.teardown_appcontext(close_db_on_teardown)


# ── Stable SECRET_KEY: env var, then persisted file, then generate-and-save ──
def _get_or_create_secret_key():
    env_key = os.getenv("FLASK_SECRET_KEY") or os.getenv("SECRET_KEY")
    if env_key:
        return env_key
    key_file = Path(SQLITE_PATH).resolve().parent / ".flask_secret_key"
    try:
        if key_file.exists():
            stored = key_file.read_text().strip()
            if len(stored) >= 32:
                return stored
    except OSError as e:
        logger.warning(f"Could not read {key_file}: {e}")
    new_key = secrets.token_hex(32)
    try:
        key_file.write_text(new_key)
    except OSError as e:
        logger.warning(f"Secret key kept in memory only ({e})")
    return new_key


app.secret_key = _get_or_create_secret_key()
if not (os.getenv("FLASK_SECRET_KEY") or os.getenv("SECRET_KEY")):
    logger.warning("FLASK_SECRET_KEY not set - sessions will not survive a fresh deploy")

# ── Session configuration ──
app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=ServerConfig.SESSION_DAYS)
app.config["SESSION_COOKIE_HTTPONLY"] = True
app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
app.config["MAX_CONTENT_LENGTH"] = 1 * 1024 * 1024  # JSON bodies only
if os.getenv("SESSION_COOKIE_SECURE", "").lower() == "true":
    app.config["SESSION_COOKIE_SECURE"] = True

init_db()


# ─── REQUEST TIMING ───

@app.before_request
def _start_timer():
    g._started_at = time.perf_counter()


@app.after_request
def _log_api_timing(response):
    if request.path.startswith("/api/"):
        started = g.get("_started_at")
        duration_ms = int((time.perf_counter() - started) * 1000) if started else 0
        timing_logger.info(json.dumps({
            "type": "api_timing",
            "path": request.path,
            "method": request.method,
            "status": response.status_code,
            "durationMs": duration_ms,
        }))
    return response


# ─── HEALTH ───

@app.route("/health")
def health():
    try:
        get_db().execute("SELECT 1").fetchone()
        return jsonify({"status": "ok", "db": "postgres" if USE_POSTGRES else "sqlite"})
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return jsonify({"status": "error", "detail": str(e)}), 503


# ─── ERRORS ───

@app.errorhandler(GameError)
def error_game(e):
    body = {"error": str(e)}
    if isinstance(e, CooldownError):
        body["cooldownRemaining"] = e.seconds_remaining
    return jsonify(body), e.status_code


@app.errorhandler(ValidationError)
def error_validation(e):
    return jsonify({"error": first_error_message(e)}), 400


@app.errorhandler(HTTPException)
def error_http(e):
    if request.path.startswith("/api/") or request.path == "/health":
        return jsonify({"error": e.description or e.name}), e.code
    return e


@app.errorhandler(500)
def error_500(e):
    logger.error(f"500 error on {request.method} {request.path}: {e}", exc_info=True)
    return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    logger.info(f"CHIPCASINO - http://localhost:{ServerConfig.PORT}")
    app.run(debug=ServerConfig.DEBUG, host="0.0.0.0", port=ServerConfig.PORT)

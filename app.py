import logging
import os
import time
from typing import Any, Dict, Optional

from flask import Flask, jsonify
from flask_cors import CORS


def setup_directories():
    """Create necessary directories if they don't exist."""
    os.makedirs("logs", exist_ok=True)


def setup_logging(level: str = "INFO"):
    """Configure logging for the application."""
    setup_directories()
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler("logs/gagstock.log"),
            logging.StreamHandler(),
        ],
    )
    # APScheduler logs every job execution at INFO
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    return logging.getLogger("GagStock.App")


from features.command_dispatcher import CommandDispatcher
from features.fingerprint_cache import FingerprintCache
from features.quiet_hours import QuietHours
from features.session_store import InMemorySessionStore
from features.stock_tracker import StockTracker
from features.webhook_handler import WebhookHandler
from routes.health_routes import health_bp
from routes.webhook_routes import webhook_bp
from services.auth_service import AuthService
from services.notification_service import NotificationService
from utils.config import APP_VERSION, Config
from utils.rate_limiter import UserRateLimiter
from utils.scheduler import create_scheduler, setup_scheduler
from utils.stock_client import StockClient

logger = logging.getLogger("GagStock.App")


def build_components(config: Config) -> Dict[str, Any]:
    """Wire the bot's services together."""
    scheduler = create_scheduler(config.timezone)
    notifier = NotificationService(
        config.PAGE_ACCESS_TOKEN, config.GRAPH_API_URL, timeout=config.SEND_TIMEOUT
    )
    auth = AuthService(admin_user_id=config.ADMIN_USER_ID)
    rate_limiter = UserRateLimiter(max_requests=config.MAX_REQUESTS_PER_MINUTE, window_seconds=60)
    stock_client = StockClient(
        config.STOCK_API_URL,
        config.WEATHER_API_URL,
        timeout=config.FETCH_TIMEOUT,
        max_retries=config.FETCH_RETRIES,
    )
    tracker = StockTracker(
        sessions=InMemorySessionStore(),
        fingerprints=FingerprintCache(),
        stock_client=stock_client,
        notification_service=notifier,
        scheduler=scheduler,
        config=config,
    )
    dispatcher = CommandDispatcher(tracker, notifier, auth, rate_limiter, config)
    return {
        "scheduler": scheduler,
        "notification_service": notifier,
        "auth_service": auth,
        "rate_limiter": rate_limiter,
        "stock_tracker": tracker,
        "quiet_hours": QuietHours(tracker, notifier, auth, config),
        "command_dispatcher": dispatcher,
        "webhook_handler": WebhookHandler(dispatcher, config.VERIFY_TOKEN, scheduler=scheduler),
    }


def create_app(
    config: Optional[Config] = None,
    components: Optional[Dict[str, Any]] = None,
    start_scheduler: bool = True,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Configuration, loaded from the environment when omitted
        components: Pre-built services keyed like ``build_components`` output
        start_scheduler: Register maintenance jobs and start the scheduler
    """
    config = config or Config()
    components = components if components is not None else build_components(config)

    app = Flask(__name__)
    CORS(app)

    app.config_obj = config
    app.started_at = time.time()
    for name, component in components.items():
        setattr(app, name, component)

    app.register_blueprint(webhook_bp)
    app.register_blueprint(health_bp)

    @app.route("/")
    def index():
        return jsonify({"name": "GagStock Alerts", "version": APP_VERSION}), 200

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not Found"}), 404

    @app.errorhandler(500)
    def server_error(error):
        logger.error(f"Server Error: {error}", exc_info=True)
        return jsonify({"error": "Internal Server Error"}), 500

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({"error": "Forbidden"}), 403

    if start_scheduler:
        setup_scheduler(
            components["scheduler"],
            components["stock_tracker"],
            config,
            quiet_hours=components.get("quiet_hours"),
            rate_limiter=components.get("rate_limiter"),
        )

    logger.info(f"GagStock Alerts v{APP_VERSION} initialized: {config.get_config_summary()}")
    return app


if __name__ == "__main__":
    try:
        config = Config()
        setup_logging(config.LOG_LEVEL)
        app = create_app(config)
        logger.info(f"Starting GagStock Alerts server on port {config.PORT}...")
        # The reloader would start a second scheduler
        app.run(debug=config.DEBUG, host="0.0.0.0", port=config.PORT, use_reloader=False)
    except Exception as e:
        logger.critical(f"Failed to start server: {e}", exc_info=True)
        raise

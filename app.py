"""Application entry point for the Neynar webhook reply bot."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from uuid import uuid4

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from neynar_webhook.body import read_raw_body
from neynar_webhook.caches import DeduplicationCache, ResponseCache
from neynar_webhook.config import AppSettings, get_settings
from neynar_webhook.events import BotIdentity
from neynar_webhook.generation import OpenAIReplyGenerator
from neynar_webhook.logging_config import configure_logging
from neynar_webhook.neynar_client import NeynarClient
from neynar_webhook.pipeline import WebhookProcessor
from neynar_webhook.rate_limit import SlidingWindowRateLimiter

WEBHOOK_PATHS = ("/", "/webhook")
WEBHOOK_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]

_LOGGING_CONFIGURED = False


def _load_version() -> str:
    version_file = Path(__file__).resolve().parent / "VERSION"
    if version_file.exists():
        return version_file.read_text(encoding="utf-8").strip()
    return "unknown"


def build_processor(settings: AppSettings, **overrides) -> WebhookProcessor:
    """Wire the process-wide caches, limiter and outbound clients from *settings*."""

    components = {
        "rate_limiter": SlidingWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window=settings.rate_limit_window,
        ),
        "dedup_cache": DeduplicationCache(
            max_entries=settings.dedup_max_entries,
            ttl=settings.dedup_ttl,
        ),
        "response_cache": ResponseCache(
            max_entries=settings.response_cache_max_entries,
            ttl=settings.response_cache_ttl,
        ),
    }
    if "generate_reply" not in overrides:
        components["generate_reply"] = OpenAIReplyGenerator(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            system_prompt=settings.system_prompt,
            base_url=settings.openai_base_url,
            timeout=settings.outbound_timeout_seconds,
            max_attempts=settings.outbound_max_attempts,
        )
    if "publisher" not in overrides:
        components["publisher"] = NeynarClient(
            api_key=settings.neynar_api_key,
            signer_uuid=settings.signer_uuid,
            base_url=settings.neynar_base_url,
            timeout=settings.outbound_timeout_seconds,
            max_attempts=settings.outbound_max_attempts,
            channel_id=settings.reply_channel_id,
        )
    components.update(overrides)

    return WebhookProcessor(
        secret=settings.webhook_secret,
        identity=BotIdentity(username=settings.bot_username, fid=settings.bot_fid),
        expose_error_detail=not settings.is_production,
        **components,
    )


def _register_error_handlers(flask_app: Flask, settings: AppSettings) -> None:
    """Register a JSON error handler that attaches a trace identifier."""

    @flask_app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception):  # type: ignore[override]
        if isinstance(error, HTTPException):
            return error

        trace_id = str(uuid4())
        flask_app.logger.exception(
            "Unhandled application error", extra={"trace_id": trace_id}, exc_info=error
        )
        payload = {"status": "error", "error": "internal_server_error", "trace_id": trace_id}
        if not settings.is_production:
            payload["detail"] = str(error)
        response = jsonify(payload)
        response.status_code = 500
        return response


def _health_payload(flask_app: Flask, settings: AppSettings, processor: WebhookProcessor) -> dict:
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": flask_app.config.get("APP_VERSION", "unknown"),
        "environment": settings.environment,
        "bot": {"username": settings.bot_username, "fid": settings.bot_fid},
        "config": {
            "has_webhook_secret": bool(settings.webhook_secret),
            "has_neynar_key": bool(settings.neynar_api_key),
            "has_signer_uuid": bool(settings.signer_uuid),
            "has_openai_key": bool(settings.openai_api_key),
        },
        "state": processor.health_snapshot(),
    }


def create_app(settings: AppSettings | None = None, processor: WebhookProcessor | None = None) -> Flask:
    """Create and configure the Flask application.

    Settings are resolved before any route exists, so a missing secret or
    credential raises ConfigError and the service never accepts traffic.
    """

    global _LOGGING_CONFIGURED
    settings = settings or get_settings()
    if not _LOGGING_CONFIGURED:
        configure_logging(settings.log_level)
        _LOGGING_CONFIGURED = True

    processor = processor or build_processor(settings)

    flask_app = Flask(__name__)
    flask_app.config["APP_VERSION"] = _load_version()
    flask_app.config["WEBHOOK_PROCESSOR"] = processor
    flask_app.logger.setLevel(settings.log_level)
    _register_error_handlers(flask_app, settings)

    def webhook():
        if request.method == "GET":
            return jsonify(_health_payload(flask_app, settings, processor)), 200

        result = processor.handle(
            request.method,
            request.headers,
            lambda: read_raw_body(request, limit=settings.max_body_bytes),
        )
        response = jsonify(result.body)
        response.status_code = result.status_code
        for name, value in result.headers.items():
            response.headers[name] = value
        return response

    for path in WEBHOOK_PATHS:
        flask_app.add_url_rule(path, endpoint=f"webhook{path.replace('/', '_')}", view_func=webhook, methods=WEBHOOK_METHODS)

    @flask_app.route("/healthz", methods=["GET"])
    def healthz():
        return jsonify(_health_payload(flask_app, settings, processor)), 200

    return flask_app


if __name__ == "__main__":  # pragma: no cover - manual execution helper
    application = create_app()
    application.run(host="0.0.0.0", port=3000, debug=False)

"""Webhook server for Linear issue events."""

import hashlib
import hmac
import json
import os

import structlog
from fastapi import FastAPI, HTTPException, Request

from swe_intake.config.settings import ServiceSettings, load_settings
from swe_intake.exceptions import ConfigurationError
from swe_intake.utils.connection_pool import close_all_pools
from swe_intake.webhooks.linear import handle_issue_labeled
from swe_intake.webhooks.runs import LocalRunCreator, RunCreator

log = structlog.get_logger(__name__)

CONFIG_ENV_VAR = "SWE_INTAKE_CONFIG"
DEFAULT_CONFIG_PATH = "swe_intake_config.yaml"
SIGNATURE_HEADER = "Linear-Signature"

app = FastAPI(title="swe-intake Webhook Server")

# Global state
settings: ServiceSettings | None = None
run_creator: RunCreator = LocalRunCreator()


@app.on_event("startup")
async def startup():
    """Load settings and build the run creator on startup."""
    global settings, run_creator
    config_path = os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    try:
        settings = load_settings(config_path)
        run_creator = LocalRunCreator.from_settings(settings.runs)
        log.info("webhook_server_started", config_path=config_path)
    except ConfigurationError as e:
        log.error("webhook_startup_failed", error=e.message, exc_info=True)
        raise


@app.on_event("shutdown")
async def shutdown():
    """Close pooled tracker connections."""
    await close_all_pools()


def verify_linear_signature(body: bytes, signature: str, secret: str) -> bool:
    """Verify a Linear webhook signature.

    Args:
        body: Raw request body
        signature: Linear-Signature header value (hex HMAC-SHA256)
        secret: Webhook signing secret

    Returns:
        True if the signature matches the body
    """
    computed = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(computed, signature.strip().lower())


@app.post("/webhook/linear")
async def linear_webhook(request: Request):
    """Handle Linear webhook events."""
    if settings is None:
        raise HTTPException(status_code=503, detail="Service settings not loaded")

    body = await request.body()

    secret = settings.linear.webhook_secret.get_secret_value() if settings.linear.webhook_secret else ""
    if secret:
        signature = request.headers.get(SIGNATURE_HEADER)
        if not signature or not verify_linear_signature(body, signature, secret):
            log.warning("linear_webhook_signature_invalid")
            raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HTTPException(status_code=400, detail="Invalid JSON payload") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Webhook payload must be a JSON object")

    log.info("webhook_received", type=payload.get("type"), action=payload.get("action"))

    result = await handle_issue_labeled(payload, settings=settings, run_creator=run_creator)

    return {
        "status": "accepted",
        "stage": result.stage.value,
        "run_id": result.run.run_id if result.run else None,
        "thread_id": result.run.thread_id if result.run else None,
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "swe-intake-webhook"}

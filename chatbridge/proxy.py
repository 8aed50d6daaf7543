"""
Same-origin relay between the chat widget and the automation webhook.

The widget posts to ``/api/chatbot``; the relay forwards the turn to the
configured webhook and hands back whatever JSON the workflow produced.
Empty and non-JSON webhook bodies are wrapped in an ``error`` envelope so
the widget can still show something useful.

Run with:
    uvicorn chatbridge.proxy:app --port 8000
"""

import json
import logging
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from chatbridge.config import AppConfig, settings

logger = logging.getLogger(__name__)

RELAY_PATH = "/api/chatbot"

MISSING_RESPOND_NODE = "No Respond to Webhook node"

EMPTY_REPLY_MESSAGE = (
    "I received your request, but the automation did not send any reply. "
    "Please ensure your workflow ends with a \"Respond to Webhook\" node that returns JSON."
)
NON_JSON_REPLY_MESSAGE = (
    "Your automation responded with non-JSON content. Please update the "
    "\"Respond to Webhook\" node to return valid JSON."
)


class WebhookError(Exception):
    """Raised when the webhook cannot produce a usable reply."""

    def __init__(self, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _cors_headers(config: AppConfig) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": config.webhook.allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


def _upstream_error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except (ValueError, RecursionError):
        return response.text
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or json.dumps(body))
    return json.dumps(body)


async def forward_to_webhook(
    client: httpx.AsyncClient,
    url: str,
    *,
    chat_input: str,
    step: Any = None,
    session_id: Optional[str] = None,
    payload_type: Optional[str] = None,
    form_data: Optional[dict[str, Any]] = None,
) -> Any:
    """
    Post one turn to the webhook and return its decoded reply.

    Raises:
        WebhookError: On transport failure or a non-success status.
    """
    body = {
        "type": payload_type or "chat",
        "chatInput": chat_input,
        "message": chat_input,
        "step": step or None,
        "sessionId": session_id,
        "formData": form_data or None,
    }
    try:
        response = await client.post(url, json=body)
    except httpx.TimeoutException:
        raise WebhookError("Automation webhook timed out", status_code=503) from None
    except httpx.HTTPError as exc:
        raise WebhookError(f"Automation webhook unreachable: {exc}", status_code=503) from exc

    if not response.is_success:
        detail = _upstream_error_text(response)
        if MISSING_RESPOND_NODE in detail:
            raise WebhookError(
                "Workflow error: the workflow is missing a \"Respond to Webhook\" node. "
                "Add one at the end of the workflow to return a response.",
                status_code=502,
            )
        raise WebhookError(
            f"Webhook error ({response.status_code}): {detail or 'Unknown error'}"
        )

    raw = response.text
    if not raw:
        return {
            "message": EMPTY_REPLY_MESSAGE,
            "warning": "Webhook returned an empty response.",
            "error": "EMPTY_RESPONSE",
        }
    try:
        return json.loads(raw)
    except (ValueError, RecursionError):
        logger.warning("Webhook returned non-JSON response, forwarding as text")
        return {
            "message": raw if raw.strip() else NON_JSON_REPLY_MESSAGE,
            "warning": "Webhook responded with non-JSON content. Returning raw text.",
            "error": "NON_JSON_RESPONSE",
        }


def create_app(
    config: Optional[AppConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the relay app. ``transport`` replaces the network in tests."""
    config = config or settings
    cors_headers = _cors_headers(config)

    app = FastAPI(
        title=f"{config.app_name} relay",
        description="Forwards chat widget turns to the automation webhook.",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.webhook.allow_origin],
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.options(RELAY_PATH)
    async def relay_preflight() -> Response:
        return Response(status_code=200, headers=cors_headers)

    @app.post(RELAY_PATH)
    async def relay(request: Request) -> JSONResponse:
        try:
            body = await request.json()
        except (ValueError, RecursionError):
            body = None
        if not isinstance(body, dict):
            body = {}

        chat_input = body.get("chatInput") or body.get("message") or body.get("userMessage")
        if not chat_input:
            return JSONResponse(
                {"error": "Missing message", "message": "The message field is required"},
                status_code=400,
            )

        if not config.webhook.url:
            logger.error("AUTOMATION_WEBHOOK_URL is not configured")
            return JSONResponse(
                {"error": "Webhook error", "message": "Automation webhook URL is not configured"},
                status_code=503,
            )

        payload_type = body.get("type") if isinstance(body.get("type"), str) else None
        try:
            async with httpx.AsyncClient(
                timeout=config.webhook.timeout_sec, transport=transport
            ) as client:
                reply = await forward_to_webhook(
                    client,
                    config.webhook.url,
                    chat_input=chat_input,
                    step=body.get("step"),
                    session_id=body.get("session_id") or body.get("sessionId"),
                    payload_type=payload_type,
                    form_data=body.get("formData"),
                )
        except WebhookError as exc:
            logger.error("Error relaying to webhook (%s): %s", exc.status_code, exc.message)
            return JSONResponse(
                {"error": "Webhook error", "message": exc.message},
                status_code=exc.status_code,
                headers=cors_headers,
            )

        return JSONResponse(content=reply, status_code=200, headers=cors_headers)

    return app


app = create_app()

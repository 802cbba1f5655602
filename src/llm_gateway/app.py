from __future__ import annotations

import logging
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import Body, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from .audit import AuditSink, JsonFileAuditSink
from .catalog import ProviderCatalog
from .chat_store import FileChatStore
from .errors import ErrorKind, GatewayError, ProviderNotFoundError
from .pipeline import DispatchPipeline, new_request_id
from .settings import GatewaySettings
from .utils.logger import setup_logger


class ChatSaveRequest(BaseModel):
    messages: Optional[List[Dict[str, Any]]] = None
    settings: Optional[Dict[str, Any]] = None
    title: Optional[str] = None


def _error(status_code: int, message: str, reason: Optional[str] = None, **extra: Any) -> JSONResponse:
    content: Dict[str, Any] = {"status": "error", "message": message}
    if reason is not None:
        content["reason"] = reason
    content.update(extra)
    return JSONResponse(status_code=status_code, content=content)


def create_app(
    settings: Optional[GatewaySettings] = None,
    pipeline: Optional[DispatchPipeline] = None,
    chat_store: Optional[FileChatStore] = None,
    audit: Optional[AuditSink] = None,
    catalog: Optional[ProviderCatalog] = None,
) -> FastAPI:
    """Build the HTTP service; every collaborator can be swapped for tests."""
    settings = settings or GatewaySettings.from_env()
    logger = setup_logger(level=settings.log_level)
    audit = audit or JsonFileAuditSink(settings.log_dir)
    catalog = catalog or (pipeline.catalog if pipeline else ProviderCatalog())
    pipeline = pipeline or DispatchPipeline.from_settings(settings, audit=audit, catalog=catalog)
    chat_store = chat_store or FileChatStore(settings.chats_dir)
    started = time.monotonic()

    app = FastAPI(title="LLM Playground Gateway", version="0.1.0")
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.chat_store = chat_store

    def _audit(event_type: str, fields: Dict[str, Any]) -> None:
        try:
            audit.record(event_type, fields)
        except Exception as exc:  # noqa: BLE001
            logger.error("Audit sink failed for %s event: %s", event_type, exc)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        request_id = new_request_id()
        request.state.request_id = request_id
        start = time.perf_counter()
        await run_in_threadpool(
            _audit,
            "requests",
            {
                "message": "Incoming request",
                "requestId": request_id,
                "method": request.method,
                "url": str(request.url.path),
                "userAgent": request.headers.get("user-agent"),
                "ip": request.client.host if request.client else None,
            },
        )
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            await run_in_threadpool(
                _audit,
                "responses",
                {
                    "message": "Response sent",
                    "requestId": request_id,
                    "statusCode": status_code,
                    "duration": f"{duration_ms}ms",
                },
            )

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return _error(404, "Endpoint not found")
        return _error(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def _body_error(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", None) or new_request_id()
        await run_in_threadpool(
            _audit,
            "errors",
            {
                "level": "ERROR",
                "message": "Invalid request format",
                "requestId": request_id,
                "kind": ErrorKind.VALIDATION.value,
                "errorType": type(exc).__name__,
                "url": str(request.url.path),
            },
        )
        return _error(400, "Invalid request format", "Request body must be a JSON object", request_id=request_id)

    @app.exception_handler(GatewayError)
    async def _gateway_error(request: Request, exc: GatewayError):
        return _error(exc.http_status, str(exc), exc.kind.value)

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, "Internal server error", str(exc))

    @app.get("/")
    def root():
        return {"message": "LLM Playground gateway is running. Use POST /api/chat."}

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - started, 3),
            "environment": {
                "python_version": sys.version.split()[0],
                "platform": platform.platform(),
            },
            "api_keys_configured": settings.api_keys_configured(),
            "safety_enabled": settings.safety_enabled,
        }

    @app.get("/api/providers")
    def list_providers():
        providers = catalog.list_providers()
        return {"status": "success", "providers": providers, "total": len(providers)}

    @app.get("/api/providers/{provider_id}")
    def get_provider(provider_id: str):
        try:
            provider = catalog.get_provider(provider_id)
        except ProviderNotFoundError:
            return _error(404, "Provider not found", f"Provider '{provider_id}' is not supported")
        return {"status": "success", "provider": provider.to_dict()}

    # Plain ``def`` endpoints run in the worker thread pool, so a slow
    # provider call only holds up its own request.
    @app.post("/api/chat")
    def chat(request: Request, body: Any = Body(None)):
        request_id = getattr(request.state, "request_id", None)
        outcome = pipeline.dispatch_body(body, request_id=request_id)
        return JSONResponse(status_code=outcome.http_status, content=outcome.to_dict())

    @app.get("/api/chats")
    def list_chats():
        return {"status": "success", "chats": chat_store.list()}

    @app.get("/api/chats/{chat_id}")
    def get_chat(chat_id: str):
        return {"status": "success", "chat": chat_store.get(chat_id)}

    @app.post("/api/chats")
    def save_chat(body: ChatSaveRequest):
        chat = chat_store.create(body.title, body.messages or [], body.settings)
        return {"status": "success", "chat": chat}

    @app.put("/api/chats/{chat_id}")
    def update_chat(chat_id: str, body: ChatSaveRequest):
        chat = chat_store.update(chat_id, body.messages, body.settings, body.title)
        return {"status": "success", "chat": chat}

    @app.delete("/api/chats/{chat_id}")
    def delete_chat(chat_id: str):
        chat_store.delete(chat_id)
        return {"status": "success", "message": "Chat deleted successfully"}

    logger.info("Gateway configured: %s", settings.to_dict())
    return app


app = create_app()


def main() -> None:
    settings: GatewaySettings = app.state.settings
    logging.getLogger("llm_gateway").info("LLM Playground gateway on http://localhost:%d", settings.port)
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()

"""
FastAPI app for the demo service webhooks and the query API.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from errors import ChatUnavailableError, MatchBotError, NotFoundError, StorageError, ValidationError
from event_logger import log_event
from models.store import EntityStore
from services.pipeline import MatchPipeline
from web.routes.api import router as api_router
from web.routes.webhooks import router as webhooks_router


def create_app(store: EntityStore, pipeline: MatchPipeline) -> FastAPI:
    """
    Build the web app around an existing store and pipeline.

    Args:
        store: Entity store shared with the bot
        pipeline: Match pipeline shared with the poller

    Returns:
        The FastAPI application
    """
    app = FastAPI(
        title="CS Match Summary Bot",
        description="Demo service webhooks and read-only match queries.",
        version="1.0.0",
    )
    app.state.store = store
    app.state.pipeline = pipeline

    app.include_router(webhooks_router, tags=["webhooks"])
    app.include_router(api_router, tags=["api"])

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        log_event("webhook_rejected", path=request.url.path, reason="invalid_payload")
        return JSONResponse(status_code=400, content={"error": "Invalid JSON payload"})

    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"error": f"{exc.kind} not found"})

    @app.exception_handler(StorageError)
    async def handle_storage(request: Request, exc: StorageError):
        print(f"❌ Storage error on {request.url.path}: {exc}")
        log_event("request_failed", path=request.url.path, error=exc)
        return JSONResponse(status_code=500, content={"error": "Internal storage error"})

    @app.exception_handler(ChatUnavailableError)
    async def handle_chat_unavailable(request: Request, exc: ChatUnavailableError):
        print(f"⚠️ Chat unavailable on {request.url.path}: {exc}")
        log_event("request_failed", path=request.url.path, error=exc, retryable=True)
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(MatchBotError)
    async def handle_match_bot_error(request: Request, exc: MatchBotError):
        print(f"❌ Error on {request.url.path}: {exc}")
        log_event("request_failed", path=request.url.path, error=exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app

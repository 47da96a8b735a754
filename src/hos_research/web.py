from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from hos_research.config import Settings
from hos_research.errors import LLMProviderError
from hos_research.financial import FinancialAnalyst
from hos_research.kv_store import KVStore
from hos_research.llm import ChatProvider, OpenAIChatProvider
from hos_research.prompts import build_chat_messages
from hos_research.schemas import AnalyzeRequest, ChatRequest, ReportRequest, UserDataWrite

logger = logging.getLogger(__name__)

USER_MODULE_PREFIX = "user:{user_id}:module:"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return "Invalid request: " + "; ".join(parts)


def create_app(
    settings: Settings,
    provider: Optional[ChatProvider] = None,
    store: Optional[KVStore] = None,
) -> FastAPI:
    app = FastAPI(title="HOS Research Server")
    store = store or KVStore(settings.kv_db_path)
    if provider is None and settings.openai_api_key:
        provider = OpenAIChatProvider(settings)
    analyst = FinancialAnalyst(provider, settings) if provider is not None else None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_headers=["Content-Type", "Authorization"],
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        expose_headers=["Content-Length"],
        max_age=600,
    )

    @app.middleware("http")
    async def access_log(request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info("%s %s %s %.1fms", request.method, request.url.path, response.status_code, elapsed_ms)
        return response

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return _error(_validation_message(exc), 400)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            {"error": "Internal server error", "message": str(exc), "timestamp": _now_iso()},
            status_code=500,
        )

    def require_token(request: Request) -> None:
        expected = settings.public_anon_key
        if not expected:
            return
        header = request.headers.get("authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or token.strip() != expected:
            raise StarletteHTTPException(status_code=401, detail="Missing or invalid bearer token")

    prefix = settings.route_prefix.rstrip("/")
    public = APIRouter(prefix=prefix)
    protected = APIRouter(prefix=prefix, dependencies=[Depends(require_token)])
    financial = APIRouter(prefix=f"{prefix}/financial", dependencies=[Depends(require_token)])

    @public.get("/health")
    def health():
        try:
            store.health_check()
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            return JSONResponse(
                {"status": "error", "timestamp": _now_iso(), "database": "failed", "error": str(exc)},
                status_code=500,
            )
        return {"status": "ok", "timestamp": _now_iso(), "database": "connected"}

    @protected.post("/ai/chat")
    def ai_chat(body: ChatRequest):
        if provider is None:
            logger.error("AI chat error: OPENAI_API_KEY not configured")
            return _error("AI service not configured. Please add your OpenAI API key.", 500)
        try:
            completion = provider.complete(
                build_chat_messages(body.messages, body.context),
                temperature=body.temperature,
                max_tokens=settings.chat_max_tokens,
            )
        except LLMProviderError as exc:
            return _error("AI service error", exc.status_code or 500)
        return {
            "content": completion.content,
            "tokensUsed": completion.tokens_used,
            "model": completion.model,
        }

    @financial.post("/analyze")
    def analyze(body: AnalyzeRequest):
        if analyst is None:
            return _error("AI service not configured. Please add your OpenAI API key.", 500)
        try:
            result = analyst.analyze(body.stock.to_model(), body.bars(), body.news_items())
        except LLMProviderError:
            return _error("Analysis generation failed", 500)
        except Exception:
            logger.exception("Analysis error for %s", body.stock.symbol)
            return _error("Failed to analyze stock", 500)
        return JSONResponse(result.to_payload())

    @financial.post("/report")
    def report(body: ReportRequest):
        if analyst is None:
            return _error("AI service not configured. Please add your OpenAI API key.", 500)
        try:
            text = analyst.report(body.symbol, body.stock.to_model(), body.bars(), body.news_items())
        except LLMProviderError:
            return _error("Report generation failed", 500)
        except Exception:
            logger.exception("Report generation error for %s", body.symbol)
            return _error("Failed to generate report", 500)
        return {"report": text}

    @protected.post("/user-data")
    def save_user_data(body: UserDataWrite):
        logger.info("Saving data for key: %s", body.key)
        store.set(body.key, {"data": body.data, "userId": body.user_id, "updatedAt": _now_iso()})
        return {"success": True, "key": body.key}

    @protected.get("/user-data")
    def load_user_data(key: Optional[str] = None):
        if not key:
            return _error("Missing required parameter: key", 400)
        record = store.get(key)
        if record is None:
            # First access to a module is not an error.
            return {"data": None, "userId": None, "exists": False}
        return {**record, "exists": True}

    @protected.get("/user-data/all")
    def load_all_user_data(userId: Optional[str] = None):
        if not userId:
            return _error("Missing required parameter: userId", 400)
        module_prefix = USER_MODULE_PREFIX.format(user_id=userId)
        data_map = {}
        for full_key, record in store.get_by_prefix(module_prefix):
            module_key = full_key[len(module_prefix):]
            if module_key and isinstance(record, dict) and record.get("data") is not None:
                data_map[module_key] = record["data"]
        return {"data": data_map}

    @protected.delete("/user-data")
    def delete_user_data(key: Optional[str] = None):
        if not key:
            return _error("Missing required parameter: key", 400)
        logger.info("Deleting data for key: %s", key)
        store.delete(key)
        return {"success": True}

    app.include_router(public)
    app.include_router(protected)
    app.include_router(financial)
    return app

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docqa.api.routes import router as api_router
from docqa.config import public_settings, setup_logging
from docqa.errors import DocQAError
from docqa.service import DocumentQAService

logger = setup_logging()

ERROR_STATUS = {
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "auth_error": status.HTTP_401_UNAUTHORIZED,
    "invalid_credential": status.HTTP_401_UNAUTHORIZED,
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "network_error": status.HTTP_502_BAD_GATEWAY,
    "timeout": status.HTTP_504_GATEWAY_TIMEOUT,
    "embedding_error": status.HTTP_502_BAD_GATEWAY,
    "model_mismatch": status.HTTP_409_CONFLICT,
    "dimension_mismatch": status.HTTP_409_CONFLICT,
    "not_initialized": status.HTTP_409_CONFLICT,
    "not_indexed": status.HTTP_409_CONFLICT,
    "job_in_progress": status.HTTP_409_CONFLICT,
    "cancelled": status.HTTP_409_CONFLICT,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Shutdown
    await app.state.qa_service.aclose()


def create_app(service: DocumentQAService | None = None) -> FastAPI:
    app = FastAPI(title="Document Q&A", lifespan=lifespan)
    app.state.qa_service = service or DocumentQAService()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    @app.exception_handler(DocQAError)
    async def docqa_exception_handler(request: Request, exc: DocQAError):
        status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.warning("Request failed", extra={"path": request.url.path, "kind": exc.kind, "error": exc.message})
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return JSONResponse(status_code=500, content={"kind": "internal_error", "detail": "Internal server error"})

    app.include_router(api_router)
    return app


logger.info("Application starting")
logger.info("Loaded settings: %s", public_settings())

app = create_app()

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status

from docqa.models.schemas import (
    AskRequest,
    AskResponse,
    CancelResponse,
    IndexRequest,
    IndexStartedResponse,
    IndexStatusResponse,
    ValidateKeyRequest,
    ValidateKeyResponse,
)
from docqa.service import DocumentQAService

router = APIRouter(prefix="/api/v1")
logger = logging.getLogger(__name__)


def _service(request: Request) -> DocumentQAService:
    return request.app.state.qa_service


@router.post("/credentials/validate", response_model=ValidateKeyResponse, summary="Validate API key")
async def validate_credentials(body: ValidateKeyRequest, request: Request) -> ValidateKeyResponse:
    valid = await _service(request).validate_credential(body.api_key)
    logger.info("Credential validation", extra={"valid": valid})
    return ValidateKeyResponse(valid=valid)


@router.post(
    "/index",
    response_model=IndexStartedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start indexing a document",
)
async def start_indexing(body: IndexRequest, request: Request) -> IndexStartedResponse:
    handle = _service(request).start_indexing(body.text, body.api_key, source_id=body.source_id)
    logger.info("Index request accepted", extra={"job_id": handle.job_id, "text_len": len(body.text)})
    return IndexStartedResponse(job_id=handle.job_id, state=handle.state.value)


@router.get("/index", response_model=IndexStatusResponse, summary="Index and job status")
async def index_status(request: Request) -> IndexStatusResponse:
    return IndexStatusResponse.model_validate(_service(request).status())


@router.post("/index/cancel", response_model=CancelResponse, summary="Cancel the running indexing job")
async def cancel_indexing(request: Request) -> CancelResponse:
    return CancelResponse(cancelled=_service(request).cancel_indexing())


@router.delete("/index", status_code=status.HTTP_204_NO_CONTENT, summary="Reset the index")
async def reset_index(request: Request) -> None:
    _service(request).reset_index()


@router.post("/ask", response_model=AskResponse, summary="Ask a question about the indexed document")
async def ask(body: AskRequest, request: Request) -> AskResponse:
    logger.info("Ask request", extra={"len": len(body.question)})
    result = await _service(request).ask(body.question, k=body.k)
    return AskResponse(answer=result.answer, snippets=result.snippets, scores=result.scores)


__all__ = ["router"]

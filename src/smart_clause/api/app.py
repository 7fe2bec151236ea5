"""FastAPI application for SmartClause.

This module exposes the ProcessingPipeline over HTTP.

Usage (from project root, after installing the package):

    uvicorn smart_clause.api.app:app --reload

The pipeline is configured from SMART_CLAUSE_* environment variables
(see PipelineConfig.from_env). Tests override the ``get_pipeline``
dependency.
"""

import logging
import threading
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .. import __version__
from ..exceptions import NotFoundError, SmartClauseError, ValidationError
from ..models.enums import Tone
from ..pipeline import PipelineConfig, ProcessingPipeline


logger = logging.getLogger(__name__)


_pipeline: Optional[ProcessingPipeline] = None
_pipeline_lock = threading.Lock()


def get_pipeline() -> ProcessingPipeline:
    """Return the process-wide pipeline, creating it on first use."""
    global _pipeline
    with _pipeline_lock:
        if _pipeline is None:
            _pipeline = ProcessingPipeline(config=PipelineConfig.from_env())
        return _pipeline


def _close_pipeline() -> None:
    global _pipeline
    with _pipeline_lock:
        if _pipeline is not None:
            _pipeline.close()
            _pipeline = None


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    yield
    _close_pipeline()


app = FastAPI(title="SmartClause API", version=__version__, lifespan=lifespan)


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

@app.exception_handler(ValidationError)
async def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error_type": "ValidationError",
            "message": "Invalid request",
            "details": {"errors": [
                {"loc": list(e.get("loc", ())), "msg": e.get("msg", "")}
                for e in exc.errors()
            ]},
        },
    )


@app.exception_handler(NotFoundError)
async def _not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=exc.to_dict())


@app.exception_handler(SmartClauseError)
async def _smart_clause_error_handler(request: Request, exc: SmartClauseError) -> JSONResponse:
    logger.error(f"Request failed: {exc.to_dict()}")
    return JSONResponse(
        status_code=500,
        content={"error_type": "ServerError", "message": "Server error", "details": {}},
    )


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content={"error_type": "ServerError", "message": "Server error", "details": {}},
    )


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------

class DocumentRequest(BaseModel):
    text: str
    category: Optional[str] = None
    name: Optional[str] = None
    owner_id: Optional[str] = None


class ConversationRequest(BaseModel):
    document_id: int


class QuestionRequest(BaseModel):
    question: str


class ContractQuestionRequest(BaseModel):
    document_id: int
    question: str


class GenerateClauseRequest(BaseModel):
    clause_type: str = Field(..., min_length=1)
    tone: str = Tone.FORMAL.value
    details: str = ""


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/api/health")
def health() -> Dict[str, Any]:
    return {"status": "ok", "version": __version__}


@app.post("/api/documents", status_code=201)
def ingest_document(
    body: DocumentRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Normalize and store a document without analyzing it."""
    document = pipeline.ingest_document(
        body.text, category=body.category, owner_id=body.owner_id, name=body.name
    )
    return document.to_dict()


@app.get("/api/documents/{document_id}")
def get_document(
    document_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    return pipeline.get_document(document_id).to_dict()


@app.post("/api/analyze", status_code=201)
def analyze_text(
    body: DocumentRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Ingest and analyze a document in one step."""
    analysis = pipeline.segment_and_analyze(
        body.text, category=body.category, owner_id=body.owner_id, name=body.name
    )
    return _analysis_payload(pipeline, analysis)


@app.post("/api/documents/{document_id}/analyze", status_code=201)
def reanalyze_document(
    document_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Run a new analysis of a stored document."""
    analysis = pipeline.analyze_document(document_id)
    return _analysis_payload(pipeline, analysis)


@app.get("/api/analysis/document/{document_id}")
def get_latest_analysis(
    document_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    analysis = pipeline.get_analysis(document_id)
    return _analysis_payload(pipeline, analysis)


@app.get("/api/analysis/{analysis_id}/assessments")
def list_assessments(
    analysis_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    assessments = pipeline.list_clause_assessments(analysis_id)
    return {"analysis_id": analysis_id, "assessments": [a.to_dict() for a in assessments]}


@app.post("/api/conversations", status_code=201)
def create_conversation(
    body: ConversationRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    return pipeline.create_conversation(body.document_id).to_dict()


@app.get("/api/conversations/document/{document_id}")
def list_conversations(
    document_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    conversations = pipeline.list_conversations(document_id)
    return {"document_id": document_id, "conversations": [c.to_dict() for c in conversations]}


@app.get("/api/conversations/{conversation_id}")
def get_conversation(
    conversation_id: int,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    return pipeline.get_conversation(conversation_id).to_dict()


@app.post("/api/conversations/{conversation_id}/messages")
def ask_question(
    conversation_id: int,
    body: QuestionRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Ask a question within a conversation and return the updated conversation."""
    return pipeline.ask(conversation_id, body.question).to_dict()


@app.post("/api/contract-qa")
def contract_qa(
    body: ContractQuestionRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """Answer a one-off question about a document."""
    answer = pipeline.ask_direct(body.document_id, body.question)
    return {"document_id": body.document_id, "answer": answer}


@app.post("/api/generate-clause")
def generate_clause(
    body: GenerateClauseRequest,
    pipeline: ProcessingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    try:
        generated = pipeline.generate_clause(body.clause_type, body.tone, body.details)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return generated.to_dict()


def _analysis_payload(pipeline: ProcessingPipeline, analysis) -> Dict[str, Any]:
    payload = analysis.to_dict()
    payload["assessments"] = [
        a.to_dict() for a in pipeline.list_clause_assessments(analysis.id)
    ]
    return payload

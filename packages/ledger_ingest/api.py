"""HTTP surface for the ingestion pipeline (FastAPI).

Run with any ASGI server using the app factory, e.g.::

    uvicorn ledger_ingest.api:create_app --factory

Endpoints
---------
- ``POST /imports/parse``: upload a statement, get the parsed statement back
  (nothing is stored).
- ``POST /imports``: upload and import a statement into an account.
- ``POST /imports/batch``: import already-parsed transactions.
- ``POST /imports/{job_id}/rollback``: undo one import.
- ``POST /transactions/{transaction_id}/category``: record a manual correction.

Pipeline errors (:class:`~ledger_ingest.errors.IngestError`) are rendered as
``{"error": {"code", "message", "hint"?, "retryable"}}`` with the error's
status code.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, FastAPI, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from ledger_db.client import session_scope

from .errors import BadInputError, IngestError
from .importer import (
    drafts_from_payload,
    import_statement,
    import_transactions_batch,
    rollback_import,
    run_fallback,
)
from .ingest import extract_text, parse_document
from .learning import change_category
from .logging_setup import configure_logging, get_logger
from .models import BatchImportRequest, CategoryChangeRequest

_logger = get_logger("ledger_ingest.api")

router = APIRouter()


def _read_upload(file: UploadFile | None) -> tuple[bytes, str]:
    if file is None or not file.filename:
        raise BadInputError("Missing statement file", hint="Send the document as form field 'file'")
    return file.file.read(), file.filename


@router.post("/imports/parse", tags=["imports"])
def parse_upload(
    file: UploadFile | None = File(None),
    account_id: int = Form(...),
    bank: str | None = Form(None),
) -> dict[str, Any]:
    data, filename = _read_upload(file)
    text = extract_text(data, filename)
    parsed = parse_document(text, filename=filename, issuer=bank)
    return {"account_id": account_id, "filename": filename, **parsed.to_dict()}


@router.post("/imports", tags=["imports"])
def import_upload(
    file: UploadFile | None = File(None),
    account_id: int = Form(...),
    bank: str | None = Form(None),
) -> dict[str, Any]:
    data, filename = _read_upload(file)
    result = import_statement(data, filename=filename, account_id=account_id, issuer=bank)
    return result.to_dict()


@router.post("/imports/batch", tags=["imports"])
def import_batch(req: BatchImportRequest) -> dict[str, Any]:
    with session_scope() as session:
        outcome = import_transactions_batch(
            session,
            account_id=req.account_id,
            import_job_id=req.import_job_id,
            transactions=drafts_from_payload(req.transactions),
        )
    counts = outcome.counts
    counts.classified += run_fallback(outcome.needs_fallback, import_job_id=req.import_job_id)
    return counts.to_dict()


@router.post("/imports/{job_id}/rollback", tags=["imports"])
def rollback(job_id: int) -> dict[str, Any]:
    with session_scope() as session:
        deleted = rollback_import(session, job_id)
    return {"job_id": job_id, "status": "rolled_back", "deleted": deleted}


@router.post("/transactions/{transaction_id}/category", tags=["transactions"])
def correct_category(transaction_id: int, req: CategoryChangeRequest) -> dict[str, Any]:
    with session_scope() as session:
        result = change_category(session, transaction_id, req.category, actor=req.actor)
    return result.to_dict()


async def _ingest_error_handler(_request: Request, exc: IngestError) -> JSONResponse:
    level = _logger.warning if exc.status_code >= 500 else _logger.info
    level("api:error code=%s status=%d message=%s", exc.code, exc.status_code, exc.message)
    body = {**exc.to_dict(), "retryable": exc.retryable}
    return JSONResponse(status_code=exc.status_code, content={"error": body})


def create_app() -> FastAPI:
    """Build the application and configure package logging."""

    configure_logging()
    app = FastAPI(title="ledger-ingest", version="0.1.0")
    app.include_router(router)
    app.add_exception_handler(IngestError, _ingest_error_handler)
    return app


__all__ = ["create_app", "router"]

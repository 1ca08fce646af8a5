"""
Document endpoints - list, view, upload, analyze and delete medical documents.

Uploads are analyzed first (``/analyze``) so the user can review the summary
and tags, then saved with ``POST /api/documents``.
"""

import asyncio
import json
import logging
from typing import Any, List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response, StreamingResponse

from ..config.settings import get_settings
from ..database import get_data_sources, get_document_store, get_file_storage
from ..models.document import DocumentResponse
from ..models.ingestion import IngestionResult, TagSuggestionResponse
from ..services.ai_service import DocumentAIService, get_ai_service
from ..services.auth import get_current_user
from ..services.data_sources import DataSourceResolver
from ..services.document_service import DocumentService
from ..services.document_store import DocumentStore
from ..services.file_storage import FileStorage
from ..services.ingestion import IngestionPipeline, get_ingestion_pipeline
from ..utils.auth_helpers import get_user_id
from ..utils.exceptions import (
    AIServiceError,
    DocumentNotFound,
    OcrError,
    ReadOnlyDataSource,
    StorageError,
    UnsupportedMediaType,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])


def get_document_service(
    documents: DocumentStore = Depends(get_document_store),
    files: FileStorage = Depends(get_file_storage),
    data_sources: DataSourceResolver = Depends(get_data_sources),
) -> DocumentService:
    return DocumentService(documents=documents, files=files, data_sources=data_sources)


def format_sse_event(event_type: str, data: Any) -> str:
    """Format data as a Server-Sent Event."""
    if isinstance(data, dict):
        data = json.dumps(data)
    return f"event: {event_type}\ndata: {data}\n\n"


def parse_tags(raw: Optional[str]) -> List[str]:
    """Accept tags as a JSON array or a comma-separated string."""
    if not raw:
        return []
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            raise HTTPException(status_code=400, detail="tags is not a valid JSON array")
        return [str(v) for v in values]
    return [t for t in (part.strip() for part in raw.split(",")) if t]


def content_disposition(file_name: str, disposition: str = "inline") -> str:
    """Header value that survives non-ASCII names and quotes (RFC 6266)."""
    quoted = quote(file_name)
    if quoted != file_name:
        return f"{disposition}; filename*=utf-8''{quoted}"
    return f'{disposition}; filename="{file_name}"'


async def read_upload(file: UploadFile) -> bytes:
    max_bytes = get_settings().MAX_UPLOAD_BYTES
    data = await file.read()
    if len(data) > max_bytes:
        raise HTTPException(status_code=413, detail=f"File exceeds {max_bytes} bytes")
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    return data


@router.get("", response_model=List[DocumentResponse])
async def list_documents(
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> List[DocumentResponse]:
    """List the caller's documents, newest first."""
    documents = await service.list_documents(get_user_id(current_user))
    return [DocumentResponse.from_document(d) for d in documents]


@router.post("/analyze", response_model=IngestionResult)
async def analyze_document(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
) -> IngestionResult:
    """Extract text from an upload and run the AI analyses. Nothing is saved.

    Raises:
        415: If the file is neither an image nor a PDF
        422: If text recognition failed
    """
    data = await read_upload(file)
    try:
        return await pipeline.process(data, file.content_type)
    except UnsupportedMediaType as e:
        raise HTTPException(status_code=415, detail=str(e))
    except OcrError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.post("/analyze/stream")
async def analyze_document_stream(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
    pipeline: IngestionPipeline = Depends(get_ingestion_pipeline),
):
    """Same as ``/analyze`` but streams OCR progress as Server-Sent Events.

    Events: ``progress`` ({"progress": 0..1}), then either ``result``
    (the IngestionResult) or ``error`` ({"detail": ...}).
    """
    data = await read_upload(file)
    content_type = file.content_type

    async def generate():
        loop = asyncio.get_running_loop()
        progress: asyncio.Queue = asyncio.Queue()

        def on_progress(value: float) -> None:
            loop.call_soon_threadsafe(progress.put_nowait, value)

        task = asyncio.create_task(pipeline.process(data, content_type, on_progress))
        try:
            while not task.done():
                getter = asyncio.ensure_future(progress.get())
                done, _ = await asyncio.wait({task, getter}, return_when=asyncio.FIRST_COMPLETED)
                if getter in done:
                    yield format_sse_event("progress", {"progress": getter.result()})
                else:
                    getter.cancel()

            while not progress.empty():
                yield format_sse_event("progress", {"progress": progress.get_nowait()})

            result = task.result()
            yield format_sse_event("result", result.model_dump(mode="json"))
        except (UnsupportedMediaType, OcrError) as e:
            yield format_sse_event("error", {"detail": str(e)})
        except Exception as e:
            logger.error(f"Streaming analysis failed: {e}", exc_info=True)
            yield format_sse_event("error", {"detail": "Document analysis failed"})
        finally:
            if not task.done():
                task.cancel()

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


@router.post("", response_model=DocumentResponse, status_code=201)
async def save_document(
    file: UploadFile = File(...),
    file_name: Optional[str] = Form(None),
    tags: Optional[str] = Form(None),
    summary: Optional[str] = Form(None),
    file_content: Optional[str] = Form(None),
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    """Save an uploaded file with the (reviewed) summary, tags and text.

    Raises:
        403: For demo accounts
        502: If the object store rejected the upload
    """
    data = await read_upload(file)
    try:
        document = await service.save_document(
            user_id=get_user_id(current_user),
            file_name=file_name or file.filename or "document",
            data=data,
            content_type=file.content_type,
            tags=parse_tags(tags),
            summary=summary,
            file_content=file_content,
        )
    except ReadOnlyDataSource as e:
        raise HTTPException(status_code=403, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return DocumentResponse.from_document(document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> DocumentResponse:
    try:
        document = await service.get_document(get_user_id(current_user), document_id)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return DocumentResponse.from_document(document)


@router.get("/{document_id}/file")
async def download_document_file(
    document_id: str,
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
) -> Response:
    """Original uploaded file."""
    try:
        document, data, content_type = await service.open_file(get_user_id(current_user), document_id)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(
        content=data,
        media_type=content_type or "application/octet-stream",
        headers={"Content-Disposition": content_disposition(document.file_name)},
    )


@router.delete("/{document_id}", status_code=204)
async def delete_document(
    document_id: str,
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
):
    """Delete a document and its stored file.

    Raises:
        403: For demo accounts
        404: If the caller has no such document
    """
    try:
        await service.delete_document(get_user_id(current_user), document_id)
    except ReadOnlyDataSource as e:
        raise HTTPException(status_code=403, detail=str(e))
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/{document_id}/suggest-tags", response_model=TagSuggestionResponse)
async def suggest_tags(
    document_id: str,
    current_user: dict = Depends(get_current_user),
    service: DocumentService = Depends(get_document_service),
    ai_service: DocumentAIService = Depends(get_ai_service),
) -> TagSuggestionResponse:
    """Suggest tags for a stored document from its extracted text.

    Raises:
        404: If the caller has no such document
        422: If the document has no extracted text
        502: If the AI service failed
    """
    try:
        document = await service.get_document(get_user_id(current_user), document_id)
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not (document.file_content or "").strip():
        raise HTTPException(status_code=422, detail="Document has no extracted text")

    try:
        tags = await ai_service.suggest_tags(document.file_content)
    except AIServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return TagSuggestionResponse(suggested_tags=tags)

"""Document endpoints - upload, fetch, preview, list, delete, finalize."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, UploadFile, status
from pydantic import BaseModel

from backend.app.api.deps import Services
from backend.app.models.common import DocumentStatus, FinalStatus
from backend.app.models.documents import Document, DocumentPreview, DocumentWithChunks

router = APIRouter(prefix="/documents", tags=["documents"])


class UploadResponse(BaseModel):
    """Response for POST /documents."""

    document_id: UUID
    message: str


class FinalizeResponse(BaseModel):
    """Response for POST /documents/{document_id}/finalize."""

    document_id: UUID
    status: FinalStatus


@router.post("", response_model=UploadResponse, status_code=status.HTTP_202_ACCEPTED)
async def upload_document(file: UploadFile, services: Services) -> UploadResponse:
    """Accept a scan and start background processing.

    Poll GET /documents/{document_id} for progress.
    """
    mime_type = file.content_type or "application/octet-stream"
    if file.size is not None:
        services.pipeline.validate_upload(mime_type, file.size)

    # One byte past the limit is enough for submit to refuse it
    data = await file.read(services.settings.max_upload_bytes + 1)

    document_id = await services.pipeline.submit(
        data,
        filename=file.filename or "upload",
        mime_type=mime_type,
        size=len(data),
    )

    return UploadResponse(
        document_id=document_id,
        message="File uploaded successfully and processing started",
    )


@router.get("", response_model=list[Document])
async def list_documents(
    services: Services,
    status_filter: Annotated[DocumentStatus | None, Query(alias="status")] = None,
    limit: Annotated[int | None, Query(ge=1, le=500)] = None,
) -> list[Document]:
    """List documents, newest first, optionally filtered by status."""
    if status_filter is not None:
        documents = await services.repository.list_documents_by_status(status_filter)
        return documents[:limit] if limit is not None else documents

    return await services.repository.list_documents(limit=limit)


@router.get("/{document_id}", response_model=None)
async def get_document(
    document_id: UUID,
    services: Services,
    include_chunks: bool = True,
) -> DocumentWithChunks | Document:
    """Fetch a document, by default with its chunks."""
    if include_chunks:
        return await services.review.get_document_with_chunks(document_id)
    return await services.review.get_document(document_id)


@router.get("/{document_id}/preview", response_model=DocumentPreview)
async def get_preview(document_id: UUID, services: Services) -> DocumentPreview:
    """Fetch the stored upload as base64 for display."""
    return await services.review.get_preview(document_id)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(document_id: UUID, services: Services) -> None:
    """Delete a document, its chunks and its stored upload."""
    await services.review.delete_document(document_id)


@router.post("/{document_id}/finalize", response_model=FinalizeResponse)
async def finalize_document(document_id: UUID, services: Services) -> FinalizeResponse:
    """Close out a fully reviewed document."""
    outcome = await services.review.finalize(document_id)
    return FinalizeResponse(document_id=document_id, status=outcome)

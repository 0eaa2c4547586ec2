"""
Document routes

Multipart upload, download and deletion of request attachments. Customers
see documents on their own requests or uploaded by them, never internal ones.
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.api.deps import get_request_ip, get_user_agent
from servicedesk.core.database import get_db
from servicedesk.core.permissions import Permission, require_permission
from servicedesk.core.principal import Principal
from servicedesk.models.enums import AuditAction, DocumentType
from servicedesk.schemas.common import MessageResponse, Page, bilingual
from servicedesk.schemas.misc import DocumentResponse, DocumentStats
from servicedesk.services.audit_service import AuditService
from servicedesk.services.document_service import DocumentService

router = APIRouter()


@router.get("", response_model=Page[DocumentResponse])
async def list_documents(
    request_id: Optional[str] = None,
    document_type: Optional[DocumentType] = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    items, total = await DocumentService(db).list_documents(
        principal, request_id=request_id, document_type=document_type, page=page, per_page=per_page
    )
    return Page[DocumentResponse].build(
        [DocumentResponse.model_validate(item) for item in items], total, page, per_page
    )


@router.get("/stats", response_model=DocumentStats)
async def get_document_stats(
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_READ)),
    db: AsyncSession = Depends(get_db),
):
    return DocumentStats(**await DocumentService(db).get_stats())


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    title_ar: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    document_type: DocumentType = Form(DocumentType.OTHER),
    request_id: Optional[str] = Form(None),
    is_internal: bool = Form(False),
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_CREATE, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """
    Upload a file, optionally attached to a request.

    Files over MAX_UPLOAD_SIZE are refused with 413.
    """
    content = await file.read()
    document = await DocumentService(db).upload(
        principal,
        content,
        file_name=file.filename,
        title=title,
        mime_type=file.content_type,
        document_type=document_type,
        request_id=request_id,
        title_ar=title_ar,
        description=description,
        is_internal=is_internal,
    )
    await AuditService(db).log(
        AuditAction.UPLOAD, "Document", document.id,
        new_values={"file_name": document.file_name, "request_id": document.request_id},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return DocumentResponse.model_validate(document)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: str,
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    return DocumentResponse.model_validate(await DocumentService(db).get_or_404(document_id, principal))


@router.get("/{document_id}/download")
async def download_document(
    request: Request,
    document_id: str,
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    document, path = await DocumentService(db).download(document_id, principal)
    await AuditService(db).log(
        AuditAction.DOWNLOAD, "Document", document.id,
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return FileResponse(path, media_type=document.mime_type, filename=document.file_name)


@router.delete("/{document_id}", response_model=MessageResponse)
async def delete_document(
    request: Request,
    document_id: str,
    principal: Principal = Depends(require_permission(Permission.DOCUMENTS_READ, allow_customer=True)),
    db: AsyncSession = Depends(get_db),
):
    """The uploader can always delete; anyone else needs documents:delete."""
    document = await DocumentService(db).delete(document_id, principal)
    await AuditService(db).log_delete(
        "Document", document_id, old_values={"file_name": document.file_name},
        principal=principal, ip_address=get_request_ip(request), user_agent=get_user_agent(request),
    )
    return bilingual("Document deleted")

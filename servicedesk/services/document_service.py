"""
Document Service

Request attachments stored on local disk under settings.UPLOAD_DIR.
Customers see non-internal documents on their own requests and their own
uploads; staff see everything.
"""
import logging
import mimetypes
import uuid
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession

from servicedesk.core.config import settings
from servicedesk.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, PayloadTooLargeError
from servicedesk.core.permissions import Permission, PermissionChecker
from servicedesk.core.principal import Principal
from servicedesk.models.document import Document
from servicedesk.models.enums import DocumentType
from servicedesk.models.service_request import ServiceRequest

logger = logging.getLogger(__name__)


class DocumentService:

    def __init__(self, db: AsyncSession, upload_dir: Optional[str] = None, max_size: Optional[int] = None):
        self.db = db
        self.upload_dir = Path(upload_dir or settings.UPLOAD_DIR)
        self.max_size = max_size or settings.MAX_UPLOAD_SIZE

    def path_for(self, document: Document) -> Path:
        return self.upload_dir / document.stored_name

    # =========================================================================
    # ACCESS
    # =========================================================================

    @staticmethod
    def _customer_scope(principal: Principal):
        owned_requests = select(ServiceRequest.id).where(ServiceRequest.customer_id == principal.id)
        return and_(
            Document.is_internal.is_(False),
            or_(
                Document.request_id.in_(owned_requests),
                and_(Document.uploaded_by_id == principal.id, Document.uploaded_by_type == principal.kind),
            ),
        )

    @staticmethod
    def can_view(document: Document, principal: Principal) -> bool:
        if principal.is_employee:
            return True
        if document.is_internal:
            return False
        is_uploader = (
            document.uploaded_by_id == principal.id and document.uploaded_by_type == principal.kind
        )
        return is_uploader or document.customer_id == principal.id

    async def get_or_404(self, document_id: str, principal: Optional[Principal] = None) -> Document:
        result = await self.db.execute(select(Document).where(Document.id == document_id))
        document = result.scalar_one_or_none()
        if not document:
            raise NotFoundError("Document not found")
        # Hidden documents look missing to customers
        if principal and not self.can_view(document, principal):
            raise NotFoundError("Document not found")
        return document

    async def list_documents(
        self,
        principal: Principal,
        request_id: Optional[str] = None,
        document_type: Optional[DocumentType] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> Tuple[List[Document], int]:
        conditions = []
        if principal.is_customer:
            conditions.append(self._customer_scope(principal))
        if request_id:
            conditions.append(Document.request_id == request_id)
        if document_type:
            conditions.append(Document.document_type == document_type)

        count_query = select(func.count(Document.id))
        query = select(Document)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar() or 0
        result = await self.db.execute(
            query.order_by(Document.created_at.desc()).offset((page - 1) * per_page).limit(per_page)
        )
        return list(result.scalars().all()), total

    # =========================================================================
    # UPLOAD / DOWNLOAD / DELETE
    # =========================================================================

    async def upload(
        self,
        principal: Principal,
        content: bytes,
        file_name: str,
        title: str,
        mime_type: Optional[str] = None,
        document_type: DocumentType = DocumentType.OTHER,
        request_id: Optional[str] = None,
        title_ar: Optional[str] = None,
        description: Optional[str] = None,
        is_internal: bool = False,
    ) -> Document:
        """
        Store an uploaded file and its metadata.

        Raises:
            BadRequestError: Empty file
            PayloadTooLargeError: File larger than the configured maximum
            NotFoundError: Linked request does not exist
            ForbiddenError: Customer attaching to someone else's request
        """
        if not content:
            raise BadRequestError("File is empty")
        if len(content) > self.max_size:
            raise PayloadTooLargeError(
                "File is too large",
                details={"max_size": self.max_size, "size": len(content)},
            )

        customer_id = principal.id if principal.is_customer else None
        if request_id:
            request = await self.db.get(ServiceRequest, request_id)
            if not request:
                raise NotFoundError("Request not found")
            if principal.is_customer and request.customer_id != principal.id:
                raise ForbiddenError("You do not have access to this resource")
            customer_id = request.customer_id

        original_name = Path(file_name or "upload").name
        stored_name = f"{uuid.uuid4().hex}{Path(original_name).suffix.lower()}"

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        partial_path = self.upload_dir / f"{stored_name}.part"
        partial_path.write_bytes(content)

        document = Document(
            request_id=request_id,
            customer_id=customer_id,
            document_type=document_type,
            title=title,
            title_ar=title_ar,
            description=description,
            file_name=original_name,
            stored_name=stored_name,
            mime_type=mime_type or mimetypes.guess_type(original_name)[0] or "application/octet-stream",
            file_size=len(content),
            # Customers cannot hide documents from themselves
            is_internal=is_internal and principal.is_employee,
            uploaded_by_id=principal.id,
            uploaded_by_type=principal.kind,
        )
        self.db.add(document)
        try:
            await self.db.flush()
        except Exception:
            partial_path.unlink(missing_ok=True)
            logger.error(f"Discarded upload {stored_name}: metadata could not be saved")
            raise

        # Only files with a row behind them get their final name
        partial_path.rename(self.upload_dir / stored_name)
        logger.info(f"Document {document.id} uploaded by {principal.kind.value} {principal.id}")
        return document

    async def download(self, document_id: str, principal: Principal) -> Tuple[Document, Path]:
        document = await self.get_or_404(document_id, principal)
        path = self.path_for(document)
        if not path.is_file():
            logger.error(f"Document {document.id} is missing its file {path}")
            raise NotFoundError("Document not found")

        document.download_count = (document.download_count or 0) + 1
        await self.db.flush()
        return document, path

    async def delete(self, document_id: str, principal: Principal) -> Document:
        document = await self.get_or_404(document_id, principal)

        is_uploader = (
            document.uploaded_by_id == principal.id and document.uploaded_by_type == principal.kind
        )
        if not is_uploader:
            if not principal.is_employee or not await PermissionChecker(self.db, principal).can(
                Permission.DOCUMENTS_DELETE
            ):
                raise ForbiddenError("Only the uploader can delete this document")

        await self.db.delete(document)
        await self.db.flush()
        self.path_for(document).unlink(missing_ok=True)
        logger.info(f"Document {document.id} deleted by {principal.kind.value} {principal.id}")
        return document

    async def get_stats(self) -> Dict[str, Any]:
        total = (await self.db.execute(select(func.count(Document.id)))).scalar() or 0
        total_size = (await self.db.execute(select(func.coalesce(func.sum(Document.file_size), 0)))).scalar()
        rows = await self.db.execute(
            select(Document.document_type, func.count(Document.id)).group_by(Document.document_type)
        )
        return {
            "total": total,
            "total_size": int(total_size or 0),
            "by_type": {DocumentType(doc_type).value: count for doc_type, count in rows.all()},
        }

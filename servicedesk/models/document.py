"""
Document model

Files attached to requests (contracts, certificates, test results...).
Bytes live on disk under settings.UPLOAD_DIR; this row holds the metadata.
"""
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Integer, Boolean, Text, DateTime, ForeignKey, Enum as SQLEnum, Index
)

from servicedesk.core.database import Base
from servicedesk.core.utils import generate_uuid
from servicedesk.models.enums import DocumentType, PrincipalKind


class Document(Base):
    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    request_id = Column(String(36), ForeignKey("service_requests.id"), nullable=True)
    customer_id = Column(String(36), nullable=True)  # Owner of the linked request, if any

    document_type = Column(SQLEnum(DocumentType), default=DocumentType.OTHER, nullable=False)
    title = Column(String(255), nullable=False)
    title_ar = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)

    # File
    file_name = Column(String(255), nullable=False)  # Original client filename
    stored_name = Column(String(255), nullable=False, unique=True)
    mime_type = Column(String(100), nullable=True)
    file_size = Column(Integer, nullable=False)

    # Internal documents are hidden from customers
    is_internal = Column(Boolean, default=False, nullable=False)

    uploaded_by_id = Column(String(36), nullable=False)
    uploaded_by_type = Column(SQLEnum(PrincipalKind), nullable=False)

    download_count = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        Index("ix_documents_request_id", "request_id"),
        Index("ix_documents_uploader", "uploaded_by_id", "uploaded_by_type"),
    )

    def __repr__(self):
        return f"<Document(id={self.id}, file_name='{self.file_name}')>"

"""
Tests for document storage and visibility.
"""
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from servicedesk.core.exceptions import BadRequestError, ForbiddenError, NotFoundError, PayloadTooLargeError
from servicedesk.models.enums import DocumentType
from servicedesk.schemas.request import RequestCreate
from servicedesk.services.document_service import DocumentService
from servicedesk.services.request_service import RequestService

PDF = b"%PDF-1.4 test report"


@pytest.fixture
def documents(db_session, tmp_path):
    return DocumentService(db_session, upload_dir=str(tmp_path), max_size=1024)


@pytest_asyncio.fixture
async def service_request(db_session, customer, service):
    return await RequestService(db_session).create(
        customer.id, RequestCreate(service_id=service.id, title="Fire safety inspection")
    )


@pytest_asyncio.fixture
async def engineer(make_employee):
    return await make_employee()


class TestUpload:

    @pytest.mark.asyncio
    async def test_stores_file_and_metadata(self, documents, tmp_path, customer, service_request, principal_of):
        document = await documents.upload(
            principal_of(customer), PDF, "../../Site Plan.PDF", "Site plan",
            document_type=DocumentType.TECHNICAL_DRAWING, request_id=service_request.id,
        )

        assert document.file_name == "Site Plan.PDF"
        assert document.stored_name.endswith(".pdf")
        assert document.mime_type == "application/pdf"
        assert document.file_size == len(PDF)
        assert document.customer_id == customer.id
        assert (tmp_path / document.stored_name).read_bytes() == PDF

    @pytest.mark.asyncio
    async def test_empty_file(self, documents, customer, principal_of):
        with pytest.raises(BadRequestError):
            await documents.upload(principal_of(customer), b"", "empty.txt", "Empty")

    @pytest.mark.asyncio
    async def test_too_large(self, documents, customer, principal_of):
        with pytest.raises(PayloadTooLargeError) as exc_info:
            await documents.upload(principal_of(customer), b"x" * 1025, "big.bin", "Big")

        assert exc_info.value.to_dict()["status_code"] == 413

    @pytest.mark.asyncio
    async def test_customer_cannot_attach_to_foreign_request(
        self, documents, service_request, make_customer, principal_of
    ):
        stranger = await make_customer(email="stranger@example.com")

        with pytest.raises(ForbiddenError):
            await documents.upload(principal_of(stranger), PDF, "x.pdf", "X", request_id=service_request.id)

    @pytest.mark.asyncio
    async def test_failed_save_leaves_no_file(self, db_session, documents, tmp_path, customer, principal_of, monkeypatch):
        monkeypatch.setattr(db_session, "flush", AsyncMock(side_effect=RuntimeError("database unavailable")))

        with pytest.raises(RuntimeError):
            await documents.upload(principal_of(customer), PDF, "x.pdf", "X")

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_customer_cannot_mark_internal(self, documents, customer, principal_of):
        document = await documents.upload(principal_of(customer), PDF, "x.pdf", "X", is_internal=True)

        assert document.is_internal is False


class TestVisibility:

    @pytest.mark.asyncio
    async def test_internal_documents_hidden_from_customer(
        self, documents, customer, engineer, service_request, principal_of
    ):
        internal = await documents.upload(
            principal_of(engineer), PDF, "notes.pdf", "Engineer notes",
            request_id=service_request.id, is_internal=True,
        )
        shared = await documents.upload(
            principal_of(engineer), PDF, "report.pdf", "Final report",
            document_type=DocumentType.REPORT, request_id=service_request.id,
        )

        listed, total = await documents.list_documents(principal_of(customer))
        assert total == 1
        assert listed[0].id == shared.id

        with pytest.raises(NotFoundError):
            await documents.get_or_404(internal.id, principal_of(customer))

        staff_listed, staff_total = await documents.list_documents(principal_of(engineer))
        assert staff_total == 2

    @pytest.mark.asyncio
    async def test_download_counts(self, documents, customer, principal_of):
        document = await documents.upload(principal_of(customer), PDF, "x.pdf", "X")

        downloaded, path = await documents.download(document.id, principal_of(customer))

        assert downloaded.download_count == 1
        assert path.read_bytes() == PDF


class TestDelete:

    @pytest.mark.asyncio
    async def test_uploader_deletes_and_file_goes(self, documents, tmp_path, customer, principal_of):
        document = await documents.upload(principal_of(customer), PDF, "x.pdf", "X")

        await documents.delete(document.id, principal_of(customer))

        assert not (tmp_path / document.stored_name).exists()
        with pytest.raises(NotFoundError):
            await documents.get_or_404(document.id)

    @pytest.mark.asyncio
    async def test_employee_needs_delete_permission(
        self, documents, customer, permissions, make_role, make_employee, principal_of
    ):
        document = await documents.upload(principal_of(customer), PDF, "x.pdf", "X")
        reader = await make_employee(
            role=await make_role(name="Readers", permission_names=["documents:read"], registry=permissions),
            email="reader@example.com",
        )
        remover = await make_employee(
            role=await make_role(name="Removers", permission_names=["documents:delete"], registry=permissions),
            email="remover@example.com",
        )

        with pytest.raises(ForbiddenError):
            await documents.delete(document.id, principal_of(reader))
        await documents.delete(document.id, principal_of(remover))

    @pytest.mark.asyncio
    async def test_request_removal_keeps_documents(self, db_session, documents, engineer, service_request, principal_of):
        document = await documents.upload(
            principal_of(engineer), PDF, "x.pdf", "X", request_id=service_request.id
        )

        await RequestService(db_session).remove(service_request.id)
        await db_session.refresh(document)

        assert document.request_id is None

    @pytest.mark.asyncio
    async def test_stats(self, documents, customer, principal_of):
        await documents.upload(principal_of(customer), PDF, "a.pdf", "A", document_type=DocumentType.REPORT)
        await documents.upload(principal_of(customer), b"12345", "b.jpg", "B", document_type=DocumentType.PHOTO)

        stats = await documents.get_stats()

        assert stats["total"] == 2
        assert stats["total_size"] == len(PDF) + 5
        assert stats["by_type"] == {"REPORT": 1, "PHOTO": 1}

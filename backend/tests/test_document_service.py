"""Unit tests for DocumentService."""

import hashlib
import re
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import (
    DependencyError,
    NotFoundError,
    PayloadTooLarge,
    ValidationError,
)
from app.models.document import Document
from app.models.template import Template
from app.models.user import User
from app.schemas.document import DocumentAttributes, DocumentPatch
from app.services.document_service import (
    DocumentService,
    UploadedFile,
    build_object_name,
    compute_hash,
)

PDF = b"%PDF-1.4 invoice body"
PNG = b"\x89PNG\r\n\x1a\n scan"


def pdf_upload(data=PDF):
    return UploadedFile(filename="invoice.pdf", content_type="application/pdf", data=data)


@pytest.fixture
def owner(db_session):
    user = User(email="owner@example.com", password_hash="x", rodo=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def stranger(db_session):
    user = User(email="stranger@example.com", password_hash="x", rodo=True)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def service(db_session, storage):
    return DocumentService(db_session, storage, max_upload_size=1024)


def create_invoice(service, user_id, form=None, upload=None, doc_type="Invoice", title="FV 1/2025"):
    return service.create(
        user_id,
        template_id="1",
        title=title,
        doc_type=doc_type,
        attributes=DocumentAttributes.from_form(form or {}),
        upload=upload or pdf_upload(),
    )


class TestHelpers:
    def test_compute_hash(self):
        assert compute_hash(b"abc") == hashlib.sha256(b"abc").hexdigest()

    def test_object_name_layout(self):
        name = build_object_name(7, "VAT Invoice", pdf_upload())
        assert re.fullmatch(r"documents/user_7/vat_invoice_\d{13}_[0-9a-f]{8}\.pdf", name)

    def test_object_names_are_unique(self):
        assert build_object_name(1, "Offer", pdf_upload()) != build_object_name(1, "Offer", pdf_upload())


class TestValidateUpload:
    def test_missing_file(self, service):
        with pytest.raises(ValidationError):
            service.validate_upload(None)

    def test_optional_file(self, service):
        service.validate_upload(None, required=False)

    def test_too_large(self, service):
        with pytest.raises(PayloadTooLarge) as exc:
            service.validate_upload(pdf_upload(b"x" * 1025))
        assert exc.value.status_code == 413

    def test_mime_type_not_allowed(self, service):
        upload = UploadedFile(filename="a.exe", content_type="application/x-msdownload", data=b"MZ")
        with pytest.raises(ValidationError):
            service.validate_upload(upload)


class TestCreate:
    """Test document creation."""

    def test_create_stores_object_and_row(self, service, owner, storage_backend, db_session):
        document = create_invoice(service, owner.id, form={
            "seller_name": "ACME",
            "products": '[{"name": "Widget", "qty": 2}]',
        })

        row = db_session.get(Document, document["id"])
        assert storage_backend.objects[row.storage_key] == PDF
        assert row.hash == hashlib.sha256(PDF).hexdigest()
        assert row.file_path == f"http://storage.test/test-bucket/{row.storage_key}"
        assert row.attributes["products"] == [{"name": "Widget", "qty": 2}]
        assert row.attributes["buyer_name"] is None

        assert document["url"] == row.file_path
        assert document["seller_name"] == "ACME"
        assert document["duties"] == []
        assert document["is_image"] is False
        assert document["template_id"] == 1

    def test_image_flag(self, service, owner):
        upload = UploadedFile(filename="scan.png", content_type="image/png", data=PNG)
        assert create_invoice(service, owner.id, upload=upload)["is_image"] is True

    def test_missing_required_fields(self, service, owner, storage_backend):
        with pytest.raises(ValidationError):
            service.create(owner.id, "1", "", "Invoice", DocumentAttributes(), pdf_upload())
        assert storage_backend.upload_calls == 0

    def test_template_id_must_be_integer(self, service, owner):
        with pytest.raises(ValidationError):
            service.create(owner.id, "abc", "Title", "Invoice", DocumentAttributes(), pdf_upload())

    def test_oversized_upload_touches_nothing(self, service, owner, storage_backend, db_session):
        with pytest.raises(PayloadTooLarge):
            create_invoice(service, owner.id, upload=pdf_upload(b"x" * 2048))

        assert storage_backend.upload_calls == 0
        assert db_session.query(Document).count() == 0

    def test_storage_failure(self, service, owner, storage_backend, db_session):
        storage_backend.fail_uploads = True
        with pytest.raises(DependencyError):
            create_invoice(service, owner.id)
        assert db_session.query(Document).count() == 0

    def test_database_failure_leaves_orphan(self, service, owner, storage_backend, db_session):
        with patch.object(db_session, "commit", side_effect=OperationalError("INSERT", {}, Exception("down"))):
            with pytest.raises(DependencyError) as exc:
                create_invoice(service, owner.id)

        assert exc.value.details is None
        assert len(storage_backend.objects) == 1
        assert db_session.query(Document).count() == 0


class TestListAndGet:
    def test_list_is_scoped_and_filtered(self, service, owner, stranger, db_session):
        db_session.add(Template(name="Invoice template", category="Invoice", content="..."))
        db_session.commit()

        first = create_invoice(service, owner.id, title="First")
        second = create_invoice(service, owner.id, title="Second", doc_type="Offer")
        create_invoice(service, stranger.id, title="Not mine")

        listed = service.list(owner.id)
        assert [d["id"] for d in listed] == [second["id"], first["id"]]
        assert listed[0]["template_name"] == "Invoice template"
        assert listed[0]["products"] == []

        assert [d["name"] for d in service.list(owner.id, "Offer")] == ["Second"]

    def test_unknown_template_name_is_null(self, service, owner):
        create_invoice(service, owner.id)
        assert service.list(owner.id)[0]["template_name"] is None

    def test_get(self, service, owner, stranger):
        document = create_invoice(service, owner.id, form={"notes": "Paid"})

        assert service.get(owner.id, document["id"])["notes"] == "Paid"
        with pytest.raises(NotFoundError) as exc:
            service.get(stranger.id, document["id"])
        assert exc.value.message == "Document not found or access denied"


class TestUpdate:
    """Test partial updates."""

    def test_fields_absent_from_patch_are_kept(self, service, owner):
        document = create_invoice(service, owner.id, form={
            "seller_name": "ACME",
            "buyer_name": "Globex",
            "products": '[{"name": "Widget", "qty": 2}]',
        })

        updated = service.update(owner.id, document["id"], DocumentPatch.from_form({"buyer_name": "Initech"}))

        assert updated["buyer_name"] == "Initech"
        assert updated["seller_name"] == "ACME"
        assert updated["products"] == [{"name": "Widget", "qty": 2}]
        assert updated["name"] == "FV 1/2025"
        assert updated["hash"] == document["hash"]

    def test_empty_patch_is_noop(self, service, owner):
        document = create_invoice(service, owner.id, form={"seller_name": "ACME", "gross_amount": "123,00"})

        updated = service.update(owner.id, document["id"], DocumentPatch.from_form({}))

        for key in ("name", "type", "template_id", "file_path", "hash", "seller_name", "gross_amount"):
            assert updated[key] == document[key]

    def test_columns_and_explicit_null(self, service, owner):
        document = create_invoice(service, owner.id, form={"notes": "Draft"})

        updated = service.update(owner.id, document["id"], DocumentPatch.from_form({
            "title": "Final",
            "type": "Contract",
            "templateId": "5",
            "notes": "",
        }))

        assert updated["name"] == "Final"
        assert updated["type"] == "Contract"
        assert updated["template_id"] == 5
        assert updated["notes"] is None

    def test_replace_binary(self, service, owner, storage_backend):
        document = create_invoice(service, owner.id)
        old_key = document["storage_key"]

        upload = UploadedFile(filename="scan.png", content_type="image/png", data=PNG)
        updated = service.update(owner.id, document["id"], DocumentPatch.from_form({}), upload=upload)

        assert updated["storage_key"] != old_key
        assert old_key not in storage_backend.objects
        assert storage_backend.objects[updated["storage_key"]] == PNG
        assert updated["hash"] == hashlib.sha256(PNG).hexdigest()
        assert updated["is_image"] is True
        assert updated["updated_at"] is not None

    def test_old_object_delete_failure_is_tolerated(self, service, owner, storage_backend):
        document = create_invoice(service, owner.id)
        storage_backend.fail_deletes = True

        updated = service.update(owner.id, document["id"], DocumentPatch.from_form({}), upload=pdf_upload(b"v2"))

        assert updated["hash"] == compute_hash(b"v2")
        assert document["storage_key"] in storage_backend.objects

    def test_other_user(self, service, owner, stranger):
        document = create_invoice(service, owner.id)
        with pytest.raises(NotFoundError):
            service.update(stranger.id, document["id"], DocumentPatch.from_form({"title": "Mine now"}))

    def test_oversized_replacement(self, service, owner, storage_backend):
        document = create_invoice(service, owner.id)
        calls = storage_backend.upload_calls

        with pytest.raises(PayloadTooLarge):
            service.update(owner.id, document["id"], DocumentPatch.from_form({}), upload=pdf_upload(b"x" * 4096))
        assert storage_backend.upload_calls == calls


class TestDelete:
    def test_delete(self, service, owner, storage_backend):
        document = create_invoice(service, owner.id)

        service.delete(owner.id, document["id"])

        assert storage_backend.objects == {}
        with pytest.raises(NotFoundError):
            service.get(owner.id, document["id"])
        with pytest.raises(NotFoundError):
            service.delete(owner.id, document["id"])

    def test_delete_when_storage_fails(self, service, owner, storage_backend, db_session):
        document = create_invoice(service, owner.id)
        storage_backend.fail_deletes = True

        service.delete(owner.id, document["id"])

        assert db_session.query(Document).count() == 0

    def test_other_user_cannot_delete(self, service, owner, stranger):
        document = create_invoice(service, owner.id)
        with pytest.raises(NotFoundError):
            service.delete(stranger.id, document["id"])
        assert service.get(owner.id, document["id"])["id"] == document["id"]


class TestUploadAsset:
    def test_upload_asset(self, service, owner, storage_backend):
        upload = UploadedFile(filename="logo.png", content_type="image/png", data=PNG)

        url = service.upload_asset(owner.id, "logo", upload)

        (key,) = storage_backend.objects
        assert re.fullmatch(rf"assets/logo_{owner.id}_\d{{13}}\.png", key)
        assert url.endswith(key)

    def test_upload_asset_requires_field(self, service, owner):
        upload = UploadedFile(filename="logo.png", content_type="image/png", data=PNG)
        with pytest.raises(ValidationError):
            service.upload_asset(owner.id, "", upload)

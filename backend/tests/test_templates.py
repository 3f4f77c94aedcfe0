"""Tests for TemplateService and /api/templates routes."""

from datetime import datetime, timezone

import pytest

from app.core.exceptions import NotFoundError, ValidationError
from app.models.template import Template
from app.services.template_service import TemplateService


@pytest.fixture
def service(db_session):
    return TemplateService(db_session)


class TestTemplateService:
    """Test the template catalogue."""

    def test_create_and_get(self, service):
        template = service.create("Standard invoice", "Invoice", "<html>{{seller_name}}</html>")

        fetched = service.get_by_id(template.id)
        assert fetched.name == "Standard invoice"
        assert service.get_content(template.id) == "<html>{{seller_name}}</html>"

    def test_create_missing_fields(self, service):
        with pytest.raises(ValidationError) as exc:
            service.create("Only a name", "", None)
        assert exc.value.details == ["category", "content"]

    def test_get_unknown(self, service):
        with pytest.raises(NotFoundError):
            service.get_by_id(404)
        with pytest.raises(NotFoundError):
            service.get_content(404)

    def test_list_newest_first_with_filter(self, service, db_session):
        db_session.add_all([
            Template(name="Old offer", category="Offer", content="a",
                     created_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            Template(name="New offer", category="Offer", content="b",
                     created_at=datetime(2025, 1, 1, tzinfo=timezone.utc)),
            Template(name="Contract", category="Contract", content="c",
                     created_at=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        ])
        db_session.commit()

        assert [t.name for t in service.list()] == ["New offer", "Contract", "Old offer"]
        assert [t.name for t in service.list("Offer")] == ["New offer", "Old offer"]
        assert service.list("Invoice") == []

    def test_list_ties_broken_by_id(self, service, db_session):
        stamp = datetime(2025, 1, 1, tzinfo=timezone.utc)
        db_session.add_all([
            Template(name="First", category="Offer", content="a", created_at=stamp),
            Template(name="Second", category="Offer", content="b", created_at=stamp),
        ])
        db_session.commit()

        assert [t.name for t in service.list()] == ["Second", "First"]


class TestTemplateEndpoints:
    def test_requires_auth(self, client):
        assert client.get("/api/templates").status_code == 401
        assert client.post("/api/templates", json={}).status_code == 401

    def test_create_list_get(self, client, headers):
        created = client.post(
            "/api/templates",
            json={"name": "Offer A", "category": "Offer", "content": "Dear {{buyer_name}}"},
            headers=headers,
        )
        assert created.status_code == 201
        template_id = created.json()["id"]

        listed = client.get("/api/templates", params={"category": "Offer"}, headers=headers)
        assert [t["id"] for t in listed.json()] == [template_id]

        fetched = client.get(f"/api/templates/{template_id}", headers=headers)
        assert fetched.json()["name"] == "Offer A"

        content = client.get(f"/api/templates/{template_id}/content", headers=headers)
        assert content.json() == {"content": "Dear {{buyer_name}}"}

    def test_create_missing_fields(self, client, headers):
        response = client.post("/api/templates", json={"name": "No content"}, headers=headers)
        assert response.status_code == 400

    def test_unknown_template(self, client, headers):
        assert client.get("/api/templates/9999", headers=headers).status_code == 404
        assert client.get("/api/templates/9999/content", headers=headers).status_code == 404

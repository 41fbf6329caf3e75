"""Tests for GET /api/health and the API root."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health_returns_200(client: AsyncClient):
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "healthy"
    assert data["llm"] == "configured"
    assert data["model"]


@pytest.mark.asyncio
async def test_health_reports_missing_key(client: AsyncClient, monkeypatch):
    from app.config import settings

    monkeypatch.setattr(settings, "LLM_API_KEY", "")
    resp = await client.get("/api/health/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "degraded"
    assert data["llm"] == "missing_api_key"


@pytest.mark.asyncio
async def test_root_endpoint(client: AsyncClient):
    resp = await client.get("/")
    assert resp.status_code == 200
    data = resp.json()
    assert data["name"] == "MSBTE Report Generator API"
    assert data["endpoints"]["generate"] == "/api/generate-project"


@pytest.mark.asyncio
async def test_process_time_header(client: AsyncClient):
    resp = await client.get("/")
    assert resp.headers["X-Process-Time"].endswith("ms")

"""
Integration tests for the FastAPI endpoints.

The app runs against an in-memory SQLite database through the real
SQLDealStore; the memo generator and notifier are replaced with fakes via
dependency overrides.
"""

import uuid

import httpx
import pytest
import pytest_asyncio

from dealflow.analyst.generator import AnalysisGenerationError
from dealflow.archivist.database import get_db
from dealflow.archivist.storage import SQLDealStore
from dealflow.main import app, get_generator, get_notifier, get_store, get_triage_config
from tests.test_helpers import (
    FakeMemoGenerator,
    RecordingNotifier,
    make_sqlite_session_factory,
    skip_no_sqlite,
)

pytestmark = skip_no_sqlite


class FailingGenerator:
    async def generate(self, submission):
        raise AnalysisGenerationError("Claude unavailable", retryable=True)


@pytest_asyncio.fixture
async def api(sample_memo, triage_config):
    """App wired to SQLite; yields (client, state) where state holds the swappable fakes."""
    engine, factory = await make_sqlite_session_factory()
    state = {
        "generator": FakeMemoGenerator(sample_memo),
        "notifier": RecordingNotifier(),
    }

    async def override_db():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_store] = lambda: SQLDealStore(factory)
    app.dependency_overrides[get_generator] = lambda: state["generator"]
    app.dependency_overrides[get_notifier] = lambda: state["notifier"]
    app.dependency_overrides[get_triage_config] = lambda: triage_config
    app.dependency_overrides[get_db] = override_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client, state

    app.dependency_overrides.clear()
    await engine.dispose()


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, api):
        client, _ = api
        resp = await client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"


class TestDealIntake:
    """POST /webhook/deal-intake."""

    @pytest.mark.asyncio
    async def test_new_deal_created(self, api, sample_submission):
        client, state = api

        resp = await client.post("/webhook/deal-intake", json=sample_submission)

        assert resp.status_code == 201
        body = resp.json()
        assert body["outcome"] == "success"
        assert body["status"] == "Qualified"
        assert body["fit_score"] == 78
        assert len(body["source_hash"]) == 64
        assert len(state["notifier"].messages) == 1

    @pytest.mark.asyncio
    async def test_replay_is_idempotent(self, api, sample_submission):
        client, state = api
        first = (await client.post("/webhook/deal-intake", json=sample_submission)).json()

        resp = await client.post("/webhook/deal-intake", json=sample_submission)

        assert resp.status_code == 200
        assert resp.json()["outcome"] == "replay"
        assert resp.json()["deal_id"] == first["deal_id"]
        assert state["generator"].calls == 1

    @pytest.mark.asyncio
    async def test_duplicate_website(self, api, sample_submission):
        client, _ = api
        first = (await client.post("/webhook/deal-intake", json=sample_submission)).json()

        resp = await client.post(
            "/webhook/deal-intake",
            json=dict(sample_submission, pitch="Same company, new pitch."),
        )

        assert resp.status_code == 200
        assert resp.json()["outcome"] == "duplicate"
        assert resp.json()["deal_id"] == first["deal_id"]
        assert len((await client.get("/deals")).json()) == 1

    @pytest.mark.asyncio
    async def test_invalid_submission(self, api, sample_submission):
        client, state = api
        del sample_submission["sector"]
        sample_submission["force_fit_score"] = 150

        resp = await client.post("/webhook/deal-intake", json=sample_submission)

        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "intake_validation_error"
        assert {i["field"] for i in body["issues"]} == {"sector", "force_fit_score"}
        assert state["generator"].calls == 0

    @pytest.mark.asyncio
    async def test_non_object_body(self, api):
        client, _ = api

        resp = await client.post("/webhook/deal-intake", json=["not", "an", "object"])

        assert resp.status_code == 422
        assert resp.json()["issues"][0]["field"] == "submission"

    @pytest.mark.asyncio
    async def test_schema_error(self, api, sample_submission, sample_memo):
        client, state = api
        state["generator"] = FakeMemoGenerator(dict(sample_memo, strengths="just one string"))

        resp = await client.post("/webhook/deal-intake", json=sample_submission)

        assert resp.status_code == 502
        body = resp.json()
        assert body["outcome"] == "schema_error"
        assert body["status"] == "LLM_Error"
        assert body["error"]["field"] == "strengths"

        stored = (await client.get("/deals", params={"status": "LLM_Error"})).json()
        assert [d["id"] for d in stored] == [body["deal_id"]]
        assert stored[0]["memo"] is None
        assert stored[0]["fit_score"] is None
        assert stored[0]["owner"] is None

        events = (await client.get(f"/deals/{body['deal_id']}/events")).json()
        assert [e["event_type"] for e in events] == ["deal_created"]

    @pytest.mark.asyncio
    async def test_generation_error(self, api, sample_submission):
        client, state = api
        state["generator"] = FailingGenerator()

        resp = await client.post("/webhook/deal-intake", json=sample_submission)

        assert resp.status_code == 502
        assert resp.json()["error"] == "analysis_generation_error"
        assert resp.json()["retryable"] is True


class TestDealQueries:
    """GET /deals, /deals/{id}, /deals/{id}/events."""

    @pytest.mark.asyncio
    async def test_get_deal_and_events(self, api, sample_submission, sample_memo):
        client, state = api
        state["generator"] = FakeMemoGenerator(
            dict(sample_memo, fit_score=45, fit_reasoning="Compelling wedge into finance teams.")
        )
        created = (await client.post("/webhook/deal-intake", json=sample_submission)).json()

        deal = (await client.get(f"/deals/{created['deal_id']}")).json()
        events = (await client.get(f"/deals/{created['deal_id']}/events")).json()

        assert deal["company_name"] == "Acme Analytics"
        assert deal["fit_score"] == 70
        assert deal["status"] == "Qualified"
        assert deal["memo"]["fit_score"] == 70
        assert deal["normalized_payload"]["sector"] == "b2b saas"
        assert {e["event_type"] for e in events} == {"score_consistency_fix", "deal_created"}

    @pytest.mark.asyncio
    async def test_filter_by_status(self, api, sample_submission):
        client, _ = api
        await client.post("/webhook/deal-intake", json=sample_submission)
        await client.post(
            "/webhook/deal-intake",
            json=dict(sample_submission, website="https://bio.example", sector="Biotech"),
        )

        qualified = (await client.get("/deals", params={"status": "Qualified"})).json()
        passed = (await client.get("/deals", params={"status": "Pass"})).json()

        assert [d["sector"] for d in qualified] == ["B2B SaaS"]
        assert [d["sector"] for d in passed] == ["Biotech"]

    @pytest.mark.asyncio
    async def test_unknown_status_rejected(self, api):
        client, _ = api
        resp = await client.get("/deals", params={"status": "Maybe"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_missing_deal(self, api):
        client, _ = api
        missing = uuid.uuid4()

        assert (await client.get(f"/deals/{missing}")).status_code == 404
        assert (await client.get(f"/deals/{missing}/events")).status_code == 404

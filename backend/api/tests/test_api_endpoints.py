import logging

import httpx
import pytest
import pytest_asyncio

from backend.api import app as app_module
from backend.api.services.batch_service import BatchService
from backend.auth.basic import basic_auth
from backend.mongo.registrations import InMemoryRegistrationRepository
from backend.services.lookup_client import CPFLookupClient

logger = logging.getLogger("test_api_endpoints")
app = app_module.app


@pytest_asyncio.fixture
async def api(fake_collection, fake_redis, upstream_payload):
    registrations = InMemoryRegistrationRepository()

    def upstream_handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["consulta"] == "52998224725":
            return httpx.Response(500, json={"error": "falha"})
        return httpx.Response(200, json=upstream_payload)

    upstream = httpx.AsyncClient(transport=httpx.MockTransport(upstream_handler))
    app.dependency_overrides[basic_auth] = lambda: "tester"
    app.dependency_overrides[app_module.get_registration_repository] = lambda: registrations
    app.dependency_overrides[app_module.get_lookup_client] = lambda: CPFLookupClient(
        base_url="https://upstream.test/api", token="tok", client=upstream
    )
    app.dependency_overrides[app_module.get_batch_service] = lambda: BatchService(
        "redis://fake", "batches_queue", registrations=registrations,
        collection=fake_collection, redis_factory=lambda url: fake_redis,
    )
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    await upstream.aclose()


@pytest.mark.asyncio
async def test_root_status(api):
    response = await api.get("/")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_single_lookup_success(api):
    response = await api.get("/api/v1/cpf/111.444.777-35")
    logger.info(f"test_single_lookup_success: status={response.status_code}, body={response.json()}")
    assert response.status_code == 200
    data = response.json()
    assert data["cpf"] == "11144477735"
    assert data["name"] == "JOAO DA SILVA"
    assert data["classification"] == "GOOD"


@pytest.mark.asyncio
async def test_single_lookup_bad_input_and_upstream_error(api):
    assert (await api.get("/api/v1/cpf/123")).status_code == 400
    assert (await api.get("/api/v1/cpf/52998224725")).status_code == 502


@pytest.mark.asyncio
async def test_registration_upsert_flow(api):
    first = await api.post("/api/v1/registrations", json={"cpf": "111.444.777-35", "name": "JOAO", "income": "R$ 2.000,00"})
    assert first.status_code == 201
    assert first.json()["income"] == 2000.0

    second = await api.post("/api/v1/registrations", json={"cpf": "11144477735", "name": "JOAO SILVA", "income": 4000})
    assert second.status_code == 201

    listed = (await api.get("/api/v1/registrations")).json()
    assert len(listed) == 1
    assert listed[0]["name"] == "JOAO SILVA"


@pytest.mark.asyncio
async def test_registration_invalid_cpf(api):
    response = await api.post("/api/v1/registrations", json={"cpf": "12345678900", "name": "Teste CPF"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_batch_create_status_cancel(api, fake_redis):
    created = await api.post("/api/v1/batches", json={"cpfs_text": "111.444.777-35\n529.982.247-25\n12"})
    assert created.status_code == 201
    body = created.json()
    assert body["total"] == 2
    assert len(fake_redis.lists["batches_queue"]) == 1

    status = await api.get(f"/api/v1/batches/{body['batch_id']}")
    assert status.status_code == 200
    assert status.json()["status"] == "queued"
    assert status.json()["progress"] == {"current": 0, "total": 2}

    cancel = await api.post(f"/api/v1/batches/{body['batch_id']}/cancel")
    assert cancel.status_code == 200
    assert cancel.json()["cancel_requested"] is True


@pytest.mark.asyncio
async def test_batch_without_valid_cpf(api):
    response = await api.post("/api/v1/batches", json={"cpfs": ["123", "abc"]})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_batch_report(api, fake_collection):
    created = (await api.post("/api/v1/batches", json={"cpfs": ["11144477735"]})).json()
    result = {
        "cpf": "11144477735", "name": "JOAO", "mother_name": "MARIA", "birth_date": "01/02/1980",
        "addresses": ["RUA A"], "email": "j@x.com", "phones": ["11999990000"], "income": "3000,00",
        "score": "700", "classification": "GOOD", "error": None,
    }
    fake_collection.docs[0].update({"status": "completed", "results": [result]})

    response = await api.get(f"/api/v1/batches/{created['batch_id']}/report")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "attachment" in response.headers["content-disposition"]
    assert "CLASSIFICAÇÃO: GOOD" in response.text

    summary = (await api.get(f"/api/v1/batches/{created['batch_id']}")).json()["summary"]
    assert summary == {"GOOD": 1}


@pytest.mark.asyncio
async def test_auth_required():
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/registrations")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_auth_with_credentials_file(tmp_path, monkeypatch):
    credentials = tmp_path / "basic_auth.txt"
    credentials.write_text("# usuarios\nadmin:admin123\n", encoding="utf-8")
    monkeypatch.setenv("BASIC_AUTH_CREDENTIALS_FILE", str(credentials))
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        ok = await client.get("/", auth=("admin", "admin123"))
        wrong = await client.get("/", auth=("admin", "errada"))
    assert ok.status_code == 200
    assert wrong.status_code == 401

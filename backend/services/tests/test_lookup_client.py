import httpx
import pytest

from backend.services.lookup_client import CPFLookupClient, UpstreamLookupError


def _client(handler):
    return CPFLookupClient(
        base_url="https://upstream.test/api",
        token="tok",
        timeout=5,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
async def test_lookup_success_sends_normalized_cpf(upstream_payload):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen.update(dict(request.url.params))
        return httpx.Response(200, json=upstream_payload)

    record = await _client(handler).lookup("111.444.777-35")
    assert seen == {"token": "tok", "modulo": "cpf", "consulta": "11144477735"}
    assert record.basic_data.name == "JOAO DA SILVA"
    assert record.economic_data.score.score_csb == "720"


@pytest.mark.asyncio
async def test_lookup_non_success_status_raises():
    client = _client(lambda request: httpx.Response(503, json={"error": "indisponível"}))
    with pytest.raises(UpstreamLookupError) as exc_info:
        await client.lookup("11144477735")
    assert exc_info.value.status_code == 503


@pytest.mark.asyncio
async def test_lookup_invalid_body_raises():
    client = _client(lambda request: httpx.Response(200, text="<html>erro</html>"))
    with pytest.raises(UpstreamLookupError):
        await client.lookup("11144477735")


@pytest.mark.asyncio
async def test_lookup_wrong_shape_raises():
    client = _client(lambda request: httpx.Response(200, json={"enderecos": "não é lista"}))
    with pytest.raises(UpstreamLookupError):
        await client.lookup("11144477735")


@pytest.mark.asyncio
async def test_lookup_accepts_null_list_entries():
    client = _client(lambda request: httpx.Response(200, json={"emails": [None], "enderecos": [None], "telefones": [None]}))
    record = await client.lookup("11144477735")
    assert record.emails == [None]
    assert record.phones == [None]


@pytest.mark.asyncio
async def test_lookup_transport_error_propagates():
    def handler(request):
        raise httpx.ConnectError("sem rede", request=request)

    with pytest.raises(httpx.HTTPError):
        await _client(handler).lookup("11144477735")

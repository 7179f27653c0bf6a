import pytest
from fastapi import HTTPException

from backend.api.services.registration_service import RegistrationService, parse_registration_income
from backend.mongo.registrations import InMemoryRegistrationRepository


@pytest.mark.parametrize(
    "value, expected",
    [("R$ 1.234,56", 1234.56), ("3000", 30.0), ("", 0.0), (None, 0.0), (2500, 2500.0), (1999.9, 1999.9)],
)
def test_parse_registration_income(value, expected):
    assert parse_registration_income(value) == pytest.approx(expected)


@pytest.mark.asyncio
async def test_register_normalizes_cpf_and_upserts():
    repository = InMemoryRegistrationRepository()
    service = RegistrationService(repository)

    first = await service.register({"cpf": "111.444.777-35", "name": " JOAO ", "income": "R$ 3.000,00"})
    assert first["cpf"] == "11144477735"
    assert first["name"] == "JOAO"
    assert first["income"] == 3000.0
    assert first["email"] == ""

    await service.register({"cpf": "11144477735", "name": "JOAO SILVA", "income": 100})
    listed = await service.list_registrations()
    assert len(listed) == 1
    assert listed[0]["name"] == "JOAO SILVA"
    assert listed[0]["income"] == 100.0


@pytest.mark.asyncio
async def test_register_rejects_invalid_cpf():
    service = RegistrationService(InMemoryRegistrationRepository())
    with pytest.raises(HTTPException) as exc_info:
        await service.register({"cpf": "111.444.777-36", "name": "JOAO"})
    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [{"name": "JOAO"}, {"cpf": "11144477735"}, {"cpf": "11144477735", "name": "  "}])
async def test_register_requires_cpf_and_name(payload):
    service = RegistrationService(InMemoryRegistrationRepository())
    with pytest.raises(HTTPException) as exc_info:
        await service.register(payload)
    assert exc_info.value.status_code == 400

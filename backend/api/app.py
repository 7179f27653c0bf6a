from typing import List, Dict, Any
from fastapi import FastAPI, status, HTTPException, Depends, Path
from fastapi.responses import PlainTextResponse
import httpx
import uvicorn

from backend.auth.basic import basic_auth
from backend.config import BATCHES_QUEUE, REDIS_URL, REGISTRATIONS_BACKEND
from backend.mongo.db import REGISTRATIONS_COLLECTION, connect_to_mongo, close_mongo_connection, get_collection
from backend.mongo.registrations import InMemoryRegistrationRepository, MongoRegistrationRepository, RegistrationRepository
from backend.api.services.batch_service import BatchService
from backend.api.services.registration_service import RegistrationService
from backend.services.lookup_client import CPFLookupClient, UpstreamLookupError
from backend.services.record_mapper import map_upstream_record
from backend.utils.cpf_utils import CPFUtils
from backend.utils.log_utils import build_logger
from backend.utils.report_utils import report_filename

logger = build_logger("api")

app = FastAPI(title="Consulta CPF API", version="1.0.0")

# Conexão MongoDB no ciclo de vida da aplicação
@app.on_event("startup")
async def on_startup() -> None:
    logger.info("Iniciando evento de startup da API")
    await connect_to_mongo()
    logger.info("Conexão com MongoDB estabelecida")


@app.on_event("shutdown")
async def on_shutdown() -> None:
    logger.info("Iniciando evento de shutdown da API")
    await close_mongo_connection()
    logger.info("Conexão com MongoDB encerrada")


######### Dependências
_memory_registrations = InMemoryRegistrationRepository()


def get_registration_repository() -> RegistrationRepository:
    """
    Repositório de cadastros conforme REGISTRATIONS_BACKEND ('mongo' ou 'memory').
    """
    if REGISTRATIONS_BACKEND == "memory":
        return _memory_registrations
    return MongoRegistrationRepository(get_collection(REGISTRATIONS_COLLECTION))


def get_registration_service(repository: RegistrationRepository = Depends(get_registration_repository)) -> RegistrationService:
    return RegistrationService(repository)


def get_batch_service(repository: RegistrationRepository = Depends(get_registration_repository)) -> BatchService:
    return BatchService(REDIS_URL, BATCHES_QUEUE, registrations=repository)


def get_lookup_client() -> CPFLookupClient:
    return CPFLookupClient()


@app.get("/")
async def root(_: str = Depends(basic_auth)) -> dict:
    """
    Endpoint de status da API (também usado pelo frontend para validar o login).
    """
    logger.info("Endpoint / chamado, status=ok")
    return {"status": "ok"}


#########
@app.get("/api/v1/cpf/{cpf}")
async def lookup_cpf(
    cpf: str,
    _: str = Depends(basic_auth),
    client: CPFLookupClient = Depends(get_lookup_client),
) -> Dict[str, Any]:
    """
    Consulta um único CPF na API externa.
    Parâmetros:
        cpf (str): CPF em qualquer formato
    Retorno:
        dict: LookupRecord classificado
    """
    cpf_norm = CPFUtils.normalize_cpf(cpf)
    if not CPFUtils.has_cpf_length(cpf_norm):
        logger.warning(f"CPF sem 11 dígitos: cpf={cpf}")
        raise HTTPException(status_code=400, detail="CPF não informado ou incompleto")
    try:
        upstream = await client.lookup(cpf_norm)
    except UpstreamLookupError as exc:
        raise HTTPException(status_code=502, detail=f"Erro ao consultar API: {exc}")
    except httpx.HTTPError as exc:
        logger.exception(f"Erro na API de consulta: cpf={cpf_norm}")
        raise HTTPException(status_code=502, detail=f"Erro ao processar consulta: {exc!r}")
    record = map_upstream_record(cpf_norm, upstream)
    logger.info(f"CPF consultado: cpf={cpf_norm}, classificacao={record.classification}")
    return record.model_dump()


#########
@app.post("/api/v1/registrations", status_code=status.HTTP_201_CREATED)
async def create_registration(
    payload: Dict[str, Any],
    _: str = Depends(basic_auth),
    service: RegistrationService = Depends(get_registration_service),
) -> Dict[str, Any]:
    """
    Cadastra um CPF; um CPF já cadastrado é substituído.
    """
    return await service.register(payload)


@app.get("/api/v1/registrations")
async def list_registrations(
    _: str = Depends(basic_auth),
    service: RegistrationService = Depends(get_registration_service),
) -> List[Dict[str, Any]]:
    return await service.list_registrations()


#########
@app.post("/api/v1/batches", status_code=status.HTTP_201_CREATED)
async def create_batch(
    payload: Dict[str, Any],
    _: str = Depends(basic_auth),
    service: BatchService = Depends(get_batch_service),
) -> Dict[str, Any]:
    """
    Cria um lote de consulta e enfileira para o worker.
    Parâmetros:
        payload (dict): {"cpfs": [...]}, {"cpfs_text": "..."} ou {"from_registrations": true}
    Retorno:
        dict: batch_id, status e total
    """
    result = await service.create_batch(payload)
    logger.info(f"Lote criado: retorno={result}")
    return result


@app.get("/api/v1/batches/{batch_id}")
async def get_batch(
    batch_id: str = Path(..., description="ID do lote"),
    _: str = Depends(basic_auth),
    service: BatchService = Depends(get_batch_service),
) -> Dict[str, Any]:
    return await service.get_batch(batch_id)


@app.post("/api/v1/batches/{batch_id}/cancel")
async def cancel_batch(
    batch_id: str = Path(..., description="ID do lote"),
    _: str = Depends(basic_auth),
    service: BatchService = Depends(get_batch_service),
) -> Dict[str, Any]:
    return await service.cancel_batch(batch_id)


@app.get("/api/v1/batches/{batch_id}/report", response_class=PlainTextResponse)
async def get_batch_report(
    batch_id: str = Path(..., description="ID do lote"),
    _: str = Depends(basic_auth),
    service: BatchService = Depends(get_batch_service),
) -> PlainTextResponse:
    """
    Relatório texto do lote, pronto para download.
    """
    content = await service.build_batch_report(batch_id)
    headers = {"Content-Disposition": f'attachment; filename="{report_filename()}"'}
    return PlainTextResponse(content, headers=headers)


######### ------------------------------ #########

if __name__ == "__main__":
    logger.info("Starting Uvicorn server on 0.0.0.0:3000")
    uvicorn.run(app, host="0.0.0.0", port=3000)

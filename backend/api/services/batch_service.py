"""
Serviço de lotes: cria o job de consulta no MongoDB, enfileira no Redis e
expõe status, cancelamento e relatório.
"""
import json
from collections import Counter
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import redis.asyncio as redis
from bson import ObjectId
from fastapi import HTTPException

from backend.models.cpf_records import LookupRecord
from backend.mongo.db import BATCHES_COLLECTION, get_collection
from backend.mongo.registrations import RegistrationRepository
from backend.utils.cpf_utils import CPFUtils
from backend.utils.log_utils import build_logger
from backend.utils.report_utils import build_report
from backend.worker.batch_lookup import prepare_identifiers

ACTIVE_STATUSES = ("queued", "processing")


def bson_to_json(val):
    if isinstance(val, dict):
        return {k: bson_to_json(v) for k, v in val.items()}
    elif isinstance(val, list):
        return [bson_to_json(v) for v in val]
    elif isinstance(val, ObjectId):
        return str(val)
    elif isinstance(val, datetime):
        return val.isoformat()
    else:
        return val


class BatchService:
    def __init__(
        self,
        redis_url: str,
        queue_key: str,
        registrations: Optional[RegistrationRepository] = None,
        collection=None,
        redis_factory: Callable[[str], Any] = redis.from_url,
        logger=None,
    ):
        """
        Inicializa o serviço de lotes.
        Parâmetros:
            redis_url (str): URL do Redis
            queue_key (str): nome da fila de lotes
            registrations (RegistrationRepository, opcional): origem dos CPFs cadastrados
            collection (opcional): coleção de lotes; padrão é a coleção 'batches' do MongoDB
            redis_factory (callable): cria o cliente Redis a partir da URL
            logger (logging.Logger, opcional): logger para logs
        """
        self.redis_url = redis_url
        self.queue_key = queue_key
        self.registrations = registrations
        self._collection = collection
        self.redis_factory = redis_factory
        self.logger = logger or build_logger("batch_service")

    @property
    def collection(self):
        if self._collection is None:
            return get_collection(BATCHES_COLLECTION)
        return self._collection

    async def _resolve_cpfs(self, payload: Dict[str, Any]) -> List[str]:
        if payload.get("from_registrations"):
            if self.registrations is None:
                raise HTTPException(status_code=400, detail="Cadastros indisponíveis")
            entries = await self.registrations.get_all()
            return prepare_identifiers(e.cpf for e in entries)
        if payload.get("cpfs_text") is not None:
            return CPFUtils.parse_cpf_list(str(payload["cpfs_text"]))
        cpfs = payload.get("cpfs")
        if not isinstance(cpfs, list):
            raise HTTPException(status_code=400, detail="Informe cpfs (lista), cpfs_text ou from_registrations")
        return prepare_identifiers(str(c) for c in cpfs)

    async def _find(self, batch_id: str) -> Dict[str, Any]:
        if not ObjectId.is_valid(batch_id):
            self.logger.warning(f"batch_id inválido: {batch_id}")
            raise HTTPException(status_code=400, detail="batch_id inválido")
        doc = await self.collection.find_one({"_id": ObjectId(batch_id)})
        if not doc:
            self.logger.warning(f"Lote não encontrado: batch_id={batch_id}")
            raise HTTPException(status_code=404, detail="Lote não encontrado")
        return doc

    async def create_batch(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Cria um lote de consulta e enfileira no Redis.
        Parâmetros:
            payload (dict): {"cpfs": [...]} | {"cpfs_text": "..."} | {"from_registrations": true}
        Retorno:
            dict: batch_id, status e total de CPFs aceitos
        """
        self.logger.info(f"Recebendo payload de lote: {payload}")
        cpfs = await self._resolve_cpfs(payload)
        if not cpfs:
            self.logger.warning("Lote sem CPFs com 11 dígitos")
            raise HTTPException(status_code=400, detail="Insira pelo menos um CPF válido")

        coll = self.collection
        now = datetime.utcnow()
        doc = {
            "cpfs": cpfs,
            "status": "queued",
            "progress": {"current": 0, "total": len(cpfs)},
            "results": [],
            "cancel_requested": False,
            "created_at": now,
            "updated_at": now,
        }
        res = await coll.insert_one(doc)
        batch_id = str(res.inserted_id)
        self.logger.info(f"Lote criado: batch_id={batch_id}, total={len(cpfs)}")

        try:
            r = self.redis_factory(self.redis_url)
            msg = {"batch_id": batch_id, "created_at": now.isoformat()}
            try:
                await r.rpush(self.queue_key, json.dumps(msg))
            finally:
                await r.aclose()
            self.logger.info(f"Lote enfileirado no Redis: msg={msg}")
        except Exception:
            self.logger.exception(f"Erro ao enfileirar lote: batch_id={batch_id}")
            await coll.update_one(
                {"_id": ObjectId(batch_id)},
                {"$set": {"status": "failed", "updated_at": datetime.utcnow(), "reason": "enqueue_error"}},
            )
            raise HTTPException(status_code=500, detail="Erro ao enfileirar o lote")

        return {"batch_id": batch_id, "status": "queued", "total": len(cpfs)}

    async def get_batch(self, batch_id: str) -> Dict[str, Any]:
        doc = await self._find(batch_id)
        result = bson_to_json(doc)
        result["batch_id"] = str(result.pop("_id"))
        result["summary"] = dict(Counter(r.get("classification") for r in result.get("results", [])))
        return result

    async def cancel_batch(self, batch_id: str) -> Dict[str, Any]:
        """Marca o lote para cancelamento; o worker interrompe antes do próximo CPF."""
        doc = await self._find(batch_id)
        if doc.get("status") not in ACTIVE_STATUSES:
            self.logger.warning(f"Cancelamento de lote já finalizado: batch_id={batch_id}, status={doc.get('status')}")
            raise HTTPException(status_code=409, detail="Lote já finalizado")
        await self.collection.update_one(
            {"_id": doc["_id"]},
            {"$set": {"cancel_requested": True, "updated_at": datetime.utcnow()}},
        )
        self.logger.info(f"Cancelamento solicitado: batch_id={batch_id}")
        return {"batch_id": batch_id, "cancel_requested": True}

    async def build_batch_report(self, batch_id: str) -> str:
        doc = await self._find(batch_id)
        records = [LookupRecord(**r) for r in doc.get("results", [])]
        return build_report(records)

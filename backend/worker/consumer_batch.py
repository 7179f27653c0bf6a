import asyncio
import json
import time
from datetime import datetime

from bson import ObjectId
import redis.asyncio as redis
from backend.config import BATCHES_DLQ, BATCHES_QUEUE, BATCH_DELAY_SECONDS, REDIS_URL
from backend.mongo.db import BATCHES_COLLECTION, connect_to_mongo, close_mongo_connection, get_collection
from backend.services.lookup_client import CPFLookupClient
from backend.utils.log_utils import build_logger
from backend.worker.batch_lookup import BatchLookupWorkflow, prepare_identifiers

LOG = build_logger("consumer_batch")



# ------------------- Classe principal do worker -------------------
class BatchJobProcessor:
    def __init__(self, workflow, queue_key, dlq_key, logger, collection=None):
        """
        Inicializa o processador de lotes.
        Parâmetros:
            workflow (BatchLookupWorkflow): fluxo de consulta sequencial
            queue_key (str): Nome da fila principal
            dlq_key (str): Nome da fila de dead-letter
            logger (logging.Logger): Logger para logs
            collection (opcional): coleção de lotes; padrão é a coleção 'batches'
        """
        self.logger = logger
        self.logger.debug(f"Inicializando BatchJobProcessor: queue_key={queue_key}, dlq_key={dlq_key}")
        self.workflow = workflow
        self.queue_key = queue_key
        self.dlq_key = dlq_key
        self._collection = collection

    @property
    def collection(self):
        if self._collection is None:
            return get_collection(BATCHES_COLLECTION)
        return self._collection


    async def _update_batch(self, batch_id, fields):
        self.logger.debug(f"Atualizando lote: batch_id={batch_id}, campos={list(fields)}")
        update = dict(fields, updated_at=datetime.utcnow())
        await self.collection.update_one({"_id": ObjectId(batch_id)}, {"$set": update})


    def _progress_observer(self, batch_id, cancel_event):
        """
        Cria o observador de progresso do lote.
        Grava (atual, total) no MongoDB e converte o pedido de cancelamento em cancel_event.
        """
        async def on_progress(current, total):
            await self._update_batch(batch_id, {"progress": {"current": current, "total": total}})
            doc = await self.collection.find_one({"_id": ObjectId(batch_id)})
            if doc and doc.get("cancel_requested"):
                self.logger.info(f"Cancelamento detectado: batch_id={batch_id}, atual={current}")
                cancel_event.set()
        return on_progress


    async def _handle_processing_error(self, batch_id, r, msg, exc):
        """
        Lida com erro de processamento, marca o lote como failed e envia para DLQ.
        """
        self.logger.exception(f"Erro ao processar mensagem: {exc}")
        try:
            if batch_id:
                await self._update_batch(batch_id, {"status": "failed", "reason": "processing_error"})
        except Exception as e:
            self.logger.exception(f"Erro ao marcar lote como failed: {e}")
        try:
            await r.rpush(self.dlq_key, msg)
        except Exception as e:
            self.logger.exception(f"Erro ao empurrar para DLQ: {e}")


    async def process_message(self, msg: str, r: redis.Redis) -> None:
        """
        Processa uma mensagem de lote da fila.
        Parâmetros:
            msg (str): Mensagem JSON com batch_id
            r: Instância Redis
        Retorno: None
        """
        self.logger.info(f"Recebendo mensagem da fila: {msg}")
        start = time.monotonic()
        batch_id = None
        try:
            data = json.loads(msg)
            batch_id = data.get("batch_id")
            if not batch_id or not ObjectId.is_valid(batch_id):
                self.logger.warning(f"Mensagem sem batch_id válido: {data}")
                return

            batch = await self.collection.find_one({"_id": ObjectId(batch_id)})
            if not batch:
                self.logger.warning(f"Lote não encontrado: {batch_id}")
                return

            # Idempotência: só processa lotes ainda na fila
            status = batch.get("status")
            if status not in ("queued", None):
                self.logger.info(f"Lote {batch_id} já processado (status={status}), pulando")
                return
            if batch.get("cancel_requested"):
                await self._update_batch(batch_id, {"status": "cancelled"})
                self.logger.info(f"Lote {batch_id} cancelado antes do início")
                return

            await self._update_batch(batch_id, {"status": "processing"})

            cpfs = prepare_identifiers(batch.get("cpfs", []))
            cancel_event = asyncio.Event()
            records = await self.workflow.run(
                cpfs,
                on_progress=self._progress_observer(batch_id, cancel_event),
                cancel_event=cancel_event,
            )
            # Cancelamento visto no último item não deixa CPF sem resultado
            final_status = "cancelled" if len(records) < len(cpfs) else "completed"
            await self._update_batch(
                batch_id,
                {
                    "status": final_status,
                    "results": [rec.model_dump() for rec in records],
                    "processed_at": datetime.utcnow(),
                },
            )
            self.logger.info(f"Lote {batch_id} finalizado: status={final_status}, resultados={len(records)}")

        except Exception as exc:
            await self._handle_processing_error(batch_id, r, msg, exc)
        finally:
            self.logger.debug(f"Mensagem processada em {time.monotonic() - start:.2f}s: batch_id={batch_id}")



####################
####################
async def main() -> None:
    """
    Loop principal do worker. Conecta aos serviços, consome a fila e processa lotes.
    """

    LOG.info("Conectando ao MongoDB e Redis...")
    await connect_to_mongo()
    r = redis.from_url(REDIS_URL)
    lookup_client = CPFLookupClient()
    workflow = BatchLookupWorkflow(lookup_client.lookup, delay=BATCH_DELAY_SECONDS)
    processor = BatchJobProcessor(workflow, BATCHES_QUEUE, BATCHES_DLQ, LOG)
    try:
        while True:
            try:
                item = await r.blpop(BATCHES_QUEUE, timeout=5)
                if not item:
                    await asyncio.sleep(0.5)
                    continue
                # item is a tuple (key, value)
                _, value = item
                if isinstance(value, bytes):
                    value = value.decode()
                LOG.debug(f"Mensagem recebida da fila: {value}")
                await processor.process_message(value, r)
            except asyncio.CancelledError:
                raise
            except Exception:
                LOG.exception("Erro no loop do consumer")
                await asyncio.sleep(1)
    finally:
        await r.aclose()
        await close_mongo_connection()



####################-----------------------------####################

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        LOG.info("Worker finalizado pelo usuário")

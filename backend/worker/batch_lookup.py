"""
Consulta sequencial de um lote de CPFs com classificação por renda.

Uma consulta por vez, com pausa fixa entre itens para respeitar o limite de
taxa da API externa. Falhas viram registros ERROR e não interrompem o lote.
"""
import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Iterable, List, Optional

from backend.config import BATCH_DELAY_SECONDS, LOOKUP_TIMEOUT_SECONDS
from backend.models.cpf_records import LookupRecord, UpstreamRecord
from backend.services.lookup_client import UpstreamLookupError
from backend.services.record_mapper import error_record, map_upstream_record
from backend.utils.cpf_utils import CPFUtils
from backend.utils.log_utils import build_logger

LookupFn = Callable[[str], Awaitable[UpstreamRecord]]
ProgressFn = Callable[[int, int], Optional[Awaitable[None]]]

QUERY_ERROR_NAME = "Erro na consulta"
REQUEST_ERROR_NAME = "Erro na requisição"


def prepare_identifiers(raw_identifiers: Iterable[str]) -> List[str]:
    """Normaliza e descarta itens sem 11 dígitos (só tamanho, sem dígitos verificadores)."""
    cpfs = [CPFUtils.normalize_cpf(raw) for raw in raw_identifiers]
    return [c for c in cpfs if CPFUtils.has_cpf_length(c)]


class BatchLookupWorkflow:
    def __init__(
        self,
        lookup: LookupFn,
        delay: float = BATCH_DELAY_SECONDS,
        timeout: Optional[float] = LOOKUP_TIMEOUT_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Inicializa o fluxo de consulta em lote.
        Parâmetros:
            lookup (callable): função assíncrona cpf -> UpstreamRecord
            delay (float): pausa entre itens, em segundos
            timeout (float, opcional): limite por consulta; None desativa
            sleep (callable): função de espera (injetável em testes)
            logger (logging.Logger, opcional): logger para logs
        """
        self.lookup = lookup
        self.delay = delay
        self.timeout = timeout
        self.sleep = sleep
        self.logger = logger or build_logger("batch_lookup")

    async def _lookup_one(self, cpf: str) -> LookupRecord:
        try:
            if self.timeout is None:
                upstream = await self.lookup(cpf)
            else:
                upstream = await asyncio.wait_for(self.lookup(cpf), timeout=self.timeout)
        except UpstreamLookupError as exc:
            self.logger.warning(f"Consulta falhou na API externa: cpf={cpf}, status={exc.status_code}, erro={exc}")
            return error_record(cpf, QUERY_ERROR_NAME, str(exc))
        except asyncio.TimeoutError:
            self.logger.warning(f"Timeout na consulta: cpf={cpf}, timeout={self.timeout}s")
            return error_record(cpf, REQUEST_ERROR_NAME, f"timeout após {self.timeout}s")
        except Exception as exc:
            self.logger.exception(f"Erro na requisição: cpf={cpf}")
            return error_record(cpf, REQUEST_ERROR_NAME, repr(exc))
        record = map_upstream_record(cpf, upstream)
        self.logger.info(f"CPF consultado: cpf={cpf}, classificacao={record.classification}")
        return record

    async def _notify_progress(self, on_progress: ProgressFn, current: int, total: int) -> None:
        # Falha do observador não interrompe o lote
        try:
            maybe_awaitable = on_progress(current, total)
            if inspect.isawaitable(maybe_awaitable):
                await maybe_awaitable
        except Exception:
            self.logger.exception(f"Erro no observador de progresso: atual={current}, total={total}")

    async def run(
        self,
        raw_identifiers: Iterable[str],
        on_progress: Optional[ProgressFn] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[LookupRecord]:
        """
        Executa o lote na ordem de entrada.
        Parâmetros:
            raw_identifiers: CPFs em qualquer formato
            on_progress (callable, opcional): chamado com (atual, total) antes de cada consulta;
                se retornar awaitable, ele é aguardado
            cancel_event (asyncio.Event, opcional): verificado antes de cada item
        Retorno:
            List[LookupRecord]: um registro por CPF com 11 dígitos, na ordem de entrada
                (parcial se o lote for cancelado)
        """
        cpfs = prepare_identifiers(raw_identifiers)
        total = len(cpfs)
        results: List[LookupRecord] = []
        self.logger.info(f"Iniciando lote: total={total}")

        for index, cpf in enumerate(cpfs):
            if index > 0:
                await self.sleep(self.delay)
            if cancel_event is not None and cancel_event.is_set():
                self.logger.warning(f"Lote cancelado: processados={len(results)}, total={total}")
                break
            if on_progress is not None:
                await self._notify_progress(on_progress, index + 1, total)
            results.append(await self._lookup_one(cpf))

        self.logger.info(f"Lote finalizado: processados={len(results)}, total={total}")
        return results

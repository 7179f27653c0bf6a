"""
Cliente assíncrono (httpx) da API externa de consulta de CPF.
"""
import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from backend.config import LOOKUP_API_TOKEN, LOOKUP_API_URL, LOOKUP_TIMEOUT_SECONDS
from backend.models.cpf_records import UpstreamRecord
from backend.utils.cpf_utils import CPFUtils
from backend.utils.log_utils import build_logger


class UpstreamLookupError(Exception):
    """A API externa respondeu com erro ou com conteúdo inválido."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CPFLookupClient:
    def __init__(
        self,
        base_url: str = LOOKUP_API_URL,
        token: str = LOOKUP_API_TOKEN,
        timeout: float = LOOKUP_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Inicializa o cliente da API de consulta.
        Parâmetros:
            base_url (str): URL da API externa
            token (str): token de acesso
            timeout (float): timeout por requisição, em segundos
            client (httpx.AsyncClient, opcional): cliente compartilhado (um novo é criado por consulta se ausente)
            logger (logging.Logger, opcional): logger para logs
        """
        self.base_url = base_url
        self.token = token
        self.timeout = timeout
        self._client = client
        self.logger = logger or build_logger("lookup_client")

    async def _get(self, params: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(self.base_url, params=params, timeout=self.timeout)
        async with httpx.AsyncClient() as client:
            return await client.get(self.base_url, params=params, timeout=self.timeout)

    async def lookup(self, cpf: str) -> UpstreamRecord:
        """
        Consulta um CPF na API externa.
        Parâmetros:
            cpf (str): CPF em qualquer formato
        Retorno:
            UpstreamRecord: resposta da API
        Exceções:
            UpstreamLookupError: status não 2xx ou corpo inválido
            httpx.HTTPError: falha de rede ou timeout
        """
        cpf_norm = CPFUtils.normalize_cpf(cpf)
        params = {"token": self.token, "modulo": "cpf", "consulta": cpf_norm}
        self.logger.debug(f"Consultando API externa: cpf={cpf_norm}")
        resp = await self._get(params)
        if resp.is_error:
            self.logger.warning(f"API externa retornou erro: cpf={cpf_norm}, status={resp.status_code}")
            raise UpstreamLookupError("Erro ao consultar API", status_code=resp.status_code)
        try:
            record = UpstreamRecord.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            self.logger.warning(f"Resposta inválida da API externa: cpf={cpf_norm}, erro={exc}")
            raise UpstreamLookupError("Resposta inválida da API", status_code=resp.status_code) from exc
        self.logger.info(f"Consulta concluída na API externa: cpf={cpf_norm}, status={resp.status_code}")
        return record

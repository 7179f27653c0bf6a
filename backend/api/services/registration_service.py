"""
Serviço de cadastro: valida o payload, normaliza o CPF e grava no repositório.
"""
import re
from typing import Any, Dict, List, Optional

from fastapi import HTTPException

from backend.models.cpf_records import RegisteredEntry
from backend.mongo.registrations import RegistrationRepository
from backend.utils.cpf_utils import CPFUtils
from backend.utils.log_utils import build_logger

TEXT_FIELDS = ("name", "mother_name", "birth_date", "address", "email", "phone")


def parse_registration_income(value: Any) -> float:
    """
    Converte a renda do formulário em número.
    Números passam direto; texto em reais ('R$ 1.234,56') vira dígitos / 100.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)
    digits = re.sub(r"[^0-9]", "", str(value))
    return int(digits) / 100 if digits else 0.0


class RegistrationService:
    def __init__(self, repository: RegistrationRepository, logger=None):
        self.repository = repository
        self.logger = logger or build_logger("registration_service")

    async def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Cadastra (ou atualiza) um CPF.
        Parâmetros:
            payload (dict): dados do cadastro
        Retorno:
            dict: cadastro gravado
        """
        cpf = payload.get("cpf")
        name = payload.get("name")
        if not cpf or not isinstance(name, str) or not name.strip():
            self.logger.warning(f"Payload de cadastro incompleto: {payload}")
            raise HTTPException(status_code=400, detail="Campos obrigatórios: cpf, name")

        cpf_norm = CPFUtils.normalize_cpf(cpf)
        if not CPFUtils.is_valid_cpf(cpf_norm):
            self.logger.warning(f"CPF inválido no cadastro: cpf={cpf}")
            raise HTTPException(status_code=422, detail="CPF inválido")

        fields: Dict[str, Optional[str]] = {f: payload.get(f) for f in TEXT_FIELDS}
        entry = RegisteredEntry(
            cpf=cpf_norm,
            income=parse_registration_income(payload.get("income")),
            **{k: str(v).strip() if v is not None else "" for k, v in fields.items()},
        )
        await self.repository.save(entry)
        self.logger.info(f"Cadastro gravado: cpf={cpf_norm}")
        return entry.model_dump()

    async def list_registrations(self) -> List[Dict[str, Any]]:
        entries = await self.repository.get_all()
        self.logger.info(f"Listando cadastros: total={len(entries)}")
        return [e.model_dump() for e in entries]

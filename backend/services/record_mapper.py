"""
Conversão da resposta da API externa em LookupRecord e classificação por renda.
Funções puras: sem I/O, sem logging.
"""
import re
from typing import List, Optional

from backend.models.cpf_records import (
    CLASSIFICATION_BAD,
    CLASSIFICATION_ERROR,
    CLASSIFICATION_GOOD,
    ERROR_PLACEHOLDER,
    UNAVAILABLE,
    LookupRecord,
    UpstreamAddress,
    UpstreamRecord,
)

GOOD_INCOME_THRESHOLD = 3000.0

# Prefixo numérico aceito, como um parseFloat: "3000.00abc" -> 3000.0
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_income(income) -> float:
    """
    Converte a renda declarada em número.
    A primeira vírgula vira ponto decimal; texto não numérico vale 0.
    Exemplos: '3000,00' -> 3000.0, 'R$ 10' -> 0.0, None -> 0.0
    """
    if income is None:
        return 0.0
    match = _FLOAT_PREFIX.match(str(income).replace(",", ".", 1))
    if not match:
        return 0.0
    return float(match.group(1))


def classify_income(income) -> str:
    return CLASSIFICATION_GOOD if parse_income(income) >= GOOD_INCOME_THRESHOLD else CLASSIFICATION_BAD


def format_address(address: UpstreamAddress) -> str:
    """
    Monta o endereço em uma linha:
    '{tipo} {logradouro}, {numero} {- complemento} - {bairro}, {cidade} - {uf} CEP: {cep}'
    """
    complement = f"- {address.complement}" if address.complement else ""
    line = (
        f"{address.street_type or ''} {address.street or ''}, {address.number or ''} {complement}"
        f" - {address.neighborhood or ''}, {address.city or ''} - {address.state or ''} CEP: {address.postal_code or ''}"
    )
    return line.strip()


def _or_unavailable(value: Optional[str]) -> str:
    return value if value else UNAVAILABLE


def _non_empty_or_unavailable(values: List[str]) -> List[str]:
    return values if values else [UNAVAILABLE]


def map_upstream_record(cpf: str, upstream: UpstreamRecord) -> LookupRecord:
    """
    Converte a resposta da API externa em LookupRecord já classificado.
    Campos ausentes recebem o marcador 'Não disponível' (renda ausente vira '0').
    Parâmetros:
        cpf (str): CPF normalizado consultado
        upstream (UpstreamRecord): resposta da API externa
    Retorno:
        LookupRecord: registro com classificação GOOD ou BAD
    """
    basic = upstream.basic_data
    economic = upstream.economic_data

    addresses = [format_address(a) for a in (upstream.addresses or []) if a is not None and a.street]
    phones = [p.number for p in (upstream.phones or []) if p is not None and p.number]
    first_email = upstream.emails[0] if upstream.emails else None

    income = (economic.income if economic else None) or "0"
    score = economic.score.score_csb if economic and economic.score else None

    return LookupRecord(
        cpf=cpf,
        name=_or_unavailable(basic.name if basic else None),
        mother_name=_or_unavailable(basic.mother_name if basic else None),
        birth_date=_or_unavailable(basic.birth_date if basic else None),
        addresses=_non_empty_or_unavailable(addresses),
        email=_or_unavailable(first_email.email if first_email else None),
        phones=_non_empty_or_unavailable(phones),
        income=income,
        score=_or_unavailable(score),
        classification=classify_income(income),
    )


def error_record(cpf: str, name: str, reason: str) -> LookupRecord:
    """Registro de falha: todos os campos com '-' e classificação ERROR."""
    return LookupRecord(
        cpf=cpf,
        name=name,
        mother_name=ERROR_PLACEHOLDER,
        birth_date=ERROR_PLACEHOLDER,
        addresses=[ERROR_PLACEHOLDER],
        email=ERROR_PLACEHOLDER,
        phones=[ERROR_PLACEHOLDER],
        income=ERROR_PLACEHOLDER,
        score=ERROR_PLACEHOLDER,
        classification=CLASSIFICATION_ERROR,
        error=reason,
    )

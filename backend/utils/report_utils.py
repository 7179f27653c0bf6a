"""
Relatório texto dos resultados de consulta (download .txt e cópia).
"""
import time
from typing import Iterable, Optional

from backend.models.cpf_records import LookupRecord

DOUBLE_RULE = "═" * 55
SINGLE_RULE = "─" * 55
REPORT_TITLE = "          RELATÓRIO DE CONSULTA DE CPF"


def _record_lines(index: int, record: LookupRecord, with_rules: bool) -> list:
    lines = [f"{index} CPF"]
    if with_rules:
        lines.append(SINGLE_RULE)
    lines += [
        f"CPF: {record.cpf}",
        f"NOME: {record.name}",
        f"MÃE: {record.mother_name}",
        f"DATA NASCIMENTO: {record.birth_date}",
        "ENDEREÇO(S):",
        *[f"  {a}" for a in record.addresses],
        f"EMAIL: {record.email}",
        "TELEFONE(S):",
        *[f"  {p}" for p in record.phones],
        f"RENDA: R$ {record.income}",
        f"SCORE: {record.score}",
        f"CLASSIFICAÇÃO: {record.classification}",
    ]
    if with_rules:
        lines.append(SINGLE_RULE)
    return lines


def build_report(records: Iterable[LookupRecord], header: bool = True) -> str:
    """
    Gera o relatório dos resultados, numerados a partir de 1.
    Parâmetros:
        records: resultados do lote
        header (bool): True para o relatório completo (título e separadores),
            False para a versão compacta usada na cópia
    Retorno:
        str: texto do relatório
    """
    content = ""
    if header:
        content += f"{DOUBLE_RULE}\n{REPORT_TITLE}\n{DOUBLE_RULE}\n\n"
    for index, record in enumerate(records, start=1):
        content += "\n".join(_record_lines(index, record, with_rules=header)) + "\n\n"
    return content


def report_filename(timestamp_ms: Optional[int] = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"consulta-cpf-{timestamp_ms}.txt"

from backend.models.cpf_records import LookupRecord
from backend.services.record_mapper import error_record
from backend.utils.report_utils import DOUBLE_RULE, SINGLE_RULE, build_report, report_filename


def _records():
    ok = LookupRecord(
        cpf="11144477735",
        name="JOAO",
        mother_name="MARIA",
        birth_date="01/02/1980",
        addresses=["RUA A, 1  - CENTRO, X - SP CEP: 1", "RUA B, 2  - CENTRO, Y - RJ CEP: 2"],
        email="joao@exemplo.com",
        phones=["11999990000"],
        income="3500,50",
        score="720",
        classification="GOOD",
    )
    return [ok, error_record("52998224725", "Erro na consulta", "status 500")]


def test_full_report_layout():
    report = build_report(_records())
    lines = report.splitlines()
    assert lines[0] == DOUBLE_RULE
    assert "RELATÓRIO DE CONSULTA DE CPF" in lines[1]
    assert lines[4] == "1 CPF"
    assert lines[5] == SINGLE_RULE
    assert "ENDEREÇO(S):\n  RUA A, 1  - CENTRO, X - SP CEP: 1\n  RUA B" in report
    assert "RENDA: R$ 3500,50" in report
    assert "2 CPF" in report
    assert "CLASSIFICAÇÃO: ERROR" in report


def test_compact_report_has_no_rules():
    report = build_report(_records(), header=False)
    assert report.startswith("1 CPF\nCPF: 11144477735\n")
    assert DOUBLE_RULE not in report
    assert SINGLE_RULE not in report
    assert report.endswith("CLASSIFICAÇÃO: ERROR\n\n")


def test_empty_report_and_filename():
    assert build_report([], header=False) == ""
    assert report_filename(1700000000000) == "consulta-cpf-1700000000000.txt"

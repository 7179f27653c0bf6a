"""
Modelos de dados da consulta de CPF.

- UpstreamRecord: resposta bruta da API externa (todos os campos opcionais).
- LookupRecord: resultado normalizado de uma consulta, com classificação.
- RegisteredEntry: cadastro local de um CPF.
"""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

UNAVAILABLE = "Não disponível"
ERROR_PLACEHOLDER = "-"

CLASSIFICATION_GOOD = "GOOD"
CLASSIFICATION_BAD = "BAD"
CLASSIFICATION_ERROR = "ERROR"


class _UpstreamModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, coerce_numbers_to_str=True)


class UpstreamBasicData(_UpstreamModel):
    name: Optional[str] = Field(None, alias="nome")
    mother_name: Optional[str] = Field(None, alias="nomeMae")
    birth_date: Optional[str] = Field(None, alias="dataNascimento")


class UpstreamAddress(_UpstreamModel):
    street_type: Optional[str] = Field(None, alias="tipoLogradouro")
    street: Optional[str] = Field(None, alias="logradouro")
    number: Optional[str] = Field(None, alias="logradouroNumero")
    complement: Optional[str] = Field(None, alias="complemento")
    neighborhood: Optional[str] = Field(None, alias="bairro")
    city: Optional[str] = Field(None, alias="cidade")
    state: Optional[str] = Field(None, alias="uf")
    postal_code: Optional[str] = Field(None, alias="cep")


class UpstreamEmail(_UpstreamModel):
    email: Optional[str] = None


class UpstreamPhone(_UpstreamModel):
    number: Optional[str] = Field(None, alias="telefone")


class UpstreamScore(_UpstreamModel):
    score_csb: Optional[str] = Field(None, alias="scoreCSB")


class UpstreamEconomicData(_UpstreamModel):
    income: Optional[str] = Field(None, alias="renda")
    score: Optional[UpstreamScore] = None


class UpstreamRecord(_UpstreamModel):
    basic_data: Optional[UpstreamBasicData] = Field(None, alias="DadosBasicos")
    addresses: Optional[List[Optional[UpstreamAddress]]] = Field(None, alias="enderecos")
    emails: Optional[List[Optional[UpstreamEmail]]] = None
    phones: Optional[List[Optional[UpstreamPhone]]] = Field(None, alias="telefones")
    economic_data: Optional[UpstreamEconomicData] = Field(None, alias="DadosEconomicos")


class LookupRecord(BaseModel):
    cpf: str
    name: str = UNAVAILABLE
    mother_name: str = UNAVAILABLE
    birth_date: str = UNAVAILABLE
    addresses: List[str] = Field(default_factory=lambda: [UNAVAILABLE])
    email: str = UNAVAILABLE
    phones: List[str] = Field(default_factory=lambda: [UNAVAILABLE])
    income: str = "0"
    score: str = UNAVAILABLE
    classification: str = CLASSIFICATION_BAD
    error: Optional[str] = None


class RegisteredEntry(BaseModel):
    cpf: str
    name: str
    mother_name: str = ""
    birth_date: str = ""
    address: str = ""
    email: str = ""
    phone: str = ""
    income: float = 0.0

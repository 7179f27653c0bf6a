import copy

import pytest
from bson import ObjectId


class _InsertResult:
    def __init__(self, inserted_id):
        self.inserted_id = inserted_id


class _Cursor:
    def __init__(self, docs):
        self._docs = docs

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key), reverse=direction < 0)
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    """Coleção em memória com o subconjunto da API motor usado pelo projeto (filtros por igualdade)."""

    def __init__(self):
        self.docs = []

    def _match(self, doc, flt):
        return all(doc.get(k) == v for k, v in flt.items())

    async def insert_one(self, doc):
        doc = copy.deepcopy(doc)
        doc.setdefault("_id", ObjectId())
        self.docs.append(doc)
        return _InsertResult(doc["_id"])

    async def find_one(self, flt):
        for doc in self.docs:
            if self._match(doc, flt):
                return copy.deepcopy(doc)
        return None

    async def update_one(self, flt, update):
        for doc in self.docs:
            if self._match(doc, flt):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return

    async def replace_one(self, flt, replacement, upsert=False):
        for i, doc in enumerate(self.docs):
            if self._match(doc, flt):
                new_doc = copy.deepcopy(replacement)
                new_doc["_id"] = doc["_id"]
                self.docs[i] = new_doc
                return
        if upsert:
            await self.insert_one(replacement)

    def find(self, flt=None):
        return _Cursor([copy.deepcopy(d) for d in self.docs if self._match(d, flt or {})])


class FakeRedis:
    def __init__(self, fail=False):
        self.lists = {}
        self.fail = fail
        self.closed = False

    async def rpush(self, key, value):
        if self.fail:
            raise ConnectionError("redis indisponível")
        self.lists.setdefault(key, []).append(value)

    async def aclose(self):
        self.closed = True


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def upstream_payload():
    return {
        "DadosBasicos": {"nome": "JOAO DA SILVA", "nomeMae": "MARIA DA SILVA", "dataNascimento": "01/02/1980"},
        "enderecos": [
            {
                "tipoLogradouro": "RUA",
                "logradouro": "DAS FLORES",
                "logradouroNumero": "10",
                "complemento": "APTO 2",
                "bairro": "CENTRO",
                "cidade": "SAO PAULO",
                "uf": "SP",
                "cep": "01000000",
            },
            {"tipoLogradouro": "AV", "logradouro": "", "cidade": "CAMPINAS"},
        ],
        "emails": [{"email": "joao@exemplo.com"}, {"email": "outro@exemplo.com"}],
        "telefones": [{"telefone": "11999990000"}, {"telefone": ""}],
        "DadosEconomicos": {"renda": "3500,50", "score": {"scoreCSB": "720"}},
        "campoDesconhecido": True,
    }


@pytest.fixture
def failing_redis():
    return FakeRedis(fail=True)

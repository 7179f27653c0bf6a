"""
Repositórios de cadastros de CPF.
Contrato comum: get_all() lista os cadastros na ordem de inclusão e
save(entry) faz upsert pelo CPF (substitui no lugar, nunca duplica).
"""
from abc import ABC, abstractmethod
from typing import Dict, List

from backend.models.cpf_records import RegisteredEntry


class RegistrationRepository(ABC):
	@abstractmethod
	async def get_all(self) -> List[RegisteredEntry]:
		raise NotImplementedError

	@abstractmethod
	async def save(self, entry: RegisteredEntry) -> None:
		raise NotImplementedError


class MongoRegistrationRepository(RegistrationRepository):
	def __init__(self, collection):
		"""
		Parâmetros:
			collection: coleção motor de cadastros (índice único em 'cpf')
		"""
		self.collection = collection

	async def get_all(self) -> List[RegisteredEntry]:
		items: List[RegisteredEntry] = []
		# replace_one preserva o _id, então a ordem por _id é a ordem do primeiro cadastro
		async for doc in self.collection.find().sort("_id", 1):
			doc.pop("_id", None)
			items.append(RegisteredEntry(**doc))
		return items

	async def save(self, entry: RegisteredEntry) -> None:
		await self.collection.replace_one({"cpf": entry.cpf}, entry.model_dump(), upsert=True)


class InMemoryRegistrationRepository(RegistrationRepository):
	def __init__(self):
		self._entries: Dict[str, RegisteredEntry] = {}

	async def get_all(self) -> List[RegisteredEntry]:
		return list(self._entries.values())

	async def save(self, entry: RegisteredEntry) -> None:
		# dict mantém a posição da chave existente ao reatribuir
		self._entries[entry.cpf] = entry.model_copy()

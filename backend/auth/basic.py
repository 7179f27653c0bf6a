from typing import Dict
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
import os
import secrets

from backend.config import BASIC_AUTH_CREDENTIALS_FILE

security = HTTPBasic()
_users: Dict[str, str] = {}
_users_source: str = ""


def load_users(file_path: str) -> Dict[str, str]:
	"""
	Lê o arquivo de credenciais no formato 'usuario:senha' (uma por linha).
	Linhas vazias, comentários (#) e linhas sem ':' são ignorados.
	Arquivo inexistente resulta em nenhum usuário.
	"""
	global _users, _users_source
	if file_path == _users_source and _users:
		return _users
	users: Dict[str, str] = {}
	try:
		with open(file_path, "r", encoding="utf-8") as f:
			for raw in f:
				line = raw.strip()
				if not line or line.startswith("#") or ":" not in line:
					continue
				username, password = line.split(":", 1)
				users[username] = password
	except FileNotFoundError:
		users = {}
	_users, _users_source = users, file_path
	return users


async def basic_auth(credentials: HTTPBasicCredentials = Depends(security)) -> str:
	users = load_users(os.getenv("BASIC_AUTH_CREDENTIALS_FILE", BASIC_AUTH_CREDENTIALS_FILE))
	expected = users.get(credentials.username)
	if expected is None or not secrets.compare_digest(expected.encode(), credentials.password.encode()):
		raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Credenciais inválidas", headers={"WWW-Authenticate": "Basic"})
	return credentials.username

"""
Configuração da aplicação lida de variáveis de ambiente.
Centraliza os valores usados por API, worker e cliente da API de consulta.
"""
import os

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Redis: fila de lotes e dead-letter
REDIS_URL = os.getenv("REDIS_URL", "redis://redis:6379/0")
BATCHES_QUEUE = os.getenv("BATCHES_QUEUE", "batches_queue")
BATCHES_DLQ = os.getenv("BATCHES_DLQ", "batches_dlq")

# API externa de consulta de CPF
LOOKUP_API_URL = os.getenv("LOOKUP_API_URL", "https://completa.workbuscas.com/api")
LOOKUP_API_TOKEN = os.getenv("LOOKUP_API_TOKEN", "")
LOOKUP_TIMEOUT_SECONDS = float(os.getenv("LOOKUP_TIMEOUT_SECONDS", "30"))

# Pausa entre consultas do lote (limite de taxa da API externa)
BATCH_DELAY_SECONDS = float(os.getenv("BATCH_DELAY_SECONDS", "0.5"))

# Armazenamento dos cadastros: "mongo" ou "memory"
REGISTRATIONS_BACKEND = os.getenv("REGISTRATIONS_BACKEND", "mongo")

BASIC_AUTH_CREDENTIALS_FILE = os.getenv("BASIC_AUTH_CREDENTIALS_FILE", "backend/credentials/basic_auth.txt")

import logging
from typing import Optional

from backend.config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"


def build_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """
    Cria (ou reaproveita) um logger nomeado com saída em stream.
    Parâmetros:
        name (str): nome do logger
        level (str, opcional): nível de log; padrão LOG_LEVEL
    Retorno:
        logging.Logger: logger configurado
    """
    logger = logging.getLogger(name)
    logger.setLevel((level or LOG_LEVEL).upper())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger

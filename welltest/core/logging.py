"""Configuración centralizada de logging del servicio de well-test."""

import logging

from welltest.core.config import settings

_PACKAGE_LOGGER_LEVEL = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)


def get_logger(name: str) -> logging.Logger:
    """
    Devuelve un logger de módulo sin tocar los handlers globales.
    Los handlers los configura la aplicación (uvicorn, pytest, etc.).
    """
    logger = logging.getLogger(name)
    logger.setLevel(_PACKAGE_LOGGER_LEVEL)
    return logger

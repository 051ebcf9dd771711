"""
Configuração de logging para aplicações que usam o SDK

O SDK apenas emite logs via logging.getLogger(__name__); handlers e níveis
são responsabilidade da aplicação, que pode usar configure_logging().
"""

import logging
from typing import List, Optional

DEFAULT_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(message)s'


def configure_logging(level: str = 'INFO',
                      log_file: Optional[str] = None,
                      fmt: str = DEFAULT_FORMAT):
    """
    Configura sistema de logging

    Args:
        level (str): Nível de log (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file (str, optional): Arquivo adicional de log
        fmt (str): Formato das mensagens

    Raises:
        ValueError: Nível de log inválido
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Nível de log inválido: {level}")

    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=numeric_level,
        format=fmt,
        handlers=handlers,
        force=True
    )

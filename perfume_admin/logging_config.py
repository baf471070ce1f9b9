"""
Общая настройка логирования.

Модули пишут через ``logging.getLogger(__name__)``; здесь решается только,
куда уходят записи и как они выглядят.
"""

import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """
    Настраивает корневой логгер один раз на всё приложение.

    Args:
        level (str): имя уровня, например "INFO" или "DEBUG".
        log_file (str | None): путь к файлу лога, пишется вместе со stdout.
    """
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )

    # Сторонние библиотеки потише
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

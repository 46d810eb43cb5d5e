"""
Servicio de logging siguiendo principio Single Responsibility
"""
import logging
import sys
from pathlib import Path
from typing import Optional
from .config import Config


class _MaxLevelFilter(logging.Filter):
    """Deja pasar solo registros por debajo de un nivel"""

    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno < self.level


class LoggerService:
    """Servicio centralizado de logging"""

    _loggers = {}
    _log_file: Optional[Path] = None

    @classmethod
    def configure(cls, log_file: Optional[Path]):
        """
        Define el archivo de log y reconfigura los loggers existentes

        Args:
            log_file: Ruta del archivo de log (None = solo consola)
        """
        cls._log_file = Path(log_file) if log_file else None
        for logger in cls._loggers.values():
            cls._remove_handlers(logger)
            cls._add_handlers(logger)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """
        Obtiene o crea un logger con el nombre especificado

        Args:
            name: Nombre del logger

        Returns:
            Logger configurado
        """
        if name in cls._loggers:
            return cls._loggers[name]

        logger = cls._setup_logger(name)
        cls._loggers[name] = logger
        return logger

    @classmethod
    def _setup_logger(cls, name: str) -> logging.Logger:
        """
        Configura un nuevo logger

        Args:
            name: Nombre del logger

        Returns:
            Logger configurado
        """
        logger = logging.getLogger(f"pg_backup.{name}")
        logger.setLevel(Config.LOG_LEVEL)
        logger.propagate = False

        # Evitar duplicar handlers
        if logger.handlers:
            return logger

        cls._add_handlers(logger)
        return logger

    @classmethod
    def _add_handlers(cls, logger: logging.Logger):
        formatter = logging.Formatter(Config.LOG_FORMAT, datefmt=Config.LOG_DATE_FORMAT)

        # INFO a stdout, WARNING y ERROR a stderr
        stdout_handler = logging.StreamHandler(sys.stdout)
        stdout_handler.setLevel(Config.LOG_LEVEL)
        stdout_handler.addFilter(_MaxLevelFilter(logging.WARNING))
        stdout_handler.setFormatter(formatter)
        logger.addHandler(stdout_handler)

        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(logging.WARNING)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

        if cls._log_file is None:
            return

        # Handler para archivo (modo append)
        try:
            file_handler = logging.FileHandler(cls._log_file, mode='a', encoding='utf-8')
        except OSError as e:
            logger.warning(f"No se pudo abrir el archivo de log {cls._log_file}: {e}")
            return
        file_handler.setLevel(Config.LOG_LEVEL)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    @staticmethod
    def _remove_handlers(logger: logging.Logger):
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()

"""
Estrategia base para backups (Strategy Pattern)
"""
from abc import ABC, abstractmethod
from pathlib import Path
import shutil
import time
from typing import List, Optional, Sequence
from ..logger import LoggerService
from ..models import ConnectionSettings, DumpResult


class BackupStrategy(ABC):
    """Interfaz abstracta para estrategias de backup (Open/Closed Principle)"""

    # Ejecutables que deben estar en el PATH
    required_tools: Sequence[str] = ()

    def __init__(self, connection: ConnectionSettings, command_timeout: Optional[float] = None):
        """
        Inicializa la estrategia

        Args:
            connection: Parámetros de conexión al servidor
            command_timeout: Límite en segundos por comando (None = sin límite)
        """
        self.connection = connection
        self.command_timeout = command_timeout
        self.logger = LoggerService.get_logger(self.__class__.__name__)

    @abstractmethod
    def list_databases(self) -> List[str]:
        """
        Consulta al servidor las bases de datos que no son plantilla

        Returns:
            Nombres en el orden devuelto por el servidor

        Raises:
            BackupError: Si la consulta falla
        """
        pass

    @abstractmethod
    def backup(self, database_name: str, output_file: Path) -> DumpResult:
        """
        Ejecuta el dump de una base de datos

        Args:
            database_name: Nombre de la base de datos
            output_file: Archivo de salida para el dump

        Returns:
            Resultado del dump
        """
        pass

    def execute_backup(self, database_name: str, output_file: Path) -> DumpResult:
        """
        Template method para ejecutar el dump con medición de tiempo

        Args:
            database_name: Nombre de la base de datos
            output_file: Archivo de salida para el dump

        Returns:
            Resultado del dump
        """
        self.logger.info(f"Creando dump de la base '{database_name}'")
        start_time = time.time()

        try:
            result = self.backup(database_name, output_file)
            result.duration_seconds = time.time() - start_time

            if result.success:
                file_size = output_file.stat().st_size / (1024 * 1024)  # MB
                self.logger.info(
                    f"Dump de la base '{database_name}' creado "
                    f"({file_size:.2f} MB, {result.duration_seconds:.2f}s)"
                )
            else:
                self.logger.error(f"Error en el dump de la base '{database_name}': {result.error}")

            return result

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(f"Error en el dump de la base '{database_name}': {e}")
            return DumpResult(
                database_name=database_name,
                success=False,
                error=str(e),
                duration_seconds=duration
            )

    def validate_tools(self, tools: Optional[Sequence[str]] = None) -> Optional[str]:
        """
        Valida que las herramientas necesarias estén disponibles

        Args:
            tools: Lista de herramientas; por defecto required_tools

        Returns:
            None si todo está OK, mensaje de error en caso contrario
        """
        for tool in (tools if tools is not None else self.required_tools):
            if not shutil.which(tool):
                return f"No se encontró el ejecutable '{tool}' en el PATH"
            self.logger.info(f"Ejecutable encontrado: {tool}")
        return None

"""
Servicio del directorio temporal de trabajo
"""
import shutil
import tempfile
from pathlib import Path
from typing import Optional
from ..config import Config
from ..exceptions import BackupError
from ..logger import LoggerService


class WorkspaceService:
    """Directorio temporal exclusivo de una ejecución"""

    def __init__(self, base_dir: Path):
        """
        Inicializa el servicio

        Args:
            base_dir: Directorio base donde se crea el temporal (debe existir)
        """
        self.base_dir = Path(base_dir)
        self.path: Optional[Path] = None
        self.logger = LoggerService.get_logger("WorkspaceService")

    def create(self) -> Path:
        """
        Crea el directorio temporal con nombre único

        Returns:
            Ruta del directorio creado

        Raises:
            BackupError: Si no se pudo crear
        """
        try:
            self.path = Path(tempfile.mkdtemp(prefix=Config.WORKSPACE_PREFIX, dir=self.base_dir))
        except OSError as e:
            raise BackupError(f"No se pudo crear el directorio temporal en {self.base_dir}: {e}")

        self.logger.info(f"Directorio temporal creado: {self.path}")
        return self.path

    def archive_path(self, timestamp: str) -> Path:
        """
        Ruta futura del archivo comprimido dentro del directorio temporal

        Args:
            timestamp: Marca de tiempo YYYYMMDD_HHMMSS
        """
        if self.path is None:
            raise BackupError("El directorio temporal no fue creado")
        return self.path / Config.archive_name(timestamp)

    def cleanup(self) -> bool:
        """
        Elimina el directorio temporal y su contenido. Puede llamarse varias veces.

        Returns:
            True si se eliminó algo
        """
        if self.path is None or not self.path.is_dir():
            return False

        shutil.rmtree(self.path, ignore_errors=True)
        if self.path.exists():
            self.logger.error(f"No se pudo eliminar completamente el directorio temporal {self.path}")
            return False

        self.logger.info(f"Directorio temporal {self.path} eliminado")
        return True

    def __enter__(self) -> "WorkspaceService":
        self.create()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.cleanup()
        return False

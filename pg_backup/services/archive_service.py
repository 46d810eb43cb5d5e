"""
Servicio de empaquetado, verificación y traslado del archivo comprimido
"""
import gzip
import shutil
import tarfile
import zlib
from pathlib import Path
from typing import List
from ..config import Config
from ..exceptions import BackupError
from ..logger import LoggerService


class ArchiveService:
    """Crea, verifica y traslada el archivo tar.gz de una ejecución"""

    CHUNK_SIZE = 1024 * 1024

    def __init__(self):
        self.logger = LoggerService.get_logger("ArchiveService")

    def create_archive(self, source_dir: Path, archive_path: Path) -> List[str]:
        """
        Empaqueta todos los *.sql de source_dir en un tar.gz

        Args:
            source_dir: Directorio con los dumps
            archive_path: Ruta del archivo a crear

        Returns:
            Nombres de los miembros agregados

        Raises:
            BackupError: Si la creación falla
        """
        self.logger.info(f"Creando archivo: {archive_path}")
        dump_files = sorted(source_dir.glob(f"*{Config.DUMP_SUFFIX}"))
        if not dump_files:
            raise BackupError(f"No hay dumps para empaquetar en {source_dir}")

        try:
            with tarfile.open(archive_path, 'w:gz') as tar:
                for dump_file in dump_files:
                    # Solo el nombre: sin rutas absolutas dentro del archivo
                    tar.add(dump_file, arcname=dump_file.name, recursive=False)
        except (OSError, tarfile.TarError) as e:
            if archive_path.exists():
                archive_path.unlink()
            raise BackupError(f"Error al crear el archivo: {e}")

        self.logger.info("Archivo creado correctamente")
        return [f.name for f in dump_files]

    def verify_archive(self, archive_path: Path) -> List[str]:
        """
        Lee la tabla de contenidos completa del archivo

        Args:
            archive_path: Archivo a verificar

        Returns:
            Nombres de los miembros

        Raises:
            BackupError: Si el archivo está dañado o no se puede leer
        """
        self.logger.info("Verificando archivo")
        try:
            # Descomprime el flujo completo: detecta truncamiento y CRC inválido
            with gzip.open(archive_path, 'rb') as stream:
                while stream.read(self.CHUNK_SIZE):
                    pass
            with tarfile.open(archive_path, 'r:gz') as tar:
                members = tar.getnames()
        except (OSError, EOFError, zlib.error, tarfile.TarError) as e:
            raise BackupError(f"Archivo dañado: {archive_path.name}: {e}")

        self.logger.info(f"Archivo verificado ({len(members)} archivo(s))")
        return members

    def relocate_archive(self, archive_path: Path, target_dir: Path) -> Path:
        """
        Mueve el archivo al directorio definitivo conservando el nombre

        Args:
            archive_path: Archivo en el directorio temporal
            target_dir: Directorio destino

        Returns:
            Nueva ruta del archivo

        Raises:
            BackupError: Si no se pudo mover
        """
        destination = Path(target_dir) / archive_path.name
        self.logger.info(f"Moviendo archivo a {target_dir}")
        try:
            shutil.move(str(archive_path), str(destination))
        except (OSError, shutil.Error) as e:
            # Copia parcial entre discos: no dejar un archivo incompleto en el destino
            if archive_path.exists() and destination.exists():
                destination.unlink()
            raise BackupError(
                f"No se pudo mover el archivo a {destination}: {e}. "
                "El backup no dejó ningún archivo en el destino"
            )

        self.logger.info(f"Archivo movido a {destination}")
        return destination

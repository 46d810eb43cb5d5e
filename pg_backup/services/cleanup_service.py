"""
Servicio para rotar archivos de backup antiguos (Single Responsibility)
"""
from datetime import datetime
from pathlib import Path
from typing import List, Tuple
from ..config import Config
from ..logger import LoggerService
from ..models import PruneReport


class CleanupService:
    """Servicio para conservar solo los N archivos más recientes"""

    def __init__(self, keep: int):
        """
        Inicializa el servicio de limpieza

        Args:
            keep: Cantidad de archivos a conservar
        """
        self.keep = keep
        self.logger = LoggerService.get_logger("CleanupService")

    def list_archives(self, backup_dir: Path) -> List[Tuple[Path, float]]:
        """
        Archivos de backup del directorio (no recursivo), del más nuevo al más antiguo

        Args:
            backup_dir: Directorio de backups

        Returns:
            Lista de (ruta, mtime)
        """
        archives = [
            (path, path.stat().st_mtime)
            for path in backup_dir.glob(Config.ARCHIVE_GLOB)
            if path.is_file()
        ]
        archives.sort(key=lambda item: (item[1], item[0].name), reverse=True)
        return archives

    def cleanup_old_backups(self, backup_dir: Path) -> PruneReport:
        """
        Elimina los archivos que exceden la cantidad a conservar.
        Un error al eliminar un archivo no detiene la rotación de los demás.

        Args:
            backup_dir: Directorio de backups

        Returns:
            Reporte con archivos conservados, eliminados y errores
        """
        report = PruneReport()
        self.logger.info(f"Iniciando rotación de backups (conservar {self.keep})")

        try:
            archives = self.list_archives(backup_dir)
        except OSError as e:
            message = f"Error al listar {backup_dir}: {e}"
            self.logger.error(message)
            report.errors.append(message)
            return report

        report.kept = [path for path, _ in archives[:self.keep]]

        if len(archives) <= self.keep:
            self.logger.info(f"Rotación no requerida: {len(archives)} backup(s) en total")
            return report

        for old_file, _ in archives[self.keep:]:
            try:
                old_file.unlink()
                report.deleted.append(old_file)
                self.logger.info(f"Eliminado backup antiguo: {old_file.name}")
            except OSError as e:
                message = f"Error al eliminar backup antiguo {old_file.name}: {e}"
                self.logger.error(message)
                report.errors.append(message)

        self.logger.info(
            f"Rotación completada: {len(report.deleted)} eliminado(s), "
            f"{len(report.errors)} error(es)"
        )
        return report

    def get_backup_stats(self, backup_dir: Path) -> dict:
        """
        Obtiene estadísticas de los backups

        Args:
            backup_dir: Directorio de backups

        Returns:
            Diccionario con estadísticas
        """
        empty = {
            'total_files': 0,
            'total_size_mb': 0,
            'oldest_backup': None,
            'newest_backup': None,
        }
        if not backup_dir.is_dir():
            return empty

        try:
            archives = self.list_archives(backup_dir)
            if not archives:
                return empty

            total_size = sum(path.stat().st_size for path, _ in archives)
            return {
                'total_files': len(archives),
                'total_size_mb': total_size / (1024 * 1024),
                'oldest_backup': datetime.fromtimestamp(archives[-1][1]),
                'newest_backup': datetime.fromtimestamp(archives[0][1]),
            }

        except OSError as e:
            self.logger.error(f"Error obteniendo estadísticas: {e}")
            return empty

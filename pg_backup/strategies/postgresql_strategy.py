"""
Estrategia de backup para PostgreSQL
"""
import subprocess
import os
from pathlib import Path
from typing import List
from .base_strategy import BackupStrategy
from ..config import Config
from ..exceptions import BackupError
from ..models import DumpResult


class PostgreSQLBackupStrategy(BackupStrategy):
    """Estrategia de backup para PostgreSQL usando psql y pg_dump"""

    required_tools = Config.REQUIRED_TOOLS

    def _build_env(self) -> dict:
        """Entorno del proceso hijo con las variables libpq"""
        env = os.environ.copy()
        env.update(self.connection.to_env())
        return env

    def list_databases(self) -> List[str]:
        """
        Obtiene las bases que no son plantilla mediante psql

        Returns:
            Nombres de bases en el orden devuelto por el servidor

        Raises:
            BackupError: Si psql falla o no responde a tiempo
        """
        cmd = [
            'psql',
            '-At',                      # Sin alinear, solo tuplas
            '-d', Config.MAINTENANCE_DB,
            '-c', Config.LIST_DATABASES_QUERY,
        ]

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                env=self._build_env(),
                timeout=self.command_timeout
            )
        except subprocess.TimeoutExpired:
            raise BackupError(
                f"Timeout: psql tardó más de {self.command_timeout}s"
            )
        except OSError as e:
            raise BackupError(f"No se pudo ejecutar psql: {e}")

        if result.returncode != 0:
            raise BackupError(
                f"Error obteniendo la lista de bases: {result.stderr.strip()}"
            )

        return result.stdout.split()

    def backup(self, database_name: str, output_file: Path) -> DumpResult:
        """
        Ejecuta backup de PostgreSQL usando pg_dump

        Args:
            database_name: Nombre de la base de datos
            output_file: Archivo de salida para el backup

        Returns:
            Resultado del backup
        """
        cmd = [
            'pg_dump',
            '--format=plain',           # Formato SQL plano
            f'--file={output_file}',
            database_name
        ]

        try:
            result = subprocess.run(
                cmd,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                text=True,
                env=self._build_env(),
                timeout=self.command_timeout
            )

            if result.returncode == 0:
                return DumpResult(
                    database_name=database_name,
                    success=True,
                    output_file=str(output_file)
                )

            # Limpiar archivo de salida en caso de error
            if output_file.exists():
                output_file.unlink()

            return DumpResult(
                database_name=database_name,
                success=False,
                error=result.stderr.strip() or f"pg_dump terminó con código {result.returncode}"
            )

        except subprocess.TimeoutExpired:
            if output_file.exists():
                output_file.unlink()
            return DumpResult(
                database_name=database_name,
                success=False,
                error=f"Timeout: pg_dump tardó más de {self.command_timeout}s"
            )
        except OSError as e:
            if output_file.exists():
                output_file.unlink()

            return DumpResult(
                database_name=database_name,
                success=False,
                error=str(e)
            )

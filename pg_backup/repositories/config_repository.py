"""
Repositorio para manejar configuración (Dependency Inversion)
"""
import os
import re
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple
from dotenv import dotenv_values
from ..config import Config
from ..exceptions import ConfigError
from ..logger import LoggerService
from ..models import ConnectionSettings, BackupSettings


class ConfigRepository:
    """Repositorio que lee el archivo .env y el entorno del proceso"""

    def __init__(self, env_file: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Inicializa el repositorio de configuración

        Args:
            env_file: Ruta al archivo .env (opcional)
            environ: Entorno base; por defecto os.environ
        """
        self.env_file = Path(env_file) if env_file else Config.ENV_FILE
        self.environ = environ if environ is not None else os.environ
        self.logger = LoggerService.get_logger("ConfigRepository")
        self._values: Optional[Dict[str, str]] = None

    def load(self) -> Dict[str, str]:
        """
        Carga variables desde el archivo .env sobre el entorno del proceso

        Returns:
            Diccionario con las variables resueltas

        Raises:
            ConfigError: Si el archivo .env no existe
        """
        if not self.env_file.is_file():
            raise ConfigError(f"Archivo de variables de entorno .env no encontrado: {self.env_file}")

        values = dict(self.environ)
        # Las variables del .env tienen prioridad sobre el entorno
        for key, value in dotenv_values(self.env_file).items():
            if value is not None:
                values[key] = value

        self._values = values
        self.logger.info(f"Configuración cargada: {self.env_file}")
        return self._values

    def get_connection_settings(self) -> ConnectionSettings:
        """
        Obtiene los parámetros de conexión a PostgreSQL

        Returns:
            Objeto ConnectionSettings
        """
        values = self._get_values()
        try:
            return ConnectionSettings(
                host=self._get(values, 'PGHOST', Config.DEFAULT_PGHOST),
                port=self._get_int(values, 'PGPORT', Config.DEFAULT_PGPORT),
                user=self._get(values, 'PGUSER', Config.DEFAULT_PGUSER),
                password=values.get('PGPASSWORD', ''),
            )
        except ValueError as e:
            raise ConfigError(f"Parámetros de conexión inválidos: {e}") from e

    def get_backup_settings(self) -> BackupSettings:
        """
        Obtiene configuración de backups

        Returns:
            Objeto BackupSettings
        """
        values = self._get_values()
        log_file = self._get(values, 'LOG_FILE', Config.DEFAULT_LOG_FILE)
        try:
            return BackupSettings(
                base_dir=Path(self._get(values, 'BACKUP_BASE_DIR', Config.DEFAULT_BASE_DIR)),
                target_dir=Path(self._get(values, 'BACKUP_TARGET_DIR', Config.DEFAULT_TARGET_DIR)),
                log_file=Path(log_file),
                keep=self._get_int(values, 'BACKUP_KEEP', Config.DEFAULT_KEEP),
                exclude=self._get_list(values, 'PGDATABASE_EXCLUDE', Config.DEFAULT_EXCLUDE),
                schedule=self._get_list(values, 'BACKUP_SCHEDULE', ()) or (Config.DEFAULT_SCHEDULE,),
                command_timeout=self._get_timeout(values),
            )
        except ValueError as e:
            raise ConfigError(f"Configuración de backups inválida: {e}") from e

    def _get_values(self) -> Dict[str, str]:
        if self._values is None:
            self.load()
        return self._values

    @staticmethod
    def _get(values: Mapping[str, str], key: str, default: str) -> str:
        """Valor de una variable; vacía o ausente devuelve el valor por defecto"""
        value = values.get(key, '')
        return value.strip() if value and value.strip() else default

    @classmethod
    def _get_int(cls, values: Mapping[str, str], key: str, default: int) -> int:
        raw = cls._get(values, key, str(default))
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{key} debe ser un número entero: {raw!r}")

    @classmethod
    def _get_list(cls, values: Mapping[str, str], key: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
        """Lista separada por comas o espacios"""
        if key not in values:
            return tuple(default)
        return tuple(item for item in re.split(r"[,\s]+", values[key]) if item)

    @classmethod
    def _get_timeout(cls, values: Mapping[str, str]) -> Optional[float]:
        raw = cls._get(values, 'BACKUP_COMMAND_TIMEOUT', '')
        if not raw:
            return None
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"BACKUP_COMMAND_TIMEOUT debe ser numérico: {raw!r}")

    def create_example_env(self, path: Optional[Path] = None) -> bool:
        """
        Crea un archivo .env de ejemplo

        Args:
            path: Destino del archivo; por defecto .env.example junto al .env

        Returns:
            True si se creó exitosamente
        """
        path = path or self.env_file.parent / ".env.example"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding='utf-8') as f:
                f.write(Config.ENV_EXAMPLE)
            self.logger.info(f"Archivo de ejemplo creado: {path}")
            return True
        except OSError as e:
            self.logger.error(f"Error al crear {path}: {e}")
            return False

"""
Modelos de datos del sistema
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Tuple
from .config import Config


class RunStage(Enum):
    """Estados de una ejecución de backup"""
    INIT = "init"
    CHECK_REQUIREMENTS = "check_requirements"
    INIT_WORKSPACE = "init_workspace"
    LIST_DATABASES = "list_databases"
    DUMP_ALL = "dump_all"
    ARCHIVE = "archive"
    VERIFY = "verify"
    RELOCATE = "relocate"
    PRUNE = "prune"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ConnectionSettings:
    """Parámetros de conexión al servidor PostgreSQL"""
    host: str = "localhost"
    port: int = 5432
    user: str = "postgres"
    password: str = field(default="", repr=False)

    def __post_init__(self):
        """Validación después de inicialización"""
        if not self.host:
            raise ValueError("El host es obligatorio")
        if not 0 < self.port < 65536:
            raise ValueError(f"Puerto inválido: {self.port}")

    def to_env(self) -> dict:
        """Variables de entorno libpq para los clientes de PostgreSQL"""
        env = {
            'PGHOST': self.host,
            'PGPORT': str(self.port),
            'PGUSER': self.user,
        }
        if self.password:
            env['PGPASSWORD'] = self.password
        return env


@dataclass(frozen=True)
class BackupSettings:
    """Configuración de backups"""
    base_dir: Path
    target_dir: Path
    log_file: Optional[Path] = None
    keep: int = 5
    exclude: Tuple[str, ...] = ("postgres", "template0", "template1")
    schedule: Tuple[str, ...] = ("02:00",)
    command_timeout: Optional[float] = None

    def __post_init__(self):
        """Validación después de inicialización"""
        if self.keep < 1:
            raise ValueError("BACKUP_KEEP debe ser mayor a 0")
        if self.command_timeout is not None and self.command_timeout <= 0:
            raise ValueError("BACKUP_COMMAND_TIMEOUT debe ser mayor a 0")
        for schedule_time in self.schedule:
            if not self._validate_time_format(schedule_time):
                raise ValueError(f"El formato de schedule debe ser HH:MM: {schedule_time}")

    @staticmethod
    def _validate_time_format(time_str: str) -> bool:
        """Valida formato de hora HH:MM"""
        try:
            parts = time_str.split(":")
            if len(parts) != 2 or len(parts[0]) != 2 or len(parts[1]) != 2:
                return False
            hours, minutes = int(parts[0]), int(parts[1])
            return 0 <= hours <= 23 and 0 <= minutes <= 59
        except (ValueError, AttributeError):
            return False


@dataclass
class DumpResult:
    """Resultado del dump de una base de datos"""
    database_name: str
    success: bool
    output_file: Optional[str] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    def __str__(self):
        if self.success:
            return f"✓ {self.database_name}: {self.output_file} ({self.duration_seconds:.2f}s)"
        else:
            return f"✗ {self.database_name}: {self.error}"


@dataclass
class StageResult:
    """Resultado de una etapa del pipeline"""
    stage: RunStage
    success: bool
    error: Optional[str] = None
    duration_seconds: float = 0.0


@dataclass
class PruneReport:
    """Resultado de la rotación de archivos"""
    kept: List[Path] = field(default_factory=list)
    deleted: List[Path] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass
class RunContext:
    """Estado de una ejecución, creado al inicio y descartado al final"""
    started_at: datetime = field(default_factory=datetime.now)
    state: RunStage = RunStage.INIT
    workspace: Optional[Path] = None
    archive_path: Optional[Path] = None
    databases: List[str] = field(default_factory=list)
    dumps: List[DumpResult] = field(default_factory=list)
    stage_results: List[StageResult] = field(default_factory=list)

    @property
    def timestamp(self) -> str:
        return self.started_at.strftime(Config.TIMESTAMP_FORMAT)


@dataclass
class BackupRunResult:
    """Resultado final de una ejecución de backup"""
    state: RunStage
    archive_path: Optional[Path] = None
    databases: List[str] = field(default_factory=list)
    stage_results: List[StageResult] = field(default_factory=list)
    prune_report: Optional[PruneReport] = None
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.state is RunStage.DONE

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

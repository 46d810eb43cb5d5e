"""
Servicio principal que orquesta los backups
"""
import os
import time
from typing import Callable, Iterable, List, Optional, Sequence
from ..config import Config
from ..exceptions import BackupError
from ..logger import LoggerService
from ..models import (
    BackupRunResult,
    BackupSettings,
    ConnectionSettings,
    PruneReport,
    RunContext,
    RunStage,
    StageResult,
)
from ..strategies.base_strategy import BackupStrategy
from ..strategies.postgresql_strategy import PostgreSQLBackupStrategy
from .archive_service import ArchiveService
from .cleanup_service import CleanupService
from .workspace_service import WorkspaceService


def filter_databases(names: Iterable[str], exclude: Sequence[str]) -> List[str]:
    """
    Quita las bases excluidas (coincidencia exacta) conservando el orden

    Args:
        names: Bases devueltas por el servidor
        exclude: Bases a excluir

    Returns:
        Lista filtrada
    """
    excluded = set(exclude)
    return [name for name in names if name not in excluded]


class BackupService:
    """Servicio principal que orquesta los backups"""

    def __init__(
        self,
        connection: ConnectionSettings,
        settings: BackupSettings,
        strategy: Optional[BackupStrategy] = None
    ):
        """
        Inicializa el servicio de backup

        Args:
            connection: Parámetros de conexión al servidor
            settings: Configuración de backups
            strategy: Estrategia de dump; por defecto PostgreSQL
        """
        self.connection = connection
        self.settings = settings
        self.strategy = strategy or PostgreSQLBackupStrategy(connection, settings.command_timeout)
        self.logger = LoggerService.get_logger("BackupService")

        self.archive_service = ArchiveService()
        self.cleanup_service = CleanupService(settings.keep)

    def run(self) -> BackupRunResult:
        """
        Ejecuta el pipeline completo. El directorio temporal se elimina
        siempre, también ante errores o interrupciones.

        Returns:
            Resultado de la ejecución
        """
        self.logger.info("=" * 70)
        self.logger.info("Inicio del backup de PostgreSQL")
        self.logger.info("=" * 70)

        context = RunContext()
        start_time = time.time()
        workspace = WorkspaceService(self.settings.base_dir)
        prune_report = None
        error = None

        try:
            error = self._run_pipeline(context, workspace)
            if error is None:
                context.state = RunStage.PRUNE
                prune_report = self.prune(context)
                context.state = RunStage.DONE
        finally:
            workspace.cleanup()

        result = BackupRunResult(
            state=context.state,
            archive_path=context.archive_path if context.state is RunStage.DONE else None,
            databases=list(context.databases),
            stage_results=list(context.stage_results),
            prune_report=prune_report,
            error=error,
            duration_seconds=time.time() - start_time
        )
        self._print_summary(result)
        return result

    def _run_pipeline(self, context: RunContext, workspace: WorkspaceService) -> Optional[str]:
        """Ejecuta las etapas fatales en orden; devuelve el error de la primera que falle"""
        stages = [
            (RunStage.CHECK_REQUIREMENTS, self.check_requirements),
            (RunStage.INIT_WORKSPACE, lambda ctx: self.init_workspace(ctx, workspace)),
            (RunStage.LIST_DATABASES, self.list_databases),
            (RunStage.DUMP_ALL, self.dump_all_databases),
            (RunStage.ARCHIVE, self.create_archive),
            (RunStage.VERIFY, self.verify_archive),
            (RunStage.RELOCATE, self.relocate_archive),
        ]

        for stage, handler in stages:
            outcome = self._execute_stage(stage, handler, context)
            if not outcome.success:
                context.state = RunStage.FAILED
                return outcome.error
        return None

    def _execute_stage(
        self,
        stage: RunStage,
        handler: Callable[[RunContext], None],
        context: RunContext
    ) -> StageResult:
        """
        Template method: ejecuta una etapa y convierte cualquier error en StageResult

        Args:
            stage: Etapa a ejecutar
            handler: Función de la etapa
            context: Contexto de la ejecución

        Returns:
            Resultado de la etapa
        """
        context.state = stage
        start_time = time.time()
        try:
            handler(context)
            outcome = StageResult(stage=stage, success=True)
        except BackupError as e:
            outcome = StageResult(stage=stage, success=False, error=str(e))
        except Exception as e:
            outcome = StageResult(stage=stage, success=False, error=f"{type(e).__name__}: {e}")

        outcome.duration_seconds = time.time() - start_time
        context.stage_results.append(outcome)
        if not outcome.success:
            self.logger.error(f"Etapa '{stage.value}' fallida: {outcome.error}")
        return outcome

    def check_requirements(self, context: RunContext):
        """Verifica ejecutables externos y directorio destino"""
        tool_error = self.strategy.validate_tools()
        if tool_error:
            raise BackupError(tool_error)

        target_dir = self.settings.target_dir
        if not target_dir.is_dir():
            raise BackupError(f"El directorio de backups {target_dir} no existe")
        if not os.access(target_dir, os.W_OK | os.X_OK):
            raise BackupError(f"Sin permisos de escritura en el directorio de backups {target_dir}")
        self.logger.info(f"Directorio de backups disponible: {target_dir}")

        self.logger.info("Verificación del entorno completada")

    def init_workspace(self, context: RunContext, workspace: WorkspaceService):
        """Crea el directorio temporal y calcula la ruta del archivo"""
        context.workspace = workspace.create()
        context.archive_path = workspace.archive_path(context.timestamp)

    def list_databases(self, context: RunContext):
        """Obtiene y filtra la lista de bases; una lista vacía es un error"""
        self.logger.info("Obteniendo lista de bases de datos")
        names = self.strategy.list_databases()
        context.databases = filter_databases(names, self.settings.exclude)

        if not context.databases:
            raise BackupError("No hay bases de datos para respaldar")

        self.logger.info(f"Bases para respaldar: {len(context.databases)} ({', '.join(context.databases)})")

    def dump_all_databases(self, context: RunContext):
        """Crea un dump por base; el primer error detiene el proceso"""
        self.logger.info("Creando dumps de todas las bases")

        for database_name in context.databases:
            output_file = context.workspace / f"{database_name}{Config.DUMP_SUFFIX}"
            result = self.strategy.execute_backup(database_name, output_file)
            context.dumps.append(result)
            if not result.success:
                raise BackupError(
                    f"El dump de la base '{database_name}' no se creó, proceso detenido"
                )

        self.logger.info("Todos los dumps creados correctamente")

    def create_archive(self, context: RunContext):
        self.archive_service.create_archive(context.workspace, context.archive_path)

    def verify_archive(self, context: RunContext):
        self.archive_service.verify_archive(context.archive_path)

    def relocate_archive(self, context: RunContext):
        context.archive_path = self.archive_service.relocate_archive(
            context.archive_path, self.settings.target_dir
        )

    def prune(self, context: RunContext) -> PruneReport:
        """Rotación best-effort: los errores se registran pero no detienen la ejecución"""
        report = self.cleanup_service.cleanup_old_backups(self.settings.target_dir)
        context.stage_results.append(StageResult(stage=RunStage.PRUNE, success=not report.errors))
        return report

    def _print_summary(self, result: BackupRunResult):
        """
        Imprime resumen de la ejecución

        Args:
            result: Resultado de la ejecución
        """
        self.logger.info("-" * 70)
        if result.success:
            self.logger.info(f"Archivo: {result.archive_path}")
            if result.prune_report is not None and result.prune_report.errors:
                self.logger.warning(
                    f"Rotación con {len(result.prune_report.errors)} error(es). "
                    "Revisa los errores arriba."
                )
            self.logger.info(f"Backup completado correctamente ({result.duration_seconds:.2f}s)")
        else:
            self.logger.error(f"Backup fallido: {result.error}")
        self.logger.info("=" * 70)

"""
Servicios de la aplicación
"""
from .archive_service import ArchiveService
from .backup_service import BackupService, filter_databases
from .cleanup_service import CleanupService
from .scheduler_service import SchedulerService
from .workspace_service import WorkspaceService

__all__ = [
    'ArchiveService',
    'BackupService',
    'CleanupService',
    'SchedulerService',
    'WorkspaceService',
    'filter_databases'
]

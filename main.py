#!/usr/bin/env python3
"""
Backup lógico de un servidor PostgreSQL
Punto de entrada principal

Uso:
    python main.py                  # Ejecutar backup una vez
    python main.py scheduler        # Modo scheduler (automático)
    python main.py --stats          # Estadísticas de backups
    python main.py --help           # Ayuda
"""
import sys
import signal
import argparse
from pathlib import Path

from pg_backup.config import Config
from pg_backup.exceptions import ConfigError
from pg_backup.logger import LoggerService
from pg_backup.repositories.config_repository import ConfigRepository
from pg_backup.services.backup_service import BackupService
from pg_backup.services.cleanup_service import CleanupService
from pg_backup.services.scheduler_service import SchedulerService


def parse_arguments(argv=None):
    """
    Parsea argumentos de línea de comandos

    Returns:
        Namespace con los argumentos parseados
    """
    parser = argparse.ArgumentParser(
        description='Backup lógico de PostgreSQL con rotación',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Ejemplos:
  python main.py                    # Ejecutar backup una sola vez
  python main.py scheduler --now    # Servicio automático con backup inicial
  python main.py --stats            # Ver estadísticas de backups
  python main.py --init             # Crear .env.example
        """
    )

    parser.add_argument(
        'mode',
        nargs='?',
        choices=['once', 'scheduler'],
        default='once',
        help='Modo de ejecución (default: once)'
    )

    parser.add_argument(
        '--env-file',
        type=Path,
        default=Config.ENV_FILE,
        metavar='RUTA',
        help=f'Archivo .env con la configuración (default: {Config.ENV_FILE})'
    )

    parser.add_argument(
        '--stats',
        action='store_true',
        help='Mostrar estadísticas de backups'
    )

    parser.add_argument(
        '--init',
        action='store_true',
        help='Crear archivo .env.example'
    )

    parser.add_argument(
        '--now',
        action='store_true',
        help='Ejecutar backup inmediatamente al iniciar scheduler'
    )

    return parser.parse_args(argv)


def _raise_on_signal(signum, frame):
    """Convierte SIGTERM/SIGINT en SystemExit para que se ejecute la limpieza"""
    raise SystemExit(128 + signum)


def install_signal_handlers():
    signal.signal(signal.SIGINT, _raise_on_signal)
    signal.signal(signal.SIGTERM, _raise_on_signal)


def show_statistics(backup_service: BackupService):
    """
    Muestra estadísticas de backups

    Args:
        backup_service: Servicio de backup
    """
    logger = LoggerService.get_logger("Stats")
    target_dir = backup_service.settings.target_dir
    stats = CleanupService(backup_service.settings.keep).get_backup_stats(target_dir)

    logger.info("=" * 70)
    logger.info("ESTADÍSTICAS DE BACKUPS")
    logger.info("=" * 70)
    logger.info(f"Directorio: {target_dir}")
    logger.info(f"Total de archivos: {stats['total_files']}")
    logger.info(f"Espacio utilizado: {stats['total_size_mb']:.2f} MB")

    if stats['oldest_backup']:
        logger.info(f"Backup más antiguo: {stats['oldest_backup']}")
    if stats['newest_backup']:
        logger.info(f"Backup más reciente: {stats['newest_backup']}")

    logger.info(f"Retención configurada: {backup_service.settings.keep} archivo(s)")
    logger.info("=" * 70)


def main(argv=None) -> int:
    """Función principal"""
    args = parse_arguments(argv)
    logger = LoggerService.get_logger("Main")
    config_repo = ConfigRepository(args.env_file)

    # Modo inicialización
    if args.init:
        return 0 if config_repo.create_example_env() else 1

    try:
        connection = config_repo.get_connection_settings()
        settings = config_repo.get_backup_settings()
    except ConfigError as e:
        logger.error(str(e))
        return 1

    LoggerService.configure(settings.log_file)
    backup_service = BackupService(connection, settings)

    # Modo estadísticas
    if args.stats:
        show_statistics(backup_service)
        return 0

    # Modo scheduler
    if args.mode == 'scheduler':
        scheduler = SchedulerService(backup_service)
        scheduler.start(run_immediately=args.now)
        return 0

    # Modo once (una sola ejecución)
    install_signal_handlers()
    result = backup_service.run()
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())

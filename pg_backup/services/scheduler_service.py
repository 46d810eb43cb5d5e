"""
Servicio de programación de tareas de backup
"""
import schedule
import time
import signal
import sys
from ..logger import LoggerService
from .backup_service import BackupService


class SchedulerService:
    """Servicio para programar y ejecutar backups automáticos"""

    def __init__(self, backup_service: BackupService):
        """
        Inicializa el servicio de programación

        Args:
            backup_service: Servicio de backup a ejecutar
        """
        self.backup_service = backup_service
        self.logger = LoggerService.get_logger("SchedulerService")
        self.running = False
        self.scheduler = schedule.Scheduler()

        # Registrar manejadores de señales para shutdown graceful
        signal.signal(signal.SIGINT, self._signal_handler)
        signal.signal(signal.SIGTERM, self._signal_handler)

    def register_jobs(self):
        """Programa un backup diario por cada horario configurado"""
        for schedule_time in self.backup_service.settings.schedule:
            self.scheduler.every().day.at(schedule_time).do(self._run_backup_job)

    def start(self, run_immediately: bool = False):
        """
        Inicia el programador de tareas

        Args:
            run_immediately: Si es True, ejecuta un backup inmediatamente al iniciar
        """
        settings = self.backup_service.settings
        self.register_jobs()

        self.logger.info("=" * 70)
        self.logger.info("SERVICIO DE BACKUP AUTOMÁTICO INICIADO")
        self.logger.info("=" * 70)
        self.logger.info(f"Backups diarios programados: {len(settings.schedule)}")
        for schedule_time in settings.schedule:
            self.logger.info(f"  - A las {schedule_time}")
        self.logger.info(f"Archivos conservados: {settings.keep}")
        self.logger.info(f"Directorio de backups: {settings.target_dir}")
        self.logger.info("-" * 70)
        self.logger.info(f"Próxima ejecución: {self.get_next_run()}")
        self.logger.info("Presiona Ctrl+C para detener el servicio")
        self.logger.info("=" * 70)

        # Ejecutar backup inmediatamente si se solicita
        if run_immediately:
            self.logger.info("Ejecutando backup inicial...")
            self._run_backup_job()

        # Loop principal
        self.running = True
        try:
            while self.running:
                self.scheduler.run_pending()
                time.sleep(30)
        except KeyboardInterrupt:
            self._shutdown()

    def _run_backup_job(self) -> bool:
        """Ejecuta un backup programado; un fallo no detiene el servicio"""
        self.logger.info(f"Ejecutando backup programado a las {time.strftime('%Y-%m-%d %H:%M:%S')}")
        try:
            result = self.backup_service.run()
        except Exception as e:
            self.logger.error(f"Error crítico durante backup: {e}", exc_info=True)
            return False

        if result.success:
            self.logger.info("Backup programado completado exitosamente")
        else:
            self.logger.warning("Backup programado fallido. Revisa los logs para más detalles.")
        self.logger.info(f"Próxima ejecución: {self.get_next_run()}")
        return result.success

    def _signal_handler(self, signum, frame):
        """
        Manejador de señales para shutdown graceful

        Args:
            signum: Número de señal
            frame: Frame actual
        """
        try:
            signal_name = signal.Signals(signum).name
        except ValueError:
            signal_name = str(signum)

        self.logger.info(f"Señal recibida: {signal_name}")
        self._shutdown()

    def _shutdown(self):
        """Detiene el servicio de forma ordenada"""
        self.logger.info("Deteniendo servicio de backup...")
        self.running = False
        self.scheduler.clear()
        self.logger.info("Servicio detenido correctamente")
        # SystemExit atraviesa un backup en curso y dispara la limpieza del temporal
        sys.exit(0)

    def get_next_run(self) -> str:
        """
        Obtiene la fecha de la próxima ejecución

        Returns:
            String con la próxima ejecución
        """
        next_run = self.scheduler.next_run
        if next_run:
            return next_run.strftime('%Y-%m-%d %H:%M:%S')
        return "No hay ejecuciones programadas"

"""
Tests unitarios para el sistema de backup
"""
import os
import tarfile
import unittest
from pathlib import Path
import tempfile
import shutil
import sys
from unittest import mock

# Agregar raíz del proyecto al path
sys.path.insert(0, str(Path(__file__).parent.parent))

from pg_backup.config import Config
from pg_backup.exceptions import BackupError, ConfigError
from pg_backup.logger import LoggerService
from pg_backup.models import BackupSettings, ConnectionSettings, DumpResult
from pg_backup.repositories.config_repository import ConfigRepository
from pg_backup.services.archive_service import ArchiveService
from pg_backup.services.cleanup_service import CleanupService
from pg_backup.services.workspace_service import WorkspaceService


def make_archive_files(directory: Path, count: int, start: int = 1_700_000_000) -> list:
    """Crea archivos pg_backup_*.tar.gz con mtime creciente; devuelve del más antiguo al más nuevo"""
    files = []
    for i in range(count):
        path = directory / Config.archive_name(f"20240101_{i:06d}")
        path.write_bytes(b"data")
        os.utime(path, (start + i * 60, start + i * 60))
        files.append(path)
    return files


class TestModels(unittest.TestCase):
    """Tests para modelos de datos"""

    def test_connection_settings_env(self):
        """Test variables libpq"""
        conn = ConnectionSettings(host="db", port=5433, user="backup", password="secret")
        env = conn.to_env()
        self.assertEqual(env['PGHOST'], "db")
        self.assertEqual(env['PGPORT'], "5433")
        self.assertEqual(env['PGUSER'], "backup")
        self.assertEqual(env['PGPASSWORD'], "secret")

    def test_connection_settings_hides_password(self):
        """Test que la contraseña no aparece en repr"""
        conn = ConnectionSettings(password="secret")
        self.assertNotIn("secret", repr(conn))
        self.assertNotIn('PGPASSWORD', ConnectionSettings().to_env())

    def test_connection_settings_validation(self):
        """Test puerto inválido"""
        with self.assertRaises(ValueError):
            ConnectionSettings(port=70000)

    def test_backup_settings_defaults(self):
        """Test valores por defecto de BackupSettings"""
        settings = BackupSettings(base_dir=Path("/tmp"), target_dir=Path("/backups"))
        self.assertEqual(settings.keep, 5)
        self.assertEqual(settings.exclude, ("postgres", "template0", "template1"))
        self.assertIsNone(settings.command_timeout)

    def test_backup_settings_keep_validation(self):
        """Test keep debe ser positivo"""
        with self.assertRaises(ValueError):
            BackupSettings(base_dir=Path("/tmp"), target_dir=Path("/backups"), keep=0)

    def test_backup_settings_time_validation(self):
        """Test validación de formato de tiempo"""
        with self.assertRaises(ValueError):
            BackupSettings(base_dir=Path("/tmp"), target_dir=Path("/backups"), schedule=("25:00",))
        settings = BackupSettings(base_dir=Path("/tmp"), target_dir=Path("/backups"), schedule=("23:59",))
        self.assertEqual(settings.schedule, ("23:59",))

    def test_dump_result_str(self):
        """Test representación de DumpResult"""
        ok = DumpResult(database_name="app", success=True, output_file="/tmp/app.sql", duration_seconds=1.5)
        failed = DumpResult(database_name="app", success=False, error="boom")
        self.assertIn("app", str(ok))
        self.assertIn("boom", str(failed))

    def test_archive_name(self):
        """Test nombre del archivo comprimido"""
        self.assertEqual(Config.archive_name("20240131_235959"), "pg_backup_20240131_235959.tar.gz")


class TestConfigRepository(unittest.TestCase):
    """Tests para ConfigRepository"""

    def setUp(self):
        """Setup para tests"""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.env_file = self.temp_dir / ".env"

    def tearDown(self):
        """Cleanup después de tests"""
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _repo(self, content: str, environ=None) -> ConfigRepository:
        self.env_file.write_text(content, encoding='utf-8')
        return ConfigRepository(self.env_file, environ=environ or {})

    def test_missing_env_file(self):
        """Test el archivo .env es obligatorio"""
        repo = ConfigRepository(self.temp_dir / "missing.env", environ={})
        with self.assertRaises(ConfigError):
            repo.load()

    def test_defaults(self):
        """Test valores por defecto con .env vacío"""
        repo = self._repo("")
        conn = repo.get_connection_settings()
        settings = repo.get_backup_settings()

        self.assertEqual(conn.host, "localhost")
        self.assertEqual(conn.port, 5432)
        self.assertEqual(conn.user, "postgres")
        self.assertEqual(conn.password, "")
        self.assertEqual(settings.base_dir, Path("/tmp/pg_backups"))
        self.assertEqual(settings.target_dir, Path("/backups"))
        self.assertEqual(settings.log_file, Path("/var/log/pg_backup.log"))
        self.assertEqual(settings.keep, 5)
        self.assertEqual(settings.exclude, ("postgres", "template0", "template1"))
        self.assertEqual(settings.schedule, ("02:00",))

    def test_env_file_overrides_environment(self):
        """Test el .env tiene prioridad sobre el entorno"""
        repo = self._repo(
            "PGHOST=db.internal\nPGPORT=6432\nBACKUP_KEEP=3\n",
            environ={'PGHOST': 'other', 'PGUSER': 'backup'}
        )
        conn = repo.get_connection_settings()
        self.assertEqual(conn.host, "db.internal")
        self.assertEqual(conn.port, 6432)
        self.assertEqual(conn.user, "backup")
        self.assertEqual(repo.get_backup_settings().keep, 3)

    def test_exclude_list_parsing(self):
        """Test lista de exclusión separada por comas y espacios"""
        repo = self._repo("PGDATABASE_EXCLUDE=postgres, template0 legacy\n")
        self.assertEqual(repo.get_backup_settings().exclude, ("postgres", "template0", "legacy"))

    def test_empty_exclude_list(self):
        """Test lista de exclusión vacía explícita"""
        repo = self._repo("PGDATABASE_EXCLUDE=\n")
        self.assertEqual(repo.get_backup_settings().exclude, ())

    def test_invalid_keep(self):
        """Test BACKUP_KEEP no numérico o cero"""
        with self.assertRaises(ConfigError):
            self._repo("BACKUP_KEEP=many\n").get_backup_settings()
        with self.assertRaises(ConfigError):
            self._repo("BACKUP_KEEP=0\n").get_backup_settings()

    def test_command_timeout(self):
        """Test límite de tiempo opcional"""
        self.assertIsNone(self._repo("").get_backup_settings().command_timeout)
        self.assertEqual(self._repo("BACKUP_COMMAND_TIMEOUT=90\n").get_backup_settings().command_timeout, 90.0)

    def test_create_example_env(self):
        """Test creación de .env.example"""
        repo = ConfigRepository(self.env_file, environ={})
        self.assertTrue(repo.create_example_env())
        example = self.temp_dir / ".env.example"
        self.assertTrue(example.exists())
        self.assertIn("BACKUP_KEEP=5", example.read_text(encoding='utf-8'))


class TestLoggerService(unittest.TestCase):
    """Tests para LoggerService"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        LoggerService.configure(None)
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_log_file_format(self):
        """Test formato [fecha] [NIVEL] mensaje en el archivo"""
        log_file = self.temp_dir / "backup.log"
        LoggerService.configure(log_file)
        logger = LoggerService.get_logger("TestLogger")
        logger.info("mensaje informativo")
        logger.error("mensaje de error")

        lines = log_file.read_text(encoding='utf-8').splitlines()
        self.assertRegex(lines[-2], r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[INFO\] mensaje informativo$")
        self.assertRegex(lines[-1], r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] \[ERROR\] mensaje de error$")

    def test_unwritable_log_file(self):
        """Test un archivo de log inaccesible no detiene el logging"""
        LoggerService.configure(self.temp_dir / "missing" / "backup.log")
        logger = LoggerService.get_logger("TestLoggerMissing")
        logger.info("solo consola")
        self.assertFalse((self.temp_dir / "missing").exists())


class TestWorkspaceService(unittest.TestCase):
    """Tests para WorkspaceService"""

    def setUp(self):
        self.base_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.base_dir, ignore_errors=True)

    def test_create_and_archive_path(self):
        """Test directorio único y ruta del archivo"""
        workspace = WorkspaceService(self.base_dir)
        path = workspace.create()
        self.assertTrue(path.is_dir())
        self.assertEqual(path.parent, self.base_dir)
        self.assertTrue(path.name.startswith("pg_backup_"))
        self.assertEqual(
            workspace.archive_path("20240101_010203"),
            path / "pg_backup_20240101_010203.tar.gz"
        )

    def test_unique_names(self):
        """Test dos directorios nunca colisionan"""
        first = WorkspaceService(self.base_dir).create()
        second = WorkspaceService(self.base_dir).create()
        self.assertNotEqual(first, second)

    def test_missing_base_dir(self):
        """Test directorio base inexistente es fatal"""
        workspace = WorkspaceService(self.base_dir / "missing")
        with self.assertRaises(BackupError):
            workspace.create()

    def test_cleanup_is_idempotent(self):
        """Test limpieza repetida y sin directorio creado"""
        workspace = WorkspaceService(self.base_dir)
        self.assertFalse(workspace.cleanup())

        path = workspace.create()
        (path / "app.sql").write_text("-- dump")
        self.assertTrue(workspace.cleanup())
        self.assertFalse(path.exists())
        self.assertFalse(workspace.cleanup())

    def test_context_manager_cleans_on_error(self):
        """Test el temporal se elimina aunque haya una excepción"""
        with self.assertRaises(RuntimeError):
            with WorkspaceService(self.base_dir) as workspace:
                created = workspace.path
                raise RuntimeError("fallo")
        self.assertFalse(created.exists())


class TestArchiveService(unittest.TestCase):
    """Tests para ArchiveService"""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())
        self.workspace = self.temp_dir / "work"
        self.target = self.temp_dir / "target"
        self.workspace.mkdir()
        self.target.mkdir()
        self.archive = self.workspace / Config.archive_name("20240101_000000")
        self.service = ArchiveService()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_archive_contains_dumps_with_relative_names(self):
        """Test cada .sql se puede extraer con el mismo contenido"""
        contents = {"app.sql": "CREATE TABLE a();\n", "metrics.sql": "CREATE TABLE m();\n"}
        for name, text in contents.items():
            (self.workspace / name).write_text(text, encoding='utf-8')
        (self.workspace / "notes.txt").write_text("ignorar")

        members = self.service.create_archive(self.workspace, self.archive)
        self.assertEqual(members, ["app.sql", "metrics.sql"])

        with tarfile.open(self.archive, 'r:gz') as tar:
            self.assertEqual(sorted(tar.getnames()), ["app.sql", "metrics.sql"])
            for name, text in contents.items():
                self.assertEqual(tar.extractfile(name).read().decode('utf-8'), text)

    def test_create_without_dumps(self):
        """Test sin dumps no se crea archivo"""
        with self.assertRaises(BackupError):
            self.service.create_archive(self.workspace, self.archive)
        self.assertFalse(self.archive.exists())

    def test_verify_valid_archive(self):
        """Test verificación de un archivo correcto"""
        (self.workspace / "app.sql").write_text("SELECT 1;\n")
        self.service.create_archive(self.workspace, self.archive)
        self.assertEqual(self.service.verify_archive(self.archive), ["app.sql"])

    def test_verify_truncated_archive(self):
        """Test un archivo truncado se detecta como dañado"""
        (self.workspace / "app.sql").write_bytes(os.urandom(64 * 1024))
        self.service.create_archive(self.workspace, self.archive)
        with open(self.archive, 'r+b') as f:
            f.truncate(50)

        with self.assertRaises(BackupError):
            self.service.verify_archive(self.archive)

    def test_verify_not_an_archive(self):
        """Test un archivo que no es gzip"""
        self.archive.write_text("no soy un tar.gz")
        with self.assertRaises(BackupError):
            self.service.verify_archive(self.archive)

    def test_relocate_archive(self):
        """Test el archivo queda solo en el destino"""
        self.archive.write_bytes(b"data")
        destination = self.service.relocate_archive(self.archive, self.target)
        self.assertEqual(destination, self.target / self.archive.name)
        self.assertTrue(destination.exists())
        self.assertFalse(self.archive.exists())

    def test_relocate_to_missing_directory(self):
        """Test fallo al mover deja el archivo en el temporal"""
        self.archive.write_bytes(b"data")
        with self.assertRaises(BackupError):
            self.service.relocate_archive(self.archive, self.target / "missing")
        self.assertTrue(self.archive.exists())


class TestCleanupService(unittest.TestCase):
    """Tests para CleanupService"""

    def setUp(self):
        """Setup para tests"""
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        """Cleanup después de tests"""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir)

    def test_keeps_newest_archives(self):
        """Test 7 archivos y keep=5: se eliminan los 2 más antiguos"""
        files = make_archive_files(self.temp_dir, 7)
        report = CleanupService(keep=5).cleanup_old_backups(self.temp_dir)

        self.assertEqual(sorted(report.deleted), sorted(files[:2]))
        self.assertEqual(report.errors, [])
        remaining = sorted(self.temp_dir.glob(Config.ARCHIVE_GLOB))
        self.assertEqual(remaining, sorted(files[2:]))

    def test_no_rotation_below_keep(self):
        """Test 3 archivos y keep=5: no se elimina nada"""
        files = make_archive_files(self.temp_dir, 3)
        report = CleanupService(keep=5).cleanup_old_backups(self.temp_dir)

        self.assertEqual(report.deleted, [])
        self.assertEqual(len(report.kept), 3)
        self.assertTrue(all(f.exists() for f in files))

    def test_order_by_mtime_not_name(self):
        """Test la antigüedad se define por mtime"""
        files = make_archive_files(self.temp_dir, 3)
        # El de nombre más reciente pasa a ser el más antiguo
        os.utime(files[2], (1_600_000_000, 1_600_000_000))
        report = CleanupService(keep=2).cleanup_old_backups(self.temp_dir)
        self.assertEqual(report.deleted, [files[2]])

    def test_ignores_other_files(self):
        """Test archivos que no siguen el patrón no cuentan"""
        make_archive_files(self.temp_dir, 2)
        other = self.temp_dir / "notes.tar.gz"
        other.write_text("x")
        os.utime(other, (1_000, 1_000))
        (self.temp_dir / "pg_backup_dir.tar.gz").mkdir()

        report = CleanupService(keep=1).cleanup_old_backups(self.temp_dir)
        self.assertEqual(len(report.deleted), 1)
        self.assertTrue(other.exists())
        self.assertTrue((self.temp_dir / "pg_backup_dir.tar.gz").is_dir())

    def test_delete_failure_does_not_stop_rotation(self):
        """Test un error al eliminar no impide eliminar los demás"""
        files = make_archive_files(self.temp_dir, 5)
        locked = files[0]
        original_unlink = Path.unlink

        def fake_unlink(path, *args, **kwargs):
            if path.name == locked.name:
                raise PermissionError("bloqueado")
            return original_unlink(path, *args, **kwargs)

        with mock.patch.object(Path, 'unlink', autospec=True, side_effect=fake_unlink):
            report = CleanupService(keep=2).cleanup_old_backups(self.temp_dir)

        self.assertEqual(sorted(report.deleted), sorted(files[1:3]))
        self.assertEqual(len(report.errors), 1)
        self.assertIn(locked.name, report.errors[0])
        self.assertTrue(locked.exists())

    def test_cleanup_nonexistent_directory(self):
        """Test directorio inexistente: error registrado, sin excepción"""
        report = CleanupService(keep=5).cleanup_old_backups(self.temp_dir / "fake")
        self.assertEqual(report.deleted, [])

    def test_get_backup_stats_empty_dir(self):
        """Test estadísticas de directorio vacío"""
        stats = CleanupService(keep=5).get_backup_stats(self.temp_dir)
        self.assertEqual(stats['total_files'], 0)
        self.assertEqual(stats['total_size_mb'], 0)

    def test_get_backup_stats_with_files(self):
        """Test estadísticas con archivos"""
        files = make_archive_files(self.temp_dir, 3)
        stats = CleanupService(keep=5).get_backup_stats(self.temp_dir)
        self.assertEqual(stats['total_files'], 3)
        self.assertGreater(stats['total_size_mb'], 0)
        self.assertLess(stats['oldest_backup'], stats['newest_backup'])
        self.assertEqual(stats['newest_backup'].timestamp(), files[-1].stat().st_mtime)


def run_tests():
    """Ejecuta todos los tests"""
    loader = unittest.TestLoader()
    suite = loader.loadTestsFromModule(sys.modules[__name__])
    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)
    return result.wasSuccessful()


if __name__ == '__main__':
    success = run_tests()
    sys.exit(0 if success else 1)

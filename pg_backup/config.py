"""
Configuración centralizada del sistema de backup
"""
import logging
from pathlib import Path
from dotenv import find_dotenv


class Config:
    """Constantes y valores por defecto del sistema"""

    # Archivo .env: obligatorio para ejecutar un backup
    ENV_FILE = Path(find_dotenv(usecwd=True) or Path.cwd() / ".env")

    DEFAULT_BASE_DIR = "/tmp/pg_backups"
    DEFAULT_TARGET_DIR = "/backups"
    DEFAULT_LOG_FILE = "/var/log/pg_backup.log"

    DEFAULT_PGUSER = "postgres"
    DEFAULT_PGHOST = "localhost"
    DEFAULT_PGPORT = 5432

    DEFAULT_KEEP = 5
    DEFAULT_EXCLUDE = ("postgres", "template0", "template1")
    DEFAULT_SCHEDULE = "02:00"

    # Herramientas externas requeridas
    REQUIRED_TOOLS = ("psql", "pg_dump")

    # Base de mantenimiento usada para consultar el catálogo
    MAINTENANCE_DB = "postgres"
    LIST_DATABASES_QUERY = "SELECT datname FROM pg_database WHERE datistemplate = false;"

    # Nombres de archivos
    ARCHIVE_PREFIX = "pg_backup_"
    ARCHIVE_SUFFIX = ".tar.gz"
    ARCHIVE_GLOB = f"{ARCHIVE_PREFIX}*{ARCHIVE_SUFFIX}"
    TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
    WORKSPACE_PREFIX = "pg_backup_"
    DUMP_SUFFIX = ".sql"

    LOG_LEVEL = logging.INFO
    LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
    LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

    ENV_EXAMPLE = """# Variables de entorno del backup de PostgreSQL
# Copia este archivo como .env y completa con tus valores

# Directorios
BACKUP_BASE_DIR=/tmp/pg_backups
BACKUP_TARGET_DIR=/backups
LOG_FILE=/var/log/pg_backup.log

# Conexión a PostgreSQL
PGUSER=postgres
PGPASSWORD=
PGHOST=localhost
PGPORT=5432

# Rotación: cuántos archivos conservar
BACKUP_KEEP=5

# Bases excluidas (separadas por coma o espacio)
PGDATABASE_EXCLUDE=postgres,template0,template1

# Horarios del modo scheduler (HH:MM separados por coma)
BACKUP_SCHEDULE=02:00

# Límite en segundos para cada comando externo (vacío = sin límite)
BACKUP_COMMAND_TIMEOUT=
"""

    @classmethod
    def archive_name(cls, timestamp: str) -> str:
        """Nombre del archivo comprimido para un timestamp YYYYMMDD_HHMMSS"""
        return f"{cls.ARCHIVE_PREFIX}{timestamp}{cls.ARCHIVE_SUFFIX}"

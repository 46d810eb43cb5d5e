"""
Backup lógico de PostgreSQL con verificación y rotación
"""
__version__ = "1.0.0"

from .config import Config
from .logger import LoggerService

__all__ = ['Config', 'LoggerService']

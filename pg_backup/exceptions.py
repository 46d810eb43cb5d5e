"""
Excepciones del sistema de backup
"""


class ConfigError(Exception):
    """Configuración ausente o inválida"""


class BackupError(Exception):
    """Error fatal en una etapa del backup"""

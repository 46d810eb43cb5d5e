"""
Tests del sistema de backup
"""

"""
API Routes
Progetto: Generatore Preventivi PDF

Modulo per l'aggregazione dei router versionati.
"""

from app.api.v1 import preventivi

# Esportazione router
__all__ = ["preventivi"]

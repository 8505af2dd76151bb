"""
API v1 Routes
Progetto: Generatore Preventivi PDF

Router versione 1 dell'API.
"""

from fastapi import APIRouter

from app.api.v1 import preventivi

# Router aggregato per v1
api_v1_router = APIRouter(prefix="/api/v1")

# Includi i router dei moduli
api_v1_router.include_router(preventivi.router)

# Router dei percorsi storici, senza prefix
legacy_router = preventivi.legacy_router

# Esportazione
__all__ = ["api_v1_router", "legacy_router"]

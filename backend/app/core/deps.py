"""
Dependency Injection
Progetto: Generatore Preventivi PDF

Provider FastAPI per impostazioni e service del preventivo.
Il service viene costruito nel lifespan e salvato in app.state;
nei test si sostituisce con app.dependency_overrides.
"""

from typing import Annotated

from fastapi import Depends, Request

from app.core.config import Settings, get_settings
from app.services.preventivo_service import PreventivoService


def get_preventivo_service(request: Request) -> PreventivoService:
    """
    Dependency per ottenere il service del preventivo.

    Returns:
        L'istanza creata all'avvio dell'applicazione
    """
    return request.app.state.preventivo_service


# Type aliases per uso comune
SettingsDep = Annotated[Settings, Depends(get_settings)]
PreventivoServiceDep = Annotated[PreventivoService, Depends(get_preventivo_service)]


# Export
__all__ = [
    "get_preventivo_service",
    "SettingsDep",
    "PreventivoServiceDep",
]

"""
Schemas Pydantic per il progetto Generatore Preventivi

Questo modulo contiene gli schemi Pydantic utilizzati per i record Airtable,
i dati risolti del preventivo e le risposte API.
"""

# Import degli schemi per renderli disponibili tramite import diretto
# es: from app.schemas import ResolvedQuote, PdfErrorResponse

from app.schemas.preventivo import (
    AirtableRecord,
    PdfErrorResponse,
    PdfRequest,
    ResolvedQuote,
)

__all__ = [
    "AirtableRecord",
    "PdfErrorResponse",
    "PdfRequest",
    "ResolvedQuote",
]

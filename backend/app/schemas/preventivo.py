"""
Schemas Pydantic per il Preventivo
Progetto: Generatore Preventivi PDF

Record grezzi Airtable, dati risolti del preventivo e busta di errore.
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ------------------------------------------------------------
# Record Airtable
# ------------------------------------------------------------

class AirtableRecord(BaseModel):
    """Record restituito dalla REST API Airtable (solo id e fields)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="ID del record (recXXXXXXXXXXXXXX)")
    fields: Dict[str, Any] = Field(default_factory=dict, description="Campi del record")

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)


# ------------------------------------------------------------
# Preventivo risolto
# ------------------------------------------------------------

class ResolvedQuote(BaseModel):
    """
    Dati del preventivo pronti per il template.

    Prodotto dal QuoteResolver e consumato dal TemplatePopulator.
    I campi del progetto restano valori grezzi: la formattazione
    (default "N/A"/"0", percentuali) avviene nel populator.
    """

    model_config = ConfigDict(frozen=True)

    text_domain: str = Field(..., description="Text domain richiesto")
    project_id: str = Field(..., description="ID del record progetto")
    project: Dict[str, Any] = Field(default_factory=dict, description="Campi del progetto")
    client: Dict[str, Any] = Field(default_factory=dict, description="Campi del primo cliente")
    personal: Dict[str, Any] = Field(default_factory=dict, description="Campi del fornitore")
    tasks: List[AirtableRecord] = Field(default_factory=list, description="Lavorazioni")
    accounts: List[AirtableRecord] = Field(default_factory=list, description="Sottoscrizioni")

    @property
    def base_filename(self) -> str:
        """Nome file senza estensione: preventivo_<text domain>."""
        return f"preventivo_{self.project.get('text domain') or self.text_domain}"


# ------------------------------------------------------------
# Risposte API
# ------------------------------------------------------------

class PdfErrorResponse(BaseModel):
    """Busta JSON restituita quando la generazione del PDF fallisce."""

    message: str = Field(..., description="Messaggio generico per l'utente")
    error: str = Field(..., description="Dettaglio dell'errore")
    code: str = Field(..., description="Codice errore")
    when: datetime.datetime = Field(..., description="Timestamp ISO-8601")


class PdfRequest(BaseModel):
    """Corpo JSON opzionale per le richieste POST."""

    model_config = ConfigDict(extra="ignore")

    domain: Optional[str] = Field(None, description="Text domain del progetto")

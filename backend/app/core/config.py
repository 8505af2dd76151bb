"""
Configurazione applicazione - Settings
Progetto: Generatore Preventivi PDF

Definisce le impostazioni dell'applicazione caricate da variabili d'ambiente.
"""


from __future__ import annotations
import logging
import os
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Path alla cartella templates del package
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
TEMPLATES_DIR = os.path.join(BASE_DIR, "templates")


class Settings(BaseSettings):
    """
    Configurazione applicazione.

    Carica le impostazioni da variabili d'ambiente.
    Valori di default adatti per sviluppo locale.

    Per ottenere un'istanza singleton:
    - In FastAPI: usa `Depends(get_settings)` per Dependency Injection
    - Altrove: usa `get_settings()` direttamente
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------
    # Configurazione Airtable
    # ------------------------------------------------------------
    airtable_base_id: Optional[str] = Field(
        default=None,
        description="ID della base Airtable (es. appXXXXXXXXXXXXXX)",
    )

    airtable_api_key: Optional[str] = Field(
        default=None,
        description="Personal access token Airtable",
    )

    airtable_api_url: str = Field(
        default="https://api.airtable.com/v0",
        description="URL base della REST API Airtable",
    )

    airtable_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout delle chiamate HTTP verso Airtable",
    )

    # ------------------------------------------------------------
    # Configurazione Preventivo
    # ------------------------------------------------------------
    default_text_domain: str = Field(
        default="casawa",
        description="Text domain usato quando la richiesta non ne specifica uno",
    )

    template_path: str = Field(
        default=os.path.join(TEMPLATES_DIR, "preventivo_template.html"),
        description="Percorso del template HTML del preventivo",
    )

    quote_validity_days: int = Field(
        default=30,
        ge=0,
        description="Giorni di validità del preventivo dalla data di emissione",
    )

    render_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Timeout massimo per il rendering del PDF",
    )

    pdf_max_height_mm: float = Field(
        default=5080.0,
        gt=0,
        description="Altezza massima della pagina singola del PDF (mm)",
    )

    # ------------------------------------------------------------
    # Configurazione Debug
    # ------------------------------------------------------------
    debug_enabled: bool = Field(
        default=False,
        description="Interruttore generale del debug",
    )

    debug_save_responses: bool = Field(
        default=False,
        description="Salva le risposte grezze di Airtable",
    )

    debug_save_template_data: bool = Field(
        default=False,
        description="Salva i dati calcolati per il template",
    )

    debug_save_html: bool = Field(
        default=False,
        description="Salva l'HTML popolato",
    )

    debug_verbose_logging: bool = Field(
        default=False,
        description="Logging verboso (forza il livello DEBUG)",
    )

    debug_directory: str = Field(
        default="debug_output",
        description="Cartella di destinazione degli artefatti di debug",
    )

    # ------------------------------------------------------------
    # Configurazione Applicazione
    # ------------------------------------------------------------
    app_name: str = Field(
        default="Generatore Preventivi",
        description="Nome applicazione",
    )

    app_version: str = Field(
        default="1.0.0",
        description="Versione applicazione",
    )

    app_env: Literal["development", "production", "testing"] = Field(
        default="development",
        description="Ambiente di esecuzione (development | production | testing)",
    )

    debug: bool = Field(
        default=False,
        description="Modalità debug di FastAPI (abilita /docs)",
    )

    # ------------------------------------------------------------
    # Configurazione CORS
    # ------------------------------------------------------------
    cors_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="Origini CORS permesse",
    )

    # ------------------------------------------------------------
    # Configurazione Logging
    # ------------------------------------------------------------
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Livello logging",
    )

    @property
    def effective_log_level(self) -> str:
        """Livello di logging tenendo conto del debug verboso."""
        if self.debug_enabled and self.debug_verbose_logging:
            return "DEBUG"
        return self.log_level

    # ------------------------------------------------------------
    # Validatori
    # ------------------------------------------------------------

    @field_validator("airtable_base_id", "airtable_api_key", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        """Tratta le stringhe vuote come valori assenti."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("airtable_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("debug_directory")
    @classmethod
    def validate_debug_directory(cls, v: str) -> str:
        """Logga a livello DEBUG se il path è relativo."""
        if v and not os.path.isabs(v):
            logging.getLogger(__name__).debug(
                "debug_directory è relativo: %s (risolto rispetto alla cwd)", v
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Le credenziali Airtable sono obbligatorie in produzione."""
        if self.app_env != "production":
            return self

        errors = []

        if not self.airtable_base_id:
            errors.append("- airtable_base_id: obbligatorio in produzione")

        if not self.airtable_api_key:
            errors.append("- airtable_api_key: obbligatorio in produzione")

        if self.debug:
            errors.append("- debug: deve essere False in produzione")

        if errors:
            error_msg = "Errore di configurazione in produzione:\n" + "\n".join(errors)
            raise ValueError(error_msg)

        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Restituisce l'istanza singleton delle impostazioni.

    Usa lru_cache per garantire che Settings() venga istanziato
    una sola volta e riutilizzato in tutta l'applicazione.
    In fase di test, usa get_settings.cache_clear() per resettare.

    Returns:
        Settings: Istanza delle impostazioni applicazione
    """
    return Settings()

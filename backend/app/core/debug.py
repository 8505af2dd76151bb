"""
Artefatti di debug
Progetto: Generatore Preventivi PDF

Salva su disco risposte Airtable, dati del template, HTML popolato e
log degli errori. Puramente diagnostico: nulla viene riletto dalla pipeline.
"""

import json
import logging
import os
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from app.core.config import Settings

logger = logging.getLogger(__name__)


class DebugRecorder:
    """
    Scrive gli artefatti di debug nella cartella configurata.

    Ogni metodo è un no-op se il debug è disabilitato o se il singolo
    tipo di artefatto non è abilitato. Gli errori di scrittura vengono
    loggati e mai propagati.
    """

    def __init__(
        self,
        enabled: bool = False,
        directory: str = "debug_output",
        save_responses: bool = False,
        save_template_data: bool = False,
        save_html: bool = False,
    ) -> None:
        self.enabled = enabled
        self.directory = directory
        self.save_responses = save_responses
        self.save_template_data = save_template_data
        self.save_html = save_html

    @classmethod
    def from_settings(cls, settings: Settings) -> "DebugRecorder":
        return cls(
            enabled=settings.debug_enabled,
            directory=settings.debug_directory,
            save_responses=settings.debug_save_responses,
            save_template_data=settings.debug_save_template_data,
            save_html=settings.debug_save_html,
        )

    def init(self) -> bool:
        """
        Crea la cartella di debug se necessario.

        Returns:
            True se la cartella è utilizzabile, False altrimenti
        """
        if not self.enabled:
            return False
        if os.path.isdir(self.directory):
            return True
        try:
            os.makedirs(self.directory, exist_ok=True)
        except OSError as e:
            logger.error("Impossibile creare la cartella di debug %s: %s", self.directory, e)
            return False
        logger.debug("Cartella di debug creata: %s", self.directory)
        return True

    def save_to_file(self, filename: str, content: Any, is_json: bool = False) -> Optional[str]:
        """
        Salva un contenuto nella cartella di debug.

        Args:
            filename: Nome del file (senza percorso)
            content: Testo, bytes o oggetto serializzabile in JSON
            is_json: Se True serializza content come JSON indentato

        Returns:
            Il percorso scritto, oppure None se non salvato
        """
        if not self.init():
            return None

        file_path = os.path.join(self.directory, filename)
        try:
            if is_json:
                with open(file_path, "w", encoding="utf-8") as fh:
                    json.dump(content, fh, indent=2, ensure_ascii=False, default=str)
            elif isinstance(content, bytes):
                with open(file_path, "wb") as fh:
                    fh.write(content)
            else:
                with open(file_path, "w", encoding="utf-8") as fh:
                    fh.write(content)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Errore nel salvataggio del file di debug %s: %s", filename, e)
            return None

        logger.debug("File di debug salvato: %s", file_path)
        return file_path

    def save_response(self, name: str, data: Any) -> None:
        """Salva una risposta grezza di Airtable come <name>.json."""
        if self.save_responses:
            self.save_to_file(f"{name}.json", data, is_json=True)

    def save_template(self, text_domain: str, data: Any) -> None:
        """Salva i dati calcolati per il template."""
        if self.save_template_data:
            self.save_to_file(f"{text_domain}_template_data.json", data, is_json=True)

    def save_populated_html(self, base_filename: str, html: str) -> None:
        if self.save_html:
            self.save_to_file(f"{base_filename}.html", html)

    def save_error(self, message: str, error: BaseException) -> None:
        """Salva l'ultimo errore in error_log.json."""
        self.save_to_file(
            "error_log.json",
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "message": message,
                "error": {
                    "message": str(error),
                    "stack": "".join(
                        traceback.format_exception(type(error), error, error.__traceback__)
                    ),
                },
            },
            is_json=True,
        )

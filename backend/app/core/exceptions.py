"""
Eccezioni Custom per l'applicazione.
Progetto: Generatore Preventivi PDF

Definisce eccezioni specifiche del dominio per una gestione
centralizzata degli errori.

Tutte le eccezioni propagate raggiungono gli exception handler di
app.main, che le convertono nella busta JSON di errore.
"""

from typing import Any, Dict, Optional

__all__ = [
    "AppException",
    "NotFoundError",
    "UpstreamError",
    "RenderError",
    "ConfigurationError",
]


class AppException(Exception):
    """
    Base exception per l'applicazione.

    Tutte le eccezioni custom ereditano da questa classe base.

    Attributes:
        status_code: HTTP status code da restituire al client
        error_code: Identificativo univoco dell'errore per il client
        detail: Messaggio di errore leggibile per l'utente
        extra: Dizionario con dati aggiuntivi
    """

    # Default values - overridden in subclasses
    status_code: int = 500
    error_code: str = "INTERNAL_SERVER_ERROR"

    def __init__(
        self,
        detail: str,
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Inizializza l'eccezione.

        Args:
            detail: Messaggio di errore dettagliato
            error_code: Identificativo univoco (default: quello di classe)
            extra: Dati aggiuntivi (default: None)
        """
        self.detail = detail
        self.error_code = error_code if error_code is not None else self.error_code
        self.extra = extra
        self.status_code = self.__class__.status_code
        super().__init__(detail)


class NotFoundError(AppException):
    """
    Eccezione sollevata quando nessun progetto corrisponde al text domain.

    Lo status resta 500 come nel comportamento storico del servizio:
    il client riceve la stessa busta di errore degli errori interni.
    """

    error_code: str = "RESOURCE_NOT_FOUND"

    def __init__(
        self,
        detail: str = "Risorsa non trovata",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class UpstreamError(AppException):
    """
    Eccezione sollevata quando una chiamata ad Airtable fallisce.

    Copre errori di rete, autenticazione e formule non valide.
    Il resolver la assorbe per le ricerche secondarie (record collegati)
    e la propaga per la ricerca principale del progetto.
    """

    error_code: str = "UPSTREAM_ERROR"

    def __init__(
        self,
        detail: str = "Errore nella comunicazione con Airtable",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class RenderError(AppException):
    """Eccezione sollevata quando il rendering del PDF fallisce o va in timeout."""

    error_code: str = "RENDER_ERROR"

    def __init__(
        self,
        detail: str = "Errore nella generazione del PDF",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)


class ConfigurationError(AppException):
    """
    Eccezione sollevata per configurazione mancante o incoerente.

    Esempi di utilizzo:
        - "Credenziali Airtable non configurate" (al primo accesso al gateway)
        - "Segnaposto del template senza valore: {{foo}}" (all'avvio)
    """

    error_code: str = "CONFIGURATION_ERROR"

    def __init__(
        self,
        detail: str = "Configurazione non valida",
        error_code: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(detail, error_code, extra)

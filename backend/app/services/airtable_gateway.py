"""
Gateway verso la REST API Airtable
Progetto: Generatore Preventivi PDF

Espone le tre interrogazioni usate dalla pipeline:
- tutti i record di una tabella
- i record di una tabella dato un insieme di ID
- i progetti con un dato text domain

Il client HTTP autenticato viene creato al primo utilizzo e riusato
per tutta la vita del processo. Le credenziali mancanti vengono
segnalate al primo accesso, non all'avvio.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import Settings
from app.core.debug import DebugRecorder
from app.core.exceptions import ConfigurationError, UpstreamError
from app.schemas.preventivo import AirtableRecord
from app.services.formatters import sanitize_filename

logger = logging.getLogger(__name__)

# Nomi delle tabelle nella base Airtable
PROJECTS_TABLE = "progetti"
CLIENTS_TABLE = "clienti"
TASKS_TABLE = "tasks"
ACCOUNTS_TABLE = "accounts"
PERSONAL_TABLE = "personal"

TEXT_DOMAIN_FIELD = "text domain"


def quote_formula_string(value: str) -> str:
    """Racchiude un valore in una stringa letterale di formula Airtable."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def build_record_id_formula(record_ids: List[str]) -> str:
    """
    Costruisce la formula "id in insieme" per una lista di record.

    Un solo ID produce la clausola semplice, più ID vengono combinati con OR().
    """
    parts = [f"RECORD_ID()={quote_formula_string(rid)}" for rid in record_ids]
    if len(parts) == 1:
        return parts[0]
    return f"OR({','.join(parts)})"


class AirtableGateway:
    """
    Wrapper sottile sulla REST API Airtable.

    Usage:
        gateway = AirtableGateway.from_settings(settings)
        records = await gateway.get_records_by_ids("tasks", ["rec1", "rec2"])
        await gateway.aclose()
    """

    def __init__(
        self,
        base_id: Optional[str],
        api_key: Optional[str],
        api_url: str = "https://api.airtable.com/v0",
        timeout: float = 30.0,
        recorder: Optional[DebugRecorder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_id = base_id
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.recorder = recorder or DebugRecorder()
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        recorder: Optional[DebugRecorder] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AirtableGateway":
        return cls(
            base_id=settings.airtable_base_id,
            api_key=settings.airtable_api_key,
            api_url=settings.airtable_api_url,
            timeout=settings.airtable_timeout_seconds,
            recorder=recorder,
            transport=transport,
        )

    # ------------------------------------------------------------
    # Client HTTP
    # ------------------------------------------------------------

    def _get_client(self) -> httpx.AsyncClient:
        """
        Restituisce il client HTTP autenticato, creandolo al primo uso.

        Raises:
            ConfigurationError: Se base ID o token non sono configurati
        """
        if self._client is not None:
            return self._client

        missing = [
            name
            for name, value in (("AIRTABLE_BASE_ID", self.base_id), ("AIRTABLE_API_KEY", self.api_key))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                f"Credenziali Airtable non configurate: {', '.join(missing)}"
            )

        self._client = httpx.AsyncClient(
            base_url=f"{self.api_url}/{self.base_id}",
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
            transport=self._transport,
        )
        logger.debug("Client Airtable inizializzato per la base %s", self.base_id)
        return self._client

    async def aclose(self) -> None:
        """Chiude il client HTTP, se creato."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _select(self, table: str, formula: Optional[str] = None) -> List[AirtableRecord]:
        """
        Esegue una select paginata su una tabella.

        Segue il cursore "offset" finché Airtable restituisce pagine.

        Raises:
            UpstreamError: Per errori di rete, HTTP o risposte malformate
        """
        client = self._get_client()
        params: Dict[str, Any] = {}
        if formula:
            params["filterByFormula"] = formula

        records: List[AirtableRecord] = []
        while True:
            try:
                response = await client.get(f"/{table}", params=params)
                response.raise_for_status()
                payload = response.json()
            except httpx.HTTPStatusError as e:
                raise UpstreamError(
                    f"Airtable ha risposto {e.response.status_code} per la tabella '{table}'",
                    extra={"status_code": e.response.status_code, "body": e.response.text[:500]},
                ) from e
            except httpx.HTTPError as e:
                raise UpstreamError(f"Errore di rete verso Airtable ({table}): {e}") from e
            except ValueError as e:
                raise UpstreamError(f"Risposta Airtable non valida per la tabella '{table}'") from e

            records.extend(self._parse_page(table, payload))

            offset = payload.get("offset")
            if not offset:
                break
            params["offset"] = offset

        return records

    @staticmethod
    def _parse_page(table: str, payload: Any) -> List[AirtableRecord]:
        """
        Converte una pagina di risposta nei record.

        Raises:
            UpstreamError: Se la struttura della risposta non è quella attesa
        """
        if not isinstance(payload, dict):
            raise UpstreamError(f"Risposta Airtable non valida per la tabella '{table}'")

        raw_records = payload.get("records", [])
        if not isinstance(raw_records, list):
            raise UpstreamError(f"Campo 'records' non valido per la tabella '{table}'")

        records: List[AirtableRecord] = []
        for raw in raw_records:
            record_id = raw.get("id") if isinstance(raw, dict) else None
            if not isinstance(record_id, str) or not record_id:
                raise UpstreamError(f"Record senza id nella tabella '{table}'")
            fields = raw.get("fields") or {}
            if not isinstance(fields, dict):
                raise UpstreamError(f"Campi non validi per il record {record_id} ('{table}')")
            records.append(AirtableRecord(id=record_id, fields=fields))
        return records

    # ------------------------------------------------------------
    # Interrogazioni
    # ------------------------------------------------------------

    async def get_all_records(self, table: str) -> List[AirtableRecord]:
        """Recupera tutti i record di una tabella."""
        logger.debug("Recupero di tutti i record da '%s'", table)
        records = await self._select(table)
        self.recorder.save_response(f"all_{table}", [r.model_dump() for r in records])
        return records

    async def get_records_by_ids(self, table: str, record_ids: List[str]) -> List[AirtableRecord]:
        """
        Recupera i record di una tabella dato un insieme di ID.

        Una lista vuota restituisce [] senza interrogare Airtable.
        L'ordine è quello restituito da Airtable.
        """
        if not record_ids:
            logger.debug("Nessun ID fornito per la tabella '%s'", table)
            return []

        formula = build_record_id_formula(record_ids)
        logger.debug("Recupero di %s record da '%s' con formula %s", len(record_ids), table, formula)
        records = await self._select(table, formula)
        logger.debug("Recuperati %s record da '%s'", len(records), table)
        self.recorder.save_response(f"{table}_records", [r.model_dump() for r in records])
        return records

    async def get_projects_by_text_domain(self, text_domain: str) -> List[AirtableRecord]:
        """Recupera i progetti il cui campo "text domain" è uguale a text_domain."""
        logger.debug("Recupero del progetto con text domain: %s", text_domain)
        formula = f"{{{TEXT_DOMAIN_FIELD}}}={quote_formula_string(text_domain)}"
        records = await self._select(PROJECTS_TABLE, formula)
        self.recorder.save_response(
            f"project_{sanitize_filename(text_domain)}", {"records": [r.model_dump() for r in records]}
        )
        return records

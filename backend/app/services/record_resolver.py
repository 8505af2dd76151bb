"""
Service Layer per la risoluzione del Preventivo
Progetto: Generatore Preventivi PDF

Dato un text domain, recupera il progetto da Airtable e risolve i record
collegati (cliente, lavorazioni, sottoscrizioni, dati del fornitore).

Regole:
- nessun progetto -> NotFoundError
- più progetti con lo stesso text domain -> vince il primo
- liste di ID non valide -> trattate come vuote
- errori sulle ricerche secondarie -> lista vuota (solo log)
- dati del fornitore: strategie in ordine, vince la prima che trova un record
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from app.core.exceptions import NotFoundError, UpstreamError
from app.schemas.preventivo import AirtableRecord, ResolvedQuote
from app.services.airtable_gateway import (
    ACCOUNTS_TABLE,
    CLIENTS_TABLE,
    PERSONAL_TABLE,
    TASKS_TABLE,
    AirtableGateway,
)

logger = logging.getLogger(__name__)

# Campi link del progetto verso le tabelle collegate
CLIENT_LINK_FIELD = "cliente"
TASKS_LINK_FIELD = "tasks"
ACCOUNTS_LINK_FIELD = "accounts"
PERSONAL_LINK_FIELD = "personal"

# Strategia di risoluzione: restituisce i campi del record, oppure None
PersonalStrategy = Callable[[AirtableRecord], Awaitable[Optional[Dict[str, Any]]]]


def extract_id_list(fields: Dict[str, Any], name: str) -> List[str]:
    """
    Estrae una lista di ID da un campo link.

    Qualsiasi valore che non sia una lista di stringhe (es. uno scalare
    restituito per un link singolo) viene trattato come lista vuota.
    """
    value = fields.get(name)
    if not isinstance(value, list):
        return []
    if not all(isinstance(item, str) for item in value):
        return []
    return list(value)


class QuoteResolver:
    """
    Risolve un text domain nel ResolvedQuote completo.

    Usage:
        resolver = QuoteResolver(gateway)
        quote = await resolver.resolve("casawa")
    """

    def __init__(
        self,
        gateway: AirtableGateway,
        personal_strategies: Optional[Sequence[PersonalStrategy]] = None,
    ) -> None:
        self.gateway = gateway
        if personal_strategies is None:
            personal_strategies = (self.linked_personal, self.first_personal)
        self.personal_strategies = list(personal_strategies)

    async def get_project(self, text_domain: str) -> AirtableRecord:
        """
        Recupera il progetto per text domain.

        Raises:
            NotFoundError: Se nessun progetto corrisponde
            UpstreamError: Se la chiamata ad Airtable fallisce
        """
        projects = await self.gateway.get_projects_by_text_domain(text_domain)
        if not projects:
            raise NotFoundError(f"No project found for text domain: {text_domain}")
        if len(projects) > 1:
            logger.warning(
                "Trovati %s progetti con text domain '%s': uso il primo (%s)",
                len(projects), text_domain, projects[0].id,
            )
        return projects[0]

    async def _fetch_linked(self, table: str, record_ids: List[str]) -> List[AirtableRecord]:
        """Ricerca secondaria: in caso di errore restituisce lista vuota."""
        try:
            return await self.gateway.get_records_by_ids(table, record_ids)
        except UpstreamError as e:
            logger.error("Errore nel recupero dei record da '%s': %s", table, e.detail)
            return []

    # ------------------------------------------------------------
    # Strategie per i dati del fornitore
    # ------------------------------------------------------------

    async def linked_personal(self, project: AirtableRecord) -> Optional[Dict[str, Any]]:
        """Primo record personal collegato al progetto."""
        ids = extract_id_list(project.fields, PERSONAL_LINK_FIELD)
        records = await self._fetch_linked(PERSONAL_TABLE, ids)
        return records[0].fields if records else None

    async def first_personal(self, project: AirtableRecord) -> Optional[Dict[str, Any]]:
        """Primo record della tabella personal, senza filtri."""
        try:
            records = await self.gateway.get_all_records(PERSONAL_TABLE)
        except UpstreamError as e:
            logger.error("Errore nel recupero della tabella '%s': %s", PERSONAL_TABLE, e.detail)
            return None
        return records[0].fields if records else None

    async def resolve_personal(self, project: AirtableRecord) -> Dict[str, Any]:
        """Applica le strategie in ordine; senza risultati restituisce {}."""
        for strategy in self.personal_strategies:
            fields = await strategy(project)
            if fields is not None:
                return dict(fields)
        logger.info("Nessun dato fornitore trovato per il progetto %s", project.id)
        return {}

    # ------------------------------------------------------------
    # Risoluzione completa
    # ------------------------------------------------------------

    async def resolve(self, text_domain: str) -> ResolvedQuote:
        """
        Risolve il preventivo completo per un text domain.

        Args:
            text_domain: Chiave leggibile del progetto

        Returns:
            ResolvedQuote con progetto, cliente, fornitore, lavorazioni e sottoscrizioni

        Raises:
            NotFoundError: Se il progetto non esiste
            UpstreamError: Se la ricerca del progetto fallisce
        """
        project = await self.get_project(text_domain)
        fields = project.fields
        logger.debug("Elaborazione del progetto %s", project.id)

        client_ids = extract_id_list(fields, CLIENT_LINK_FIELD)
        task_ids = extract_id_list(fields, TASKS_LINK_FIELD)
        account_ids = extract_id_list(fields, ACCOUNTS_LINK_FIELD)

        clients = await self._fetch_linked(CLIENTS_TABLE, client_ids)
        tasks = await self._fetch_linked(TASKS_TABLE, task_ids)
        accounts = await self._fetch_linked(ACCOUNTS_TABLE, account_ids)
        personal = await self.resolve_personal(project)

        logger.info(
            "Preventivo '%s' risolto: %s lavorazioni, %s sottoscrizioni, cliente %s",
            text_domain, len(tasks), len(accounts), "trovato" if clients else "assente",
        )

        return ResolvedQuote(
            text_domain=text_domain,
            project_id=project.id,
            project=dict(fields),
            client=dict(clients[0].fields) if clients else {},
            personal=personal,
            tasks=tasks,
            accounts=accounts,
        )

"""
Popolamento del template HTML del Preventivo
Progetto: Generatore Preventivi PDF

Sostituisce i segnaposto {{nome}} del template con i dati risolti,
genera le righe delle tabelle lavorazioni/sottoscrizioni, inserisce le
date di emissione e validità e aggiunge gli stili per la stampa.

Il template del preventivo supporta solo la sostituzione letterale dei
segnaposto; Jinja2 è usato esclusivamente per i frammenti delle righe.
"""

import logging
import os
import re
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Set

from jinja2 import Environment, FileSystemLoader

from app.core.config import TEMPLATES_DIR
from app.core.exceptions import ConfigurationError
from app.schemas.preventivo import AirtableRecord, ResolvedQuote
from app.services.formatters import NA, display_value, format_date_it, format_percentage

logger = logging.getLogger(__name__)

PLACEHOLDER_RE = re.compile(r"\{\{\s*([A-Za-z0-9_-]+)\s*\}\}")

ANTICIPO_PLACEHOLDER = "__anticipo_placeholder__"
ISSUE_DATE_ANCHOR = "data di emissione</p>"
VALID_UNTIL_ANCHOR = "valido fino al</p>"
CONTAINER_TAG = '<div id="container"'

ROW_HIGHLIGHT_CLASS = "bg-slate-100"

PLACEHOLDER_NAMES = frozenset({
    # Fornitore (intestazione)
    "fornitoreNome",
    "fornitoreIndirizzo",
    "fornitoreComune",
    "fornitorePiva",
    # Fornitore (footer)
    "footer-fornitoreNome",
    "footer-fornitoreIndirizzo",
    "footer-fornitoreComune",
    "footer-fornitorePaese",
    "footer-fornitorePiva",
    "footer-fornitoreIban",
    "footer-fornitoreMail",
    "footer-fornitoreSitoWeb",
    # Cliente
    "clienteNome",
    "clienteIndirizzo",
    "clienteComune",
    "clientePiva",
    # Progetto e costi
    "progettoTitolo",
    "progettoOggetto",
    "costoSviluppo",
    "costoRicorrente",
    "costoTotale",
    "migliorPrezzo",
    "scontistica",
    "tempiConsegna",
    "condizioniPagamento",
    # Tabelle
    "lavorazioniCorpo",
    "lavorazioniSubtotale",
    "sottoscrizioniCorpo",
    "sottoscrizioniSubtotale",
})

PRINT_STYLES = """
    <style>
      @page { margin: 0; }
      body { margin: 0; padding: 0; }
      * {
        -webkit-print-color-adjust: exact !important;
        print-color-adjust: exact !important;
      }
      .bg-slate-100 {
        background-color: #f1f5f9 !important;
      }
      .no-break { page-break-inside: avoid !important; }
    </style>
  """


def find_placeholders(template: str) -> Set[str]:
    """Restituisce i nomi dei segnaposto presenti nel template."""
    return set(PLACEHOLDER_RE.findall(template))


def load_template(path: str) -> str:
    """
    Legge il template HTML dal disco.

    Raises:
        ConfigurationError: Se il file non esiste o non è leggibile
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except OSError as e:
        raise ConfigurationError(f"Template del preventivo non leggibile: {path}") from e


def validate_template(template: str) -> None:
    """
    Verifica che ogni segnaposto del template abbia un valore.

    Raises:
        ConfigurationError: Se il template contiene segnaposto sconosciuti
    """
    unknown = sorted(find_placeholders(template) - PLACEHOLDER_NAMES)
    if unknown:
        tokens = ", ".join("{{%s}}" % name for name in unknown)
        raise ConfigurationError(
            f"Segnaposto del template senza valore: {tokens}",
            extra={"placeholders": unknown},
        )

    missing = PLACEHOLDER_NAMES - find_placeholders(template)
    if missing:
        logger.warning("Segnaposto non usati dal template: %s", ", ".join(sorted(missing)))


def insert_dates(html: str, today: date, validity_days: int = 30) -> str:
    """
    Inserisce data di emissione e data di validità dopo le rispettive etichette.

    Se un'etichetta manca nel template l'inserimento viene saltato.
    """
    issue_date = format_date_it(today)
    valid_until = format_date_it(today + timedelta(days=validity_days))

    html = html.replace(
        ISSUE_DATE_ANCHOR,
        f'data di emissione: <span class="font-semibold">{issue_date}</span></p>',
        1,
    )
    html = html.replace(
        VALID_UNTIL_ANCHOR,
        f'valido fino al: <span class="font-semibold">{valid_until}</span></p>',
        1,
    )
    return html


def substitute_placeholders(html: str, values: Dict[str, str]) -> str:
    """
    Sostituisce in un solo passaggio tutti i segnaposto {{nome}}.

    I segnaposto senza valore diventano "N/A"; i valori inseriti
    non vengono riesaminati.
    """
    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name not in values:
            logger.warning("Segnaposto senza valore: {{%s}}", name)
            return NA
        return values[name]

    return PLACEHOLDER_RE.sub(_replace, html)


def inject_print_styles(html: str) -> str:
    """Aggiunge gli stili di stampa prima di </head> e la classe no-break al container."""
    html = html.replace("</head>", f"{PRINT_STYLES}</head>", 1)
    html = html.replace(CONTAINER_TAG, f'{CONTAINER_TAG} class="no-break"', 1)
    return html


class TemplatePopulator:
    """
    Popola il template del preventivo con un ResolvedQuote.

    Usage:
        populator = TemplatePopulator()
        html = populator.populate(template, quote, today=date.today())
    """

    def __init__(self, validity_days: int = 30, env: Optional[Environment] = None) -> None:
        self.validity_days = validity_days
        self.env = env or Environment(
            loader=FileSystemLoader(os.path.join(TEMPLATES_DIR, "partials")),
            autoescape=False,
        )

    # ------------------------------------------------------------
    # Righe delle tabelle
    # ------------------------------------------------------------

    def render_task_rows(self, tasks: List[AirtableRecord]) -> str:
        """Righe della tabella lavorazioni; lista vuota -> riga informativa."""
        rows = [
            {
                "label": display_value(task.get("tasks")),
                "descrizione": display_value(task.get("descrizione"), ""),
                "lordo": display_value(task.get("lordo")),
            }
            for task in tasks
        ]
        template = self.env.get_template("lavorazioni_rows.html")
        return template.render(rows=rows, highlight_class=ROW_HIGHLIGHT_CLASS)

    def render_account_rows(self, accounts: List[AirtableRecord]) -> str:
        """Righe della tabella sottoscrizioni; lista vuota -> riga informativa."""
        rows = [
            {
                "servizio": display_value(account.get("servizio")),
                "tipologia": display_value(account.get("tipologia")),
                "descrizione": display_value(account.get("descrizione")),
                "importo": display_value(account.get("importo annuale")),
            }
            for account in accounts
        ]
        template = self.env.get_template("sottoscrizioni_rows.html")
        return template.render(rows=rows, highlight_class=ROW_HIGHLIGHT_CLASS)

    # ------------------------------------------------------------
    # Valori dei segnaposto
    # ------------------------------------------------------------

    @staticmethod
    def payment_terms(project: Dict[str, Any]) -> str:
        """Condizioni di pagamento con la clausola di anticipo composta."""
        terms = display_value(project.get("condizioni di pagamento"))
        anticipo_perc = display_value(project.get("anticipo perc"))
        anticipo = display_value(project.get("anticipo"))
        clause = f"<span>{format_percentage(anticipo_perc)} (€ {anticipo})</span>"
        terms = terms.replace(ANTICIPO_PLACEHOLDER, clause)
        return f'<span class="font-medium">Condizioni di pagamento:</span> {terms}'

    def placeholder_values(self, quote: ResolvedQuote) -> Dict[str, str]:
        """Mappa segnaposto -> testo per un preventivo risolto."""
        p = quote.personal
        c = quote.client
        project = quote.project

        fornitore_nome = display_value(p.get("nome e cognome"))
        fornitore_indirizzo = (
            f'{display_value(p.get("indirizzo (domicilio)"))} '
            f'{display_value(p.get("civico (domicilio)"), "")}'
        )
        fornitore_comune = (
            f'{display_value(p.get("CAP (domicilio)"))} - '
            f'{display_value(p.get("comune (domicilio)"))} '
            f'({display_value(p.get("provincia (domicilio)"))})'
        )
        fornitore_piva = display_value(p.get("p. IVA"))

        progetto_lordo = display_value(project.get("lordo"), "0")
        costi_annuali = display_value(project.get("costi annuali"), "0")

        return {
            "fornitoreNome": fornitore_nome,
            "fornitoreIndirizzo": fornitore_indirizzo,
            "fornitoreComune": fornitore_comune,
            "fornitorePiva": fornitore_piva,
            "footer-fornitoreNome": fornitore_nome,
            "footer-fornitoreIndirizzo": fornitore_indirizzo,
            "footer-fornitoreComune": fornitore_comune,
            "footer-fornitorePaese": display_value(p.get("paese (domicilio)")),
            "footer-fornitorePiva": fornitore_piva,
            "footer-fornitoreIban": display_value(p.get("IBAN")),
            "footer-fornitoreMail": display_value(p.get("email")),
            "footer-fornitoreSitoWeb": display_value(p.get("sito web")),
            "clienteNome": display_value(c.get("Nome e cognome / Ragione sociale")),
            "clienteIndirizzo": f'{display_value(c.get("indirizzo"))} {display_value(c.get("civico"))}',
            "clienteComune": (
                f'{display_value(c.get("CAP"))} {display_value(c.get("comune"))} '
                f'({display_value(c.get("provincia"))})'
            ),
            "clientePiva": display_value(c.get("p. IVA")),
            "progettoTitolo": display_value(project.get("progetto")),
            "progettoOggetto": display_value(project.get("oggetto")),
            "costoSviluppo": progetto_lordo,
            "costoRicorrente": costi_annuali,
            "costoTotale": display_value(project.get("lordo + costi"), "0"),
            "migliorPrezzo": display_value(project.get("miglior prezzo"), "0"),
            "scontistica": display_value(project.get("scontistica"), "0"),
            "tempiConsegna": (
                '<span class="font-medium">Tempi di consegna:</span> '
                f'{display_value(project.get("tempi di consegna"))}'
            ),
            "condizioniPagamento": self.payment_terms(project),
            "lavorazioniCorpo": self.render_task_rows(quote.tasks),
            "lavorazioniSubtotale": (
                '<p class="text-base px-4">SUBTOTALE:'
                f'<span class="text-2xl font-semibold"> € {progetto_lordo}</span></p>'
            ),
            "sottoscrizioniCorpo": self.render_account_rows(quote.accounts),
            "sottoscrizioniSubtotale": (
                '<p class="text-base px-4">SUBTOTALE:'
                f'<span class="text-2xl font-semibold">  € {costi_annuali}</span></p>'
            ),
        }

    # ------------------------------------------------------------
    # Popolamento
    # ------------------------------------------------------------

    def populate(self, template: str, quote: ResolvedQuote, today: Optional[date] = None) -> str:
        """
        Produce l'HTML finale del preventivo.

        Args:
            template: Template HTML con segnaposto {{nome}}
            quote: Dati risolti del preventivo
            today: Data di emissione (default: oggi)

        Returns:
            HTML pronto per il rendering
        """
        today = today or date.today()
        html = insert_dates(template, today, self.validity_days)
        html = substitute_placeholders(html, self.placeholder_values(quote))
        return inject_print_styles(html)

"""
Pytest configuration and fixtures per la pipeline del preventivo.

Gateway Airtable e renderer PDF sono sostituiti da fake in memoria:
nessun test richiede rete, credenziali o WeasyPrint.
"""

import hashlib
import os
from datetime import date
from typing import Dict, List, Optional, Set

import pytest
from fastapi.testclient import TestClient

from app.core.config import TEMPLATES_DIR, Settings, get_settings
from app.core.deps import get_preventivo_service
from app.core.exceptions import UpstreamError
from app.schemas.preventivo import AirtableRecord
from app.services.pdf_service import PdfRenderer
from app.services.preventivo_service import PreventivoService
from app.services.record_resolver import QuoteResolver
from app.services.template_populator import TemplatePopulator, load_template

TEMPLATE_PATH = os.path.join(TEMPLATES_DIR, "preventivo_template.html")
TODAY = date(2025, 3, 5)


# ============================================================
# Fake Gateway Airtable
# ============================================================


class FakeGateway:
    """Gateway in memoria con la stessa interfaccia di AirtableGateway."""

    def __init__(self, tables: Optional[Dict[str, List[AirtableRecord]]] = None,
                 failing_tables: Optional[Set[str]] = None):
        self.tables = tables or {}
        self.failing_tables = failing_tables or set()
        self.calls: List[tuple] = []
        self.closed = False

    def _check(self, table: str) -> None:
        if table in self.failing_tables:
            raise UpstreamError(f"Tabella {table} non raggiungibile")

    async def get_all_records(self, table: str) -> List[AirtableRecord]:
        self.calls.append(("all", table))
        self._check(table)
        return list(self.tables.get(table, []))

    async def get_records_by_ids(self, table: str, record_ids: List[str]) -> List[AirtableRecord]:
        if not record_ids:
            return []
        self.calls.append(("ids", table, tuple(record_ids)))
        self._check(table)
        return [r for r in self.tables.get(table, []) if r.id in record_ids]

    async def get_projects_by_text_domain(self, text_domain: str) -> List[AirtableRecord]:
        self.calls.append(("projects", text_domain))
        self._check("progetti")
        return [
            r for r in self.tables.get("progetti", [])
            if r.fields.get("text domain") == text_domain
        ]

    async def aclose(self) -> None:
        self.closed = True


# ============================================================
# Fake Renderer
# ============================================================


class HashRenderer(PdfRenderer):
    """Renderer finto: restituisce un hash del contenuto HTML."""

    def __init__(self):
        self.rendered: List[str] = []

    def render(self, html: str) -> bytes:
        self.rendered.append(html)
        return b"%PDF-fake " + hashlib.sha256(html.encode("utf-8")).hexdigest().encode()


# ============================================================
# Record di esempio
# ============================================================


def make_project(**fields) -> AirtableRecord:
    base = {
        "text domain": "casawa",
        "progetto": "Sito web Casawa",
        "oggetto": "Realizzazione sito vetrina",
        "lordo": 1500,
        "costi annuali": 120.5,
        "lordo + costi": 1620.5,
        "miglior prezzo": 1450,
        "scontistica": 50,
        "tempi di consegna": "30 giorni lavorativi",
        "condizioni di pagamento": "Anticipo del __anticipo_placeholder__ alla firma, saldo alla consegna",
        "anticipo perc": 0.3,
        "anticipo": 450,
        "cliente": ["recCli1"],
        "tasks": ["recTask1", "recTask2"],
        "accounts": [],
        "personal": ["recPers1"],
    }
    base.update(fields)
    return AirtableRecord(id=base.pop("id", "recProj1"), fields=base)


@pytest.fixture
def project_record():
    return make_project()


@pytest.fixture
def client_record():
    return AirtableRecord(id="recCli1", fields={
        "Nome e cognome / Ragione sociale": "Casawa S.r.l.",
        "indirizzo": "Via Roma",
        "civico": "1",
        "CAP": "00100",
        "comune": "Roma",
        "provincia": "RM",
        "paese": "Italia",
        "p. IVA": "IT12345678901",
    })


@pytest.fixture
def task_records():
    return [
        AirtableRecord(id="recTask1", fields={"tasks": "Design", "descrizione": "Mockup grafici", "lordo": 600}),
        AirtableRecord(id="recTask2", fields={"tasks": "Sviluppo", "descrizione": "Frontend e CMS", "lordo": 900}),
    ]


@pytest.fixture
def account_records():
    return [
        AirtableRecord(id="recAcc1", fields={
            "servizio": "Hosting", "tipologia": "infrastruttura",
            "descrizione": "Hosting condiviso", "importo annuale": 80,
        }),
        AirtableRecord(id="recAcc2", fields={
            "servizio": "Dominio", "tipologia": "dns",
            "descrizione": "casawa.it", "importo annuale": 20,
        }),
        AirtableRecord(id="recAcc3", fields={
            "servizio": "Backup", "tipologia": "servizio",
            "descrizione": "Backup giornaliero", "importo annuale": 20.5,
        }),
    ]


@pytest.fixture
def personal_records():
    return [
        AirtableRecord(id="recPers0", fields={"nome e cognome": "Fornitore Generico"}),
        AirtableRecord(id="recPers1", fields={
            "nome e cognome": "Mario Rossi",
            "indirizzo (domicilio)": "Via Milano",
            "civico (domicilio)": "10",
            "CAP (domicilio)": "20100",
            "comune (domicilio)": "Milano",
            "provincia (domicilio)": "MI",
            "paese (domicilio)": "Italia",
            "p. IVA": "IT98765432109",
            "IBAN": "IT60X0542811101000000123456",
            "email": "mario@example.com",
            "sito web": "https://example.com",
        }),
    ]


@pytest.fixture
def tables(project_record, client_record, task_records, account_records, personal_records):
    return {
        "progetti": [project_record],
        "clienti": [client_record],
        "tasks": task_records,
        "accounts": account_records,
        "personal": personal_records,
    }


@pytest.fixture
def fake_gateway(tables):
    return FakeGateway(tables)


@pytest.fixture
def template():
    return load_template(TEMPLATE_PATH)


@pytest.fixture
def populator():
    return TemplatePopulator(validity_days=30)


@pytest.fixture
def renderer():
    return HashRenderer()


@pytest.fixture
def service(fake_gateway, populator, renderer, template):
    return PreventivoService(
        resolver=QuoteResolver(fake_gateway),
        populator=populator,
        renderer=renderer,
        template=template,
        render_timeout=5,
    )


# ============================================================
# Client HTTP
# ============================================================


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, default_text_domain="casawa")


@pytest.fixture
def api_client(service, test_settings):
    """TestClient con service e settings sostituiti (lifespan non eseguito)."""
    from app.main import app

    app.dependency_overrides[get_preventivo_service] = lambda: service
    app.dependency_overrides[get_settings] = lambda: test_settings
    yield TestClient(app)
    app.dependency_overrides.clear()

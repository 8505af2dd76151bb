"""
Unit tests per il QuoteResolver.
"""

import pytest

from app.core.exceptions import NotFoundError, UpstreamError
from app.schemas.preventivo import AirtableRecord
from app.services.record_resolver import QuoteResolver, extract_id_list

from tests.conftest import FakeGateway, make_project


# ============================================================
# Tests for extract_id_list
# ============================================================


class TestExtractIdList:
    """Tests per l'estrazione delle liste di ID dai campi link."""

    def test_list_of_ids(self):
        assert extract_id_list({"tasks": ["rec1", "rec2"]}, "tasks") == ["rec1", "rec2"]

    @pytest.mark.parametrize("value", [None, "rec1", 3, {"id": "rec1"}, [1, 2]])
    def test_invalid_values_become_empty(self, value):
        """Test valori scalari o non stringa trattati come lista vuota."""
        assert extract_id_list({"tasks": value}, "tasks") == []

    def test_missing_field(self):
        assert extract_id_list({}, "tasks") == []


# ============================================================
# Tests for project lookup
# ============================================================


class TestProjectLookup:
    """Tests per la ricerca del progetto."""

    @pytest.mark.asyncio
    async def test_not_found(self, fake_gateway):
        resolver = QuoteResolver(fake_gateway)
        with pytest.raises(NotFoundError) as exc_info:
            await resolver.resolve("inesistente")
        assert "inesistente" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_duplicate_text_domain_takes_first(self, tables):
        tables["progetti"] = [
            make_project(id="recProjA", progetto="Primo"),
            make_project(id="recProjB", progetto="Secondo"),
        ]
        quote = await QuoteResolver(FakeGateway(tables)).resolve("casawa")
        assert quote.project_id == "recProjA"
        assert quote.project["progetto"] == "Primo"

    @pytest.mark.asyncio
    async def test_project_lookup_error_propagates(self, tables):
        gateway = FakeGateway(tables, failing_tables={"progetti"})
        with pytest.raises(UpstreamError):
            await QuoteResolver(gateway).resolve("casawa")


# ============================================================
# Tests for linked records
# ============================================================


class TestLinkedRecords:
    """Tests per la risoluzione dei record collegati."""

    @pytest.mark.asyncio
    async def test_full_resolution(self, fake_gateway):
        quote = await QuoteResolver(fake_gateway).resolve("casawa")
        assert quote.text_domain == "casawa"
        assert quote.client["Nome e cognome / Ragione sociale"] == "Casawa S.r.l."
        assert [t.id for t in quote.tasks] == ["recTask1", "recTask2"]
        assert quote.accounts == []
        assert quote.base_filename == "preventivo_casawa"

    @pytest.mark.asyncio
    async def test_empty_lists_issue_no_lookup(self, fake_gateway):
        await QuoteResolver(fake_gateway).resolve("casawa")
        assert not any(call[:2] == ("ids", "accounts") for call in fake_gateway.calls)

    @pytest.mark.asyncio
    async def test_scalar_link_treated_as_empty(self, tables):
        tables["progetti"] = [make_project(tasks="recTask1", cliente=None)]
        quote = await QuoteResolver(FakeGateway(tables)).resolve("casawa")
        assert quote.tasks == []
        assert quote.client == {}

    @pytest.mark.asyncio
    async def test_secondary_lookup_error_degrades(self, tables):
        """Test errori sulle tabelle collegate producono liste vuote."""
        gateway = FakeGateway(tables, failing_tables={"tasks", "clienti"})
        quote = await QuoteResolver(gateway).resolve("casawa")
        assert quote.tasks == []
        assert quote.client == {}
        assert quote.personal["nome e cognome"] == "Mario Rossi"

    @pytest.mark.asyncio
    async def test_only_first_client_used(self, tables, client_record):
        second = AirtableRecord(id="recCli2", fields={"Nome e cognome / Ragione sociale": "Altro"})
        tables["clienti"] = [client_record, second]
        tables["progetti"] = [make_project(cliente=["recCli1", "recCli2"])]
        quote = await QuoteResolver(FakeGateway(tables)).resolve("casawa")
        assert quote.client["Nome e cognome / Ragione sociale"] == "Casawa S.r.l."


# ============================================================
# Tests for supplier precedence
# ============================================================


class TestPersonalPrecedence:
    """Tests per la precedenza dei dati del fornitore."""

    @pytest.mark.asyncio
    async def test_linked_personal_wins(self, fake_gateway):
        quote = await QuoteResolver(fake_gateway).resolve("casawa")
        assert quote.personal["nome e cognome"] == "Mario Rossi"
        assert ("all", "personal") not in fake_gateway.calls

    @pytest.mark.asyncio
    async def test_falls_back_to_first_personal(self, tables):
        tables["progetti"] = [make_project(personal=[])]
        gateway = FakeGateway(tables)
        quote = await QuoteResolver(gateway).resolve("casawa")
        assert quote.personal["nome e cognome"] == "Fornitore Generico"
        assert ("all", "personal") in gateway.calls

    @pytest.mark.asyncio
    async def test_linked_id_not_found_falls_back(self, tables):
        tables["progetti"] = [make_project(personal=["recMissing"])]
        quote = await QuoteResolver(FakeGateway(tables)).resolve("casawa")
        assert quote.personal["nome e cognome"] == "Fornitore Generico"

    @pytest.mark.asyncio
    async def test_empty_when_nothing_found(self, tables):
        tables["progetti"] = [make_project(personal=[])]
        tables["personal"] = []
        quote = await QuoteResolver(FakeGateway(tables)).resolve("casawa")
        assert quote.personal == {}

    @pytest.mark.asyncio
    async def test_personal_table_error_yields_empty(self, tables):
        tables["progetti"] = [make_project(personal=[])]
        gateway = FakeGateway(tables, failing_tables={"personal"})
        quote = await QuoteResolver(gateway).resolve("casawa")
        assert quote.personal == {}

    @pytest.mark.asyncio
    async def test_custom_strategies_in_order(self, fake_gateway):
        async def no_match(project):
            return None

        async def fixed(project):
            return {"nome e cognome": "Strategia fissa"}

        resolver = QuoteResolver(fake_gateway, personal_strategies=[no_match, fixed])
        quote = await resolver.resolve("casawa")
        assert quote.personal == {"nome e cognome": "Strategia fissa"}

"""
Service Layer per la generazione del Preventivo PDF
Progetto: Generatore Preventivi PDF

Pipeline sequenziale: text domain -> Airtable -> dati risolti ->
HTML popolato -> PDF. Nessuno stato condiviso tra richieste oltre al
template caricato all'avvio e al client Airtable del gateway.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional, Tuple

from app.core.config import Settings
from app.core.debug import DebugRecorder
from app.core.exceptions import AppException
from app.services.airtable_gateway import AirtableGateway
from app.services.formatters import sanitize_filename
from app.services.pdf_service import PdfRenderer, WeasyPrintRenderer, render_pdf
from app.services.record_resolver import QuoteResolver
from app.services.template_populator import TemplatePopulator, load_template, validate_template

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedPdf:
    """PDF generato e nome file già sanificato (con estensione)."""

    content: bytes
    filename: str
    text_domain: str


class PreventivoService:
    """
    Orchestratore della pipeline del preventivo.

    Le dipendenze sono costruite una volta all'avvio (vedi app.main)
    e passate esplicitamente; nei test si sostituiscono con fake.
    """

    def __init__(
        self,
        resolver: QuoteResolver,
        populator: TemplatePopulator,
        renderer: PdfRenderer,
        template: str,
        recorder: Optional[DebugRecorder] = None,
        render_timeout: float = 60.0,
    ) -> None:
        validate_template(template)
        self.resolver = resolver
        self.populator = populator
        self.renderer = renderer
        self.template = template
        self.recorder = recorder or DebugRecorder()
        self.render_timeout = render_timeout

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        gateway: Optional[AirtableGateway] = None,
        renderer: Optional[PdfRenderer] = None,
        recorder: Optional[DebugRecorder] = None,
    ) -> "PreventivoService":
        """
        Costruisce il service dalle impostazioni.

        Raises:
            ConfigurationError: Se il template non è leggibile o non è valido
        """
        recorder = recorder or DebugRecorder.from_settings(settings)
        gateway = gateway or AirtableGateway.from_settings(settings, recorder=recorder)
        return cls(
            resolver=QuoteResolver(gateway),
            populator=TemplatePopulator(validity_days=settings.quote_validity_days),
            renderer=renderer or WeasyPrintRenderer(max_height_mm=settings.pdf_max_height_mm),
            template=load_template(settings.template_path),
            recorder=recorder,
            render_timeout=settings.render_timeout_seconds,
        )

    async def build_html(self, text_domain: str, today: Optional[date] = None) -> Tuple[str, str]:
        """
        Risolve il preventivo e popola il template.

        Returns:
            Tuple di (HTML popolato, nome file base senza estensione)

        Raises:
            NotFoundError: Se il progetto non esiste
            UpstreamError: Se la ricerca del progetto fallisce
        """
        logger.info("Generazione preventivo per text domain: %s", text_domain)
        quote = await self.resolver.resolve(text_domain)
        self.recorder.save_template(sanitize_filename(text_domain), quote.model_dump())

        html = self.populator.populate(self.template, quote, today=today)
        base_filename = sanitize_filename(quote.base_filename)
        self.recorder.save_populated_html(base_filename, html)
        return html, base_filename

    async def generate_pdf(self, text_domain: str, today: Optional[date] = None) -> GeneratedPdf:
        """
        Esegue l'intera pipeline e restituisce il PDF.

        Raises:
            AppException: NotFoundError, UpstreamError, RenderError o ConfigurationError
        """
        try:
            html, base_filename = await self.build_html(text_domain, today=today)
            pdf_bytes = await render_pdf(self.renderer, html, timeout=self.render_timeout)
        except AppException as e:
            logger.error("Generazione del preventivo '%s' fallita: %s", text_domain, e.detail)
            self.recorder.save_error(f"Error generating PDF for {text_domain}", e)
            raise

        logger.info("PDF generato: %s.pdf (%s bytes)", base_filename, len(pdf_bytes))
        return GeneratedPdf(
            content=pdf_bytes,
            filename=f"{base_filename}.pdf",
            text_domain=text_domain,
        )

    async def aclose(self) -> None:
        """Rilascia le risorse del gateway (client HTTP)."""
        await self.resolver.gateway.aclose()

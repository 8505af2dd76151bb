"""
Service per il rendering PDF con WeasyPrint.
Progetto: Generatore Preventivi PDF

Produce un PDF a pagina singola largo 210mm (A4) la cui altezza segue
quella del contenuto, con sfondi inclusi e margini a zero.
"""

import asyncio
import logging
import math
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from app.core.exceptions import RenderError

logger = logging.getLogger(__name__)

PAGE_WIDTH_MM = 210
A4_HEIGHT_MM = 297.0
DEFAULT_MAX_HEIGHT_MM = 5080.0
# 1px CSS = 1/96 di pollice
MM_PER_PX = 25.4 / 96


# Lazy import of weasyprint to avoid startup errors if GTK libraries aren't available
def _get_weasyprint():
    """Lazy import of weasyprint to handle missing system libraries gracefully."""
    try:
        from weasyprint import CSS, HTML
        return HTML, CSS
    except (ImportError, OSError) as e:
        raise RenderError(
            "WeasyPrint dependencies not found. Please install weasyprint and Pango/GTK libraries"
        ) from e


def _page_css(height_mm: float) -> str:
    return (
        "@page { size: %smm %.2fmm !important; margin: 0 !important; }"
        % (PAGE_WIDTH_MM, height_mm)
    )


class PdfRenderer:
    """Interfaccia del renderer: render(html) -> bytes, oppure RenderError."""

    def render(self, html: str) -> bytes:
        raise NotImplementedError


class WeasyPrintRenderer(PdfRenderer):
    """
    Renderer basato su WeasyPrint.

    Esegue due passaggi di layout: il primo su una pagina alta quanto il
    massimo consentito per misurare il contenuto, il secondo con l'altezza
    misurata. Il rendering avviene nel processo corrente, senza browser.
    """

    def __init__(self, max_height_mm: float = DEFAULT_MAX_HEIGHT_MM, base_url: Optional[str] = None) -> None:
        self.max_height_mm = max_height_mm
        self.base_url = base_url

    def measure_height_mm(self, html: str) -> float:
        """Altezza del contenuto in mm, limitata a max_height_mm."""
        HTML, CSS = _get_weasyprint()
        document = HTML(string=html, base_url=self.base_url).render(
            stylesheets=[CSS(string=_page_css(self.max_height_mm))]
        )
        if len(document.pages) != 1:
            logger.warning(
                "Il contenuto supera l'altezza massima (%s pagine): uso %smm",
                len(document.pages), self.max_height_mm,
            )
            return self.max_height_mm

        try:
            root_box = document.pages[0]._page_box.all_children()[0]
            height_px = root_box.position_y + root_box.margin_height()
        except (AttributeError, IndexError):
            # Layout interno non disponibile: stima a multipli di A4
            a4_pages = HTML(string=html, base_url=self.base_url).render(
                stylesheets=[CSS(string=_page_css(A4_HEIGHT_MM))]
            ).pages
            return min(len(a4_pages) * A4_HEIGHT_MM, self.max_height_mm)

        height_mm = math.ceil(height_px * MM_PER_PX) + 1
        logger.debug("Dimensioni pagina: %smm x %smm", PAGE_WIDTH_MM, height_mm)
        return min(max(height_mm, 1.0), self.max_height_mm)

    def render(self, html: str) -> bytes:
        """
        Genera il PDF a pagina singola.

        Raises:
            RenderError: Se WeasyPrint non è disponibile o il layout fallisce
        """
        HTML, CSS = _get_weasyprint()
        try:
            height_mm = self.measure_height_mm(html)
            pdf_bytes = HTML(string=html, base_url=self.base_url).write_pdf(
                stylesheets=[CSS(string=_page_css(height_mm))]
            )
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(f"Errore nella generazione del PDF: {e}") from e

        if not pdf_bytes:
            raise RenderError("Il renderer ha prodotto un PDF vuoto")
        return pdf_bytes


async def render_pdf(renderer: PdfRenderer, html: str, timeout: float) -> bytes:
    """
    Esegue il renderer in un thread del pool con un timeout esplicito.

    Raises:
        RenderError: Se il rendering fallisce o supera il timeout
    """
    try:
        return await asyncio.wait_for(run_in_threadpool(renderer.render, html), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise RenderError(f"Rendering del PDF oltre il timeout di {timeout:g}s") from e

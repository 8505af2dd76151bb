"""
Router FastAPI per il Preventivo PDF
Progetto: Generatore Preventivi PDF

Un solo endpoint logico (GET o POST) che genera il PDF del preventivo.
Esposto su /api/v1/preventivi/pdf e sui percorsi storici
/, /api/generate-pdf e /generate-pdf (es. /?casawa).
"""

import logging
from typing import Any, Dict, Mapping, Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import Response

from app.core.deps import PreventivoServiceDep, SettingsDep
from app.schemas.preventivo import PdfErrorResponse, PdfRequest

# Logger per questo modulo
logger = logging.getLogger(__name__)

FALLBACK_TEXT_DOMAIN = "casawa"

# Parametri di query che non possono essere interpretati come text domain
RESERVED_QUERY_PARAMS = frozenset({"download", "domain", "textDomain"})

# Router con prefix e tag
router = APIRouter(
    prefix="/preventivi",
    tags=["Preventivi"],
)

# Router senza prefix per i percorsi storici
legacy_router = APIRouter(tags=["Preventivi"])


def resolve_text_domain(
    body: Mapping[str, Any],
    query: Mapping[str, str],
    default: Optional[str] = None,
) -> str:
    """
    Sceglie il text domain dalla richiesta.

    Ordine: body "domain" -> query "domain" -> query "textDomain" ->
    prima chiave della query (es. /?casawa) -> default configurato -> "casawa".
    """
    candidates = [body.get("domain"), query.get("domain"), query.get("textDomain")]
    candidates.append(next((key for key in query.keys() if key not in RESERVED_QUERY_PARAMS), None))
    candidates.append(default)

    for candidate in candidates:
        if isinstance(candidate, str) and candidate.strip():
            return candidate.strip()
    return FALLBACK_TEXT_DOMAIN


async def _read_body(request: Request) -> Dict[str, Any]:
    """Legge il corpo JSON delle richieste POST; corpo assente o non valido -> {}."""
    if request.method != "POST":
        return {}
    raw = await request.body()
    if not raw:
        return {}
    try:
        return PdfRequest.model_validate_json(raw).model_dump(exclude_none=True)
    except ValueError:
        logger.debug("Corpo della richiesta non interpretabile come JSON, ignorato")
        return {}


async def generate_preventivo_pdf(
    request: Request,
    service: PreventivoServiceDep,
    settings: SettingsDep,
) -> Response:
    """
    Genera il PDF del preventivo per il text domain richiesto.

    - `?download=1` forza il download (Content-Disposition: attachment)
    - gli errori vengono convertiti dagli exception handler in JSON con status 500
    """
    body = await _read_body(request)
    query = request.query_params
    text_domain = resolve_text_domain(body, query, settings.default_text_domain)

    generated = await service.generate_pdf(text_domain)

    disposition = "attachment" if query.get("download") == "1" else "inline"
    return Response(
        content=generated.content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'{disposition}; filename="{generated.filename}"',
            "Cache-Control": "no-store",
        },
    )


_ENDPOINT_OPTIONS = dict(
    methods=["GET", "POST"],
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={
        200: {"content": {"application/pdf": {}}, "description": "PDF del preventivo"},
        500: {"model": PdfErrorResponse, "description": "Errore nella generazione"},
    },
)

router.add_api_route(
    "/pdf",
    generate_preventivo_pdf,
    name="preventivo_pdf",
    summary="Genera il PDF del preventivo",
    **_ENDPOINT_OPTIONS,
)

_LEGACY_PATHS = {
    "/": "preventivo_pdf_root",
    "/api/generate-pdf": "preventivo_pdf_api_legacy",
    "/generate-pdf": "preventivo_pdf_legacy",
}

for _path, _name in _LEGACY_PATHS.items():
    legacy_router.add_api_route(
        _path,
        generate_preventivo_pdf,
        name=_name,
        include_in_schema=False,
        **_ENDPOINT_OPTIONS,
    )

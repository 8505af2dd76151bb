import asyncio
import os
import sys

# Aggiungi backend/ alla PYTHONPATH per importare app.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from app.core.config import get_settings
from app.core.exceptions import AppException
from app.services.preventivo_service import PreventivoService


async def generate(text_domain: str) -> int:
    settings = get_settings()
    service = PreventivoService.from_settings(settings)
    print(f"Generazione del preventivo per text domain: {text_domain}")
    try:
        generated = await service.generate_pdf(text_domain)
    except AppException as e:
        print(f"❌ Errore: {e.detail}")
        return 1
    finally:
        await service.aclose()

    os.makedirs(settings.debug_directory, exist_ok=True)
    pdf_path = os.path.join(settings.debug_directory, generated.filename)
    with open(pdf_path, "wb") as fh:
        fh.write(generated.content)
    print(f"✅ PDF generato: {pdf_path}")
    return 0

if __name__ == "__main__":
    domain = sys.argv[1] if len(sys.argv) > 1 else get_settings().default_text_domain
    sys.exit(asyncio.run(generate(domain)))

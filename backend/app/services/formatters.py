"""
Formattazione dei campi del preventivo
Progetto: Generatore Preventivi PDF

Funzioni pure che convertono i valori grezzi di Airtable
(percentuali, importi, date) in stringhe per il template.
"""

import math
import re
from datetime import date
from typing import Any, Optional

NA = "N/A"

MESI = [
    "Gennaio", "Febbraio", "Marzo", "Aprile", "Maggio", "Giugno",
    "Luglio", "Agosto", "Settembre", "Ottobre", "Novembre", "Dicembre",
]

# Numero iniziale di una stringa, come lo legge parseFloat
_LEADING_NUMBER_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")

_LINE_BREAKS_RE = re.compile(r"[\r\n]+")
_UNSAFE_FILENAME_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]")
MAX_FILENAME_LENGTH = 120


def _is_missing(value: Any) -> bool:
    """Valori che il template tratta come assenti."""
    if value is None or value is False:
        return True
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _number_to_str(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def display_value(value: Any, default: str = NA) -> str:
    """
    Converte un valore grezzo di Airtable nel testo da inserire nel template.

    None, stringa vuota, 0, False e liste vuote diventano ``default``.
    I float interi vengono stampati senza parte decimale (1500.0 -> "1500"),
    le liste (campi lookup) vengono unite con la virgola.
    """
    if _is_missing(value):
        return default
    if value is True:
        return "true"
    if isinstance(value, (int, float)):
        return _number_to_str(value)
    if isinstance(value, (list, tuple)):
        return ",".join(display_value(item, "") for item in value)
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """
    Legge il numero iniziale di un valore.

    Restituisce None se il valore non inizia con un numero
    ("25 euro" -> 25.0, "abc" -> None).
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return None if isinstance(value, float) and math.isnan(value) else float(value)
    if isinstance(value, (list, tuple)):
        if len(value) != 1:
            return None
        return parse_number(value[0])
    match = _LEADING_NUMBER_RE.match(str(value))
    if not match:
        return None
    return float(match.group(0))


def round_half_up(value: float) -> int:
    """Arrotonda all'intero più vicino, con le metà verso +infinito."""
    return int(math.floor(value + 0.5))


def format_percentage(value: Any) -> str:
    """
    Formatta un valore percentuale.

    - "N/A" e valori che contengono già "%" restano invariati
    - valori non numerici restano invariati
    - valori < 1 sono frazioni: 0.25 -> "25%"
    - valori >= 1 sono già punti percentuali: 30 -> "30%"
    """
    if value == NA:
        return NA

    text = display_value(value, "")
    if "%" in text:
        return text

    num = parse_number(value)
    if num is None:
        return text

    if num < 1:
        return f"{round_half_up(num * 100)}%"
    return f"{round_half_up(num)}%"


def format_date_it(value: date) -> str:
    """Formatta una data come "<giorno> <Mese> <anno>" (es. "5 Marzo 2025")."""
    return f"{value.day} {MESI[value.month - 1]} {value.year}"


def sanitize_filename(name: str) -> str:
    """
    Rende sicuro un nome file per l'header Content-Disposition.

    Rimuove gli a capo, sostituisce i caratteri fuori da [A-Za-z0-9._-]
    con "_", tronca a 120 caratteri e ricade su "preventivo" se vuoto.
    Applicarla due volte dà lo stesso risultato.
    """
    cleaned = _LINE_BREAKS_RE.sub("", name or "")
    cleaned = _UNSAFE_FILENAME_CHARS_RE.sub("_", cleaned)
    cleaned = cleaned[:MAX_FILENAME_LENGTH]
    return cleaned or "preventivo"

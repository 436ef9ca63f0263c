"""
Keyword-table classification.

Every table is an ordered list of (pattern, label) pairs evaluated top to
bottom; the first match wins. Order is part of the behaviour: "agua" is
food before it is a utility, "celular" is a utility before it is a
purchase.

Category and destination matching runs on lower-cased, accent-stripped
text, so keywords are written without accents.
"""

import re
import unicodedata
from typing import Optional

DEFAULT_CATEGORY = "Otros"


def _keyword_pattern(*keywords: str) -> re.Pattern:
    """Match any keyword as a word, allowing a Spanish/English plural ending."""
    alternatives = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"\b(?:{alternatives})(?:s|es)?\b")


CATEGORY_RULES = [
    (
        _keyword_pattern(
            "comida", "almuerzo", "cena", "desayuno", "merienda", "restaurante",
            "restaurant", "hamburguesa", "pizza", "helado", "pan", "panaderia",
            "leche", "supermercado", "super", "verduleria", "carniceria", "kiosco",
            "cotto", "cotte", "grido", "mcdonald", "burger", "cafe", "medialuna",
            "tortilla", "coca", "cepita", "agua", "palito", "food", "lunch",
            "dinner", "grocery", "groceries", "coffee",
        ),
        "Alimentación",
    ),
    (
        _keyword_pattern(
            "taxi", "uber", "cabify", "nafta", "combustible", "estacion",
            "estacionamiento", "peaje", "colectivo", "subte", "bondi", "remis",
            "tren", "avion", "bus", "fuel", "parking",
        ),
        "Transporte",
    ),
    (
        _keyword_pattern(
            "alquiler", "expensa", "luz", "gas", "internet", "cable", "telefono",
            "celular", "claro", "personal", "movistar", "edenor", "edesur",
            "metrogas", "aysa", "rent",
        ),
        "Servicios",
    ),
    (
        _keyword_pattern(
            "gym", "gimnasio", "deporte", "futbol", "natacion", "club", "cine",
            "teatro", "streaming", "spotify", "netflix", "juego", "nintendo",
        ),
        "Entretenimiento",
    ),
    (
        _keyword_pattern(
            "medico", "farmacia", "hospital", "clinica", "medicamento", "salud",
            "prepaga", "obra social", "pharmacy",
        ),
        "Salud",
    ),
    (
        _keyword_pattern(
            "libro", "curso", "educacion", "universidad", "colegio", "escuela",
            "estudio", "diplomatura", "ipef",
        ),
        "Educación",
    ),
    (
        _keyword_pattern("transferencia", "transfer", "giro", "prestamo", "deuda", "devolucion"),
        "Transferencia",
    ),
    (
        _keyword_pattern("sueldo", "salario", "ingreso", "cobro", "salary"),
        "Ingresos",
    ),
    (
        _keyword_pattern(
            "inversion", "plazo fijo", "fci", "accion", "bono", "crypto", "btc",
            "bitcoin", "fima", "syp", "syp500", "cedear",
        ),
        "Inversiones",
    ),
    (
        _keyword_pattern(
            "ropa", "zapatilla", "meli", "mercadolibre", "amazon", "compra",
            "cargador", "electronica", "tecnologia",
        ),
        "Compras",
    ),
    (
        _keyword_pattern("limpieza", "jabon", "detergente", "punto limpio"),
        "Hogar",
    ),
]

# Matched against the original (accented) text, case-insensitively
ACCOUNT_RULES = [
    (re.compile(r"\bbbva\b", re.IGNORECASE), "BBVA"),
    (re.compile(r"\bgalicia\b", re.IGNORECASE), "Galicia"),
    (re.compile(r"\bsantander\b", re.IGNORECASE), "Santander"),
    (re.compile(r"\b(?:uala|ualá)\b", re.IGNORECASE), "Uala"),
    (re.compile(r"\b(?:mercadopago|mp)\b", re.IGNORECASE), "MercadoPago"),
    (re.compile(r"\b(?:efectivo|cash|plata)\b", re.IGNORECASE), "Efectivo"),
    (re.compile(r"\blemon\b", re.IGNORECASE), "Lemon"),
    (re.compile(r"\bbrubank\b", re.IGNORECASE), "Brubank"),
    (re.compile(r"\b(?:reba|rebanking)\b", re.IGNORECASE), "Reba"),
]

KNOWN_DESTINATIONS = [
    (_keyword_pattern("amazon"), "Amazon"),
    (_keyword_pattern("meli", "mercadolibre", "mercado libre"), "MercadoLibre"),
    (_keyword_pattern("grido"), "Grido"),
    (_keyword_pattern("kiosco"), "Kiosco"),
    (_keyword_pattern("taxi"), "Taxi"),
    (_keyword_pattern("uber"), "Uber"),
    (_keyword_pattern("cabify"), "Cabify"),
    (_keyword_pattern("nintendo"), "Nintendo"),
    (_keyword_pattern("cotte", "cotto"), "Cotto"),
    (_keyword_pattern("netflix"), "Netflix"),
    (_keyword_pattern("spotify"), "Spotify"),
    (_keyword_pattern("wild area"), "Wild Area"),
]

# "pago a juan", "sent to maria"
EXPLICIT_DESTINATION_RE = re.compile(r"\b(?:a|to|para)\s+([^\W\d_]+)", re.IGNORECASE)
DESTINATION_STOP_WORDS = {"el", "la", "los", "las", "un", "una", "the", "mi", "my"}

# Bilingual label -> canonical (lower-case) category name
CATEGORY_SYNONYMS = {
    "alimentación": "alimentación",
    "alimentacion": "alimentación",
    "comida": "alimentación",
    "food": "alimentación",
    "transporte": "transporte",
    "transport": "transporte",
    "vivienda": "vivienda",
    "housing": "vivienda",
    "servicios": "servicios",
    "services": "servicios",
    "utilities": "servicios",
    "salud": "salud",
    "health": "salud",
    "entretenimiento": "entretenimiento",
    "entertainment": "entretenimiento",
    "educación": "educación",
    "educacion": "educación",
    "education": "educación",
    "compras": "compras",
    "shopping": "compras",
    "transferencia": "transferencia",
    "transfer": "transferencia",
    "ingresos": "ingresos",
    "income": "ingresos",
    "inversiones": "inversiones",
    "investments": "inversiones",
    "hogar": "hogar",
    "home": "hogar",
    "otros": "otros",
    "other": "otros",
}


def normalize_text(text: str) -> str:
    """Lower-case and strip accents (Alimentación -> alimentacion)."""
    decomposed = unicodedata.normalize("NFKD", text.lower())
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def infer_category(text: str, default: str = DEFAULT_CATEGORY) -> str:
    """Category label of the first matching rule, or ``default``."""
    normalized = normalize_text(text)
    for pattern, category in CATEGORY_RULES:
        if pattern.search(normalized):
            return category
    return default


def extract_source_account(description: str) -> tuple[Optional[str], str]:
    """
    Find an account keyword in a description.

    Returns:
        (account label or None, description with the keyword removed)
    """
    for pattern, account in ACCOUNT_RULES:
        if pattern.search(description):
            cleaned = pattern.sub("", description, count=1)
            return account, " ".join(cleaned.split())
    return None, description


def infer_destination(text: str) -> Optional[str]:
    """Known merchant first, then an explicit "a/to/para <name>"; None if neither."""
    normalized = normalize_text(text)
    for pattern, destination in KNOWN_DESTINATIONS:
        if pattern.search(normalized):
            return destination

    for match in EXPLICIT_DESTINATION_RE.finditer(text):
        candidate = match.group(1)
        if candidate.lower() not in DESTINATION_STOP_WORDS:
            return candidate[:1].upper() + candidate[1:]
    return None

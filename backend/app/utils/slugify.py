"""
URL slug generation for products, categories, brands, campaigns and blog content
"""
import re
import unicodedata

# Characters NFKD does not decompose to ASCII
_TRANSLITERATION = str.maketrans({
    "ı": "i",
    "İ": "i",
    "ş": "s",
    "Ş": "s",
    "ğ": "g",
    "Ğ": "g",
    "ç": "c",
    "Ç": "c",
    "ö": "o",
    "Ö": "o",
    "ü": "u",
    "Ü": "u",
    "ß": "ss",
    "æ": "ae",
    "ø": "o",
})


def slugify(text) -> str:
    """
    Build a lowercase, dash-separated slug

    Examples:
        slugify("Kışlık Çizme")   -> "kislik-cizme"
        slugify("  Hello,  World! ") -> "hello-world"
    """
    if text is None:
        return ""

    value = str(text).translate(_TRANSLITERATION)
    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = value.lower().strip()
    value = re.sub(r"[\s_]+", "-", value)
    value = re.sub(r"[^a-z0-9-]", "", value)
    value = re.sub(r"-{2,}", "-", value)
    return value.strip("-")


def unique_slug(base: str, exists) -> str:
    """
    Append -2, -3, ... to base until exists(candidate) is False
    """
    candidate = base
    suffix = 2
    while exists(candidate):
        candidate = f"{base}-{suffix}"
        suffix += 1
    return candidate

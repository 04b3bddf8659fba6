"""
Promotional code generation

Codes use an alphabet without look-alike characters (no 0/O, 1/I).
"""
import re
import secrets
import time

SAFE_CHARACTERS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

GIFT_CARD_PREFIX = "GIFT"

# Characters customers commonly mistype
_SANITIZE_MAP = str.maketrans({
    "0": "O",
    "1": "I",
    "5": "S",
    "8": "B",
})


def generate_secure_code(length: int = 10) -> str:
    """Random code from SAFE_CHARACTERS using the OS CSPRNG"""
    return "".join(secrets.choice(SAFE_CHARACTERS) for _ in range(length))


def generate_gift_card_code() -> str:
    """GIFT + last 4 digits of the ms timestamp + 8 random characters"""
    timestamp = str(int(time.time() * 1000))[-4:]
    return f"{GIFT_CARD_PREFIX}{timestamp}{generate_secure_code(8)}"


def generate_coupon_code(prefix: str = "") -> str:
    random_part = generate_secure_code(8)
    if prefix:
        return f"{prefix.strip().upper()}-{random_part}"
    return random_part


def sanitize_code_input(code: str) -> str:
    """
    Normalize a code typed by a customer

    Whitespace is removed, lowercase l becomes I and the result is
    uppercased with 0->O, 1->I, 5->S, 8->B.
    """
    if not code:
        return ""
    cleaned = re.sub(r"\s+", "", code).replace("l", "I")
    return cleaned.upper().translate(_SANITIZE_MAP)

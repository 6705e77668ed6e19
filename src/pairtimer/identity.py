from typing import Optional

from pairtimer.exceptions import IdentifierError

PAIRING_SEPARATOR = "_"


def normalize_identifier(raw: Optional[str]) -> Optional[str]:
    if raw is None:
        return None
    token = raw.strip().upper()
    return token or None


def pairing_key(id_a: Optional[str], id_b: Optional[str]) -> Optional[str]:
    """Order-independent session key for two participants.

    Returns None when either identifier is missing or both name the same
    participant.
    """
    first = normalize_identifier(id_a)
    second = normalize_identifier(id_b)
    if not first or not second or first == second:
        return None
    return PAIRING_SEPARATOR.join(sorted((first, second)))


def require_identifier(raw: Optional[str], label: str = "a User ID") -> str:
    token = normalize_identifier(raw)
    if not token:
        raise IdentifierError(f"Please enter {label}.")
    return token

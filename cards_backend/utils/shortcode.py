"""
Short codes: the public identifiers in card share links.
"""
import logging
import secrets
import string
from typing import Callable, Optional

from cards_backend.errors import ShortCodeExhaustedError

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_letters + string.digits + "_-"
DEFAULT_LENGTH = 10
DEFAULT_MAX_ATTEMPTS = 5


# PUBLIC_INTERFACE
def generate_short_code(length: int = DEFAULT_LENGTH) -> str:
    """Draw a URL-safe code from a CSPRNG (64 symbols, ~6 bits each)."""
    if length < 1:
        raise ValueError("short code length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


# PUBLIC_INTERFACE
def generate_unique_short_code(
    exists: Callable[[str], bool],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    length: int = DEFAULT_LENGTH,
    generator: Optional[Callable[[int], str]] = None,
) -> str:
    """
    Return a code for which ``exists(code)`` is False.

    Draws a fresh candidate after every collision and raises
    ``ShortCodeExhaustedError`` once ``max_attempts`` candidates were taken.
    """
    generator = generator or generate_short_code
    for attempt in range(1, max_attempts + 1):
        code = generator(length)
        if not exists(code):
            return code
        logger.warning("short code collision (attempt %d/%d)", attempt, max_attempts)
    raise ShortCodeExhaustedError()

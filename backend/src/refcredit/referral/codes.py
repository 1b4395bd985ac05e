"""Referral code generation.

Codes are a name-derived prefix plus a random numeric block, e.g. ``JOHN4821``.
The generator is stateless; uniqueness is the caller's job, via
``generate_unique_code`` and an existence check against the account store.
"""

import re
import secrets
from typing import Callable

from refcredit.errors import CodeGenerationError
from refcredit.logging_config import get_logger
from refcredit.settings import settings

logger = get_logger(__name__)

PAD_CHAR = "X"


def generate_referral_code(
    name: str,
    prefix_length: int | None = None,
    digits: int | None = None,
) -> str:
    """Generate a candidate referral code from a display name.

    Non-alphanumeric characters are dropped, the rest uppercased and cut or
    padded to ``prefix_length``. The suffix never starts with zero, so it is
    always exactly ``digits`` wide.

    Args:
        name: Display name
        prefix_length: Prefix width (defaults to settings)
        digits: Numeric suffix width (defaults to settings)

    Returns:
        Uppercase code

    Raises:
        ValueError: If the widths cannot form a code
    """
    if prefix_length is None:
        prefix_length = settings.referral_code_prefix_length
    if digits is None:
        digits = settings.referral_code_digits
    if prefix_length < 0 or digits < 1:
        raise ValueError(f"Invalid referral code shape: prefix {prefix_length}, digits {digits}")

    prefix = re.sub(r"[^A-Za-z0-9]", "", name).upper()[:prefix_length]
    prefix = prefix.ljust(prefix_length, PAD_CHAR)

    low = 10 ** (digits - 1)
    number = low + secrets.randbelow(9 * low)
    return f"{prefix}{number}"


def generate_unique_code(
    name: str,
    exists: Callable[[str], bool],
    max_attempts: int | None = None,
) -> str:
    """Generate a code that ``exists`` reports as free.

    Args:
        name: Display name
        exists: Lookup returning True if a code is already taken
        max_attempts: Retry cap (defaults to settings)

    Returns:
        Unused code

    Raises:
        CodeGenerationError: If every attempt collided
    """
    if max_attempts is None:
        max_attempts = settings.referral_code_max_attempts

    for attempt in range(1, max_attempts + 1):
        code = generate_referral_code(name)
        if not exists(code):
            if attempt > 1:
                logger.info("referral_code_collisions", attempts=attempt, code=code)
            return code

    logger.error("referral_code_space_exhausted", name=name, attempts=max_attempts)
    raise CodeGenerationError(max_attempts)

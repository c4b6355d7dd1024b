"""Text normalization for free-text student interests."""
from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def normalize_interest(text: str, max_chars: int = 2000) -> str:
    """Prepare a student interest for the prompt.

    Strips leading/trailing whitespace and truncates to ``max_chars`` on a
    word boundary where possible. The text in between is sent as written.

    Args:
        text: Raw interest text from the request body
        max_chars: Upper bound on the returned length

    Returns:
        Trimmed text; empty if the input was blank
    """
    text = text.strip()

    if len(text) > max_chars:
        logger.info(f"Truncating interest text from {len(text)} to {max_chars} chars")
        cut = text[:max_chars]
        space = cut.rfind(' ')
        text = cut[:space].rstrip() if space > max_chars // 2 else cut

    return text

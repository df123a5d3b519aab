"""Canonicalization of raw ingredient text before embedding."""

DEFAULT_INSTRUCTION = "Prioriter match på titel og derefter description."


def clean_ingredient(raw: str | None) -> str:
    """Lowercase and trim an ingredient string. ``None`` becomes ``""``."""
    if not raw:
        return ""
    return raw.strip().lower()


def is_embeddable(raw: str | None) -> bool:
    """Return True when the ingredient has text left after trimming."""
    return bool(clean_ingredient(raw))


def normalize(
    raw: str | None,
    instructions: str | None = None,
    default_instruction: str = DEFAULT_INSTRUCTION,
) -> str:
    """
    Build the text that is embedded for an ingredient.

    The composed string is also the embedding cache key, so two requests for
    the same ingredient with different instructions never share a vector.

    Args:
        raw: Raw ingredient text as supplied by the caller.
        instructions: Optional free-text instructions from the caller.
        default_instruction: Fixed instruction that always leads the text.

    Returns:
        The composed embedding text. Callers should check ``is_embeddable``
        first; an empty ingredient is never sent for embedding.
    """
    ingredient = clean_ingredient(raw)
    extra = instructions.strip() if instructions else ""
    if extra:
        preamble = f"{default_instruction}\n\nAdditional instructions: {extra}"
    else:
        preamble = default_instruction
    return f"{preamble}\n\nIngredient: {ingredient}"

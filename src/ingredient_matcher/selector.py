"""Reduce ranked candidates to the response shape of each match mode."""

from ingredient_matcher.types import Candidate, MatchMode, MatchResult


def select(
    ingredients: list[str],
    results: dict[int, list[Candidate]],
    mode: MatchMode = "full",
    threshold: float = 0.95,
    top_k: int = 3,
) -> list[MatchResult]:
    """
    Build one MatchResult per ingredient, in input order.

    In ``full`` mode up to ``top_k`` candidates are kept as ranked. In
    ``best`` mode only the first candidate is kept, and only when its score
    is at least ``threshold``.
    """
    selected: list[MatchResult] = []
    for index, ingredient in enumerate(ingredients):
        candidates = results.get(index, [])
        if mode == "best":
            matches = candidates[:1] if candidates and candidates[0]["score"] >= threshold else []
        else:
            matches = list(candidates[:top_k])
        selected.append({"ingredient": ingredient, "matches": matches})
    return selected


def accepted_ids(selected: list[MatchResult]) -> list[str]:
    """Product ids of accepted matches in ingredient order. Duplicates are kept."""
    return [result["matches"][0]["id"] for result in selected if result["matches"]]

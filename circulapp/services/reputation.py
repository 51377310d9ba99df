"""Calcul de réputation / Reputation calculation."""


def reputation_from_ratings(ratings: list[int]) -> tuple[float, int]:
    """Moyenne arrondie à 1 décimale et nombre d'avis / Average rounded to 1 decimal and review count."""
    if not ratings:
        return 0.0, 0
    return round(sum(ratings) / len(ratings), 1), len(ratings)

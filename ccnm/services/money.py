# ccnm/services/money.py
"""
Arrondis monétaires.

Les montants annuels sont des euros entiers arrondis au demi supérieur
(1212,5 → 1213, -2,5 → -2). Les montants mensuels sont arrondis au centime
selon la même règle. Le `round()` natif (arrondi bancaire) n'est jamais utilisé.
"""
from __future__ import annotations

import math
from typing import Iterable


def round_half_up(x: float) -> int:
    """Euro entier le plus proche, demi vers +∞."""
    return int(math.floor(x + 0.5))


def round_cents(x: float) -> float:
    """Centime le plus proche, demi vers +∞."""
    return math.floor(x * 100 + 0.5) / 100


def sum_euros(values: Iterable[float]) -> int:
    """Somme exacte (fsum) puis arrondi à l'euro."""
    return round_half_up(math.fsum(values))

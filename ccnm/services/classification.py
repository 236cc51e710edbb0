# ccnm/services/classification.py
"""
Classification CCNM : six critères notés de 1 à 10, total de 6 à 60,
projeté sur un couple (groupe A..I, classe 1..18) via `mapping_points`.
"""
from __future__ import annotations

from typing import Any, List, Sequence
import logging

from ccnm.schemas import Classification, WorkerProfile
from ccnm.services.errors import InvalidInput
from ccnm.services.rules_catalog import load_convention

logger = logging.getLogger("ccnm")

NB_CRITERES = 6
SCORE_MIN, SCORE_MAX = 1, 10

DEFAULT_CLASSIFICATION = Classification(groupe="A", classe=1)


def _check_scores(scores: Any) -> List[int]:
    if not isinstance(scores, (list, tuple)) or len(scores) != NB_CRITERES:
        raise InvalidInput(f"{NB_CRITERES} scores attendus, reçu: {scores!r}")
    out: List[int] = []
    for i, s in enumerate(scores):
        if isinstance(s, bool) or not isinstance(s, int):
            raise InvalidInput(f"score #{i} non entier: {s!r}")
        if not SCORE_MIN <= s <= SCORE_MAX:
            raise InvalidInput(f"score #{i} hors bornes [{SCORE_MIN}, {SCORE_MAX}]: {s}")
        out.append(s)
    return out


def total_score(scores: Sequence[int]) -> int:
    """Total des six critères (6 à 60). Lève InvalidInput si la saisie est invalide."""
    return sum(_check_scores(scores))


def calculate_classification(scores: Sequence[int]) -> Classification:
    """
    Total des six scores → (groupe, classe).
    Lève InvalidInput si la saisie n'est pas exactement 6 entiers de 1 à 10.
    """
    total = total_score(scores)
    for lo, hi, groupe, classe in load_convention().mapping_points:
        if lo <= total <= hi:
            return Classification(groupe=groupe, classe=classe, total_score=total)
    # la grille couvre [6, 60] : inatteignable avec une saisie valide
    raise InvalidInput(f"total {total} hors grille")


def get_active_classification(profile: WorkerProfile) -> Classification:
    """Classification retenue : saisie manuelle ou calcul, dégradé en A1 si saisie invalide."""
    if profile.mode_manuel:
        return Classification(groupe=profile.groupe_manuel, classe=profile.classe_manuel)
    try:
        return calculate_classification(profile.scores)
    except InvalidInput as e:
        logger.warning("classification invalide, repli sur A1: %s", e)
        return DEFAULT_CLASSIFICATION


def is_cadre(classe: int) -> bool:
    """Statut cadre : classe ≥ seuil (11, groupes F à I)."""
    return classe >= load_convention().seuil_cadre


def get_classes_for_groupe(groupe: str) -> List[int]:
    return sorted({c for _, _, g, c in load_convention().mapping_points if g == groupe})


def mapping_gaps(mapping: Sequence[Sequence[Any]], lo: int = 6, hi: int = 60) -> List[str]:
    """
    Contrôle que les intervalles [min, max] partitionnent [lo, hi] :
    contigus, sans recouvrement, classes strictement croissantes.
    Retourne la liste des anomalies (vide si conforme).
    """
    errors: List[str] = []
    attendu = lo
    derniere_classe = 0
    for i, row in enumerate(mapping):
        try:
            a, b, _groupe, classe = row
        except (TypeError, ValueError):
            errors.append(f"ligne #{i}: [min, max, groupe, classe] attendu")
            continue
        if a != attendu:
            errors.append(f"ligne #{i}: début {a}, attendu {attendu}")
        if b < a:
            errors.append(f"ligne #{i}: max {b} < min {a}")
        if classe <= derniere_classe:
            errors.append(f"ligne #{i}: classe {classe} non croissante")
        attendu = b + 1
        derniere_classe = classe
    if attendu != hi + 1:
        errors.append(f"fin de grille {attendu - 1}, attendu {hi}")
    return errors

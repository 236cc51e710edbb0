# ccnm/services/forfaits.py
from __future__ import annotations

from typing import Optional
import logging

from ccnm.schemas import ComputeContext, ElementDef, ElementKind, ElementResult, RuleSource
from ccnm.services.money import round_half_up

logger = logging.getLogger("ccnm")

EMPTY = ElementResult()


def _taux_forfait(defn: ElementDef) -> Optional[float]:
    match defn.source:
        case RuleSource.CONVENTION:
            return float(defn.config["taux"])
        case RuleSource.ACCORD:
            # l'accord fixe son propre taux, même assiette que la CCN
            return float(defn.config["taux"])
    return None


def compute_forfait(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    """
    Majoration forfaitaire cadre : SMH de base × taux du forfait choisi.
    Ne s'applique que si le forfait du profil correspond à la définition.
    """
    if not isinstance(defn, ElementDef) or defn.kind is not ElementKind.FORFAIT:
        return EMPTY
    try:
        if defn.config["forfait"] != ctx.profile.forfait:
            return EMPTY
        taux = _taux_forfait(defn)
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("forfait %s ignoré (définition incohérente): %s", defn.id, e)
        return EMPTY
    if taux is None:
        return EMPTY
    return ElementResult(
        amount=round_half_up(ctx.base_smh * taux),
        label=defn.label,
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"taux": taux, "forfait": defn.config["forfait"]},
    )

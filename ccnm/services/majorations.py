# ccnm/services/majorations.py
"""
Majorations pour conditions de travail (nuit, dimanche).

Montant mensuel = heures × taux horaire × taux de majoration (arrondi au centime),
montant annuel = mensuel × 12 (arrondi à l'euro).
"""
from __future__ import annotations

from typing import Optional
import logging

from ccnm.schemas import (
    ComputeContext, ElementDef, ElementKind, ElementResult, RuleSource, SemanticId,
)
from ccnm.services.money import round_cents, round_half_up

logger = logging.getLogger("ccnm")

EMPTY = ElementResult()

# type de poste → clé du taux dans la définition accord
_POSTES_NUIT = {"poste-nuit": "poste_nuit", "poste-matin": "poste_matin"}


def _taux_nuit(defn: ElementDef, type_nuit: str) -> Optional[float]:
    match defn.source:
        case RuleSource.CONVENTION:
            # taux unique quel que soit le poste
            return defn.config["taux"]
        case RuleSource.ACCORD:
            return defn.config[_POSTES_NUIT[type_nuit]]
    return None


def _annuel(defn: ElementDef, heures: float, ctx: ComputeContext, taux: float, label: str) -> ElementResult:
    mensuel = round_cents(heures * ctx.taux_horaire * taux)
    return ElementResult(
        amount=round_half_up(mensuel * 12),
        label=label,
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"heures": heures, "taux": int(round(taux * 100)), "montant_mensuel": mensuel},
    )


def compute_majoration(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    """Montant annuel d'une majoration ; élément vide si non applicable ou définition incohérente."""
    if not isinstance(defn, ElementDef) or defn.kind is not ElementKind.MAJORATION:
        return EMPTY
    profile = ctx.profile
    try:
        if defn.semantic_id == SemanticId.MAJORATION_NUIT:
            if profile.type_nuit == "aucun" or profile.heures_nuit <= 0:
                return EMPTY
            taux = _taux_nuit(defn, profile.type_nuit)
            if taux is None:
                return EMPTY
            label = f"{defn.label} ({profile.heures_nuit:g}h/mois)"
            if defn.source is RuleSource.ACCORD:
                label = f"{defn.label} {profile.type_nuit} (+{int(round(taux * 100))}%) ({profile.heures_nuit:g}h/mois)"
            return _annuel(defn, profile.heures_nuit, ctx, taux, label)
        if defn.semantic_id == SemanticId.MAJORATION_DIMANCHE:
            if profile.heures_dimanche <= 0:
                return EMPTY
            label = f"{defn.label} ({profile.heures_dimanche:g}h/mois)"
            return _annuel(defn, profile.heures_dimanche, ctx, defn.config["taux"], label)
    except (KeyError, TypeError, ValueError) as e:
        logger.debug("majoration %s ignorée (définition incohérente): %s", defn.id, e)
    return EMPTY

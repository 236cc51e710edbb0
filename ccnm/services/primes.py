# ccnm/services/primes.py
"""
Calcul des primes (ancienneté CCN / accord, primes horaires, primes forfaitaires).

- Ancienneté CCN (Art. 142, Annexe 7) : Point × Taux(classe) × Années × 12
- Ancienneté accord : Salaire de base × Taux(barème), majoré pour les cadres au forfait jours
- Prime horaire : taux €/h × heures mensuelles, arrondi au centime, puis × 12
- Prime forfaitaire : montant fixe, soumis à éventuelle condition d'ancienneté

Une définition incohérente ne lève jamais : elle produit un élément vide.
"""
from __future__ import annotations

from bisect import bisect_right
from datetime import date
from typing import Any, Optional, Sequence, Tuple
import logging

from pydantic import ValidationError

from ccnm.schemas import (
    ComputeContext, ConditionAnciennete, ElementDef, ElementKind, ElementResult,
    PrimeAccord, RuleSource, SemanticId, ValueKind, WorkerProfile,
)
from ccnm.services.agreements import get_prime_heures, get_prime_value, is_prime_active
from ccnm.services.dates import full_years_between
from ccnm.services.money import round_cents, round_half_up

logger = logging.getLogger("ccnm")

EMPTY = ElementResult()


def lookup_bareme(bareme: Sequence[Tuple[float, float]], annees: float) -> float:
    """Taux du palier le plus élevé ≤ années (0 sous le premier palier)."""
    paliers = sorted(bareme)
    i = bisect_right([k for k, _ in paliers], annees)
    return paliers[i - 1][1] if i else 0.0


def condition_anciennete_remplie(
    condition: Optional[ConditionAnciennete],
    profile: WorkerProfile,
    as_of: Optional[date] = None,
) -> bool:
    """
    Éligibilité binaire d'une prime forfaitaire.
    'annees_revolues' avec date de référence (ex. 1 an au 1er juin) : évaluée à cette
    date de l'année de calcul si la date d'embauche est connue, sinon sur l'ancienneté saisie.
    """
    if condition is None or condition.type in ("aucune", "proratise"):
        return True
    requis = float(condition.annees or 0)
    anciennete = float(profile.anciennete)
    if condition.date_reference and profile.date_embauche and as_of:
        mois, jour = (int(x) for x in condition.date_reference.split("-"))
        anciennete = full_years_between(profile.date_embauche, date(as_of.year, mois, jour))
    return anciennete >= requis


def _zero(defn: ElementDef, **meta: Any) -> ElementResult:
    return ElementResult(amount=0, label=defn.label, source=defn.source,
                         semantic_id=defn.semantic_id, meta=meta)


# -------- ancienneté --------

def _anciennete_convention(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    cfg = defn.config
    anciennete = float(ctx.profile.anciennete)
    if anciennete < cfg["seuil"]:
        return _zero(defn, taux=0, annees=0)
    annees = min(anciennete, cfg["plafond"])
    taux = cfg["taux_par_classe"].get(ctx.classe, 0)
    mensuel = ctx.point_territorial * taux * annees
    return ElementResult(
        amount=round_half_up(mensuel * 12),
        label=defn.label,
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"taux": taux, "annees": annees, "point": ctx.point_territorial,
              "montant_mensuel": round_cents(mensuel)},
    )


def _anciennete_accord(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    cfg = defn.config
    anciennete = float(ctx.profile.anciennete)
    if anciennete < cfg["seuil"]:
        return _zero(defn, taux=0, annees=0)
    annees = min(anciennete, cfg["plafond"])
    taux = lookup_bareme(cfg["bareme"], annees)
    montant = ctx.salaire_base * taux
    majoration = cfg.get("majoration_forfait_jours")
    label = defn.label
    if majoration and ctx.is_cadre and ctx.profile.forfait == "jours":
        montant *= 1 + majoration
        label = f"{defn.label} (forfait jours +{int(round(majoration * 100))}%)"
    return ElementResult(
        amount=round_half_up(montant),
        label=label,
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"taux": round_half_up(taux * 10000) / 100, "annees": annees,
              "majoration_forfait_jours": majoration},
    )


# -------- primes d'accord --------

def _prime_horaire(defn: ElementDef, prime: PrimeAccord, ctx: ComputeContext) -> ElementResult:
    if not is_prime_active(prime, ctx.profile):
        return _zero(defn)
    heures = get_prime_heures(prime, ctx.profile)
    taux = get_prime_value(prime, ctx.profile)
    mensuel = round_cents(heures * taux)
    return ElementResult(
        amount=round_half_up(mensuel * 12),
        label=f"{defn.label} ({heures:g}h × {taux:g} €/h)",
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"heures": heures, "taux_horaire": taux, "montant_mensuel": mensuel},
    )


def _prime_montant(defn: ElementDef, prime: PrimeAccord, ctx: ComputeContext) -> ElementResult:
    if not is_prime_active(prime, ctx.profile):
        return _zero(defn, mois_versement=prime.mois_versement)
    if not condition_anciennete_remplie(prime.condition_anciennete, ctx.profile, ctx.as_of):
        return _zero(defn, mois_versement=prime.mois_versement, eligible=False)
    return ElementResult(
        amount=round_half_up(get_prime_value(prime, ctx.profile)),
        label=defn.label,
        source=defn.source,
        semantic_id=defn.semantic_id,
        meta={"mois_versement": prime.mois_versement, "eligible": True},
    )


def _prime_accord(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    if defn.semantic_id == SemanticId.PRIME_ANCIENNETE:
        if defn.value_kind is not ValueKind.POURCENTAGE:
            return EMPTY
        return _anciennete_accord(defn, ctx)
    prime = PrimeAccord.model_validate(defn.config)
    match defn.value_kind:
        case ValueKind.HORAIRE:
            return _prime_horaire(defn, prime, ctx)
        case ValueKind.MONTANT:
            return _prime_montant(defn, prime, ctx)
        case ValueKind.POURCENTAGE:
            logger.debug("prime en pourcentage non gérée: %s", defn.id)
    return EMPTY


def compute_prime(defn: ElementDef, ctx: ComputeContext) -> ElementResult:
    """Montant annuel d'une prime ; élément vide si la définition n'est pas exploitable."""
    if not isinstance(defn, ElementDef) or defn.kind is not ElementKind.PRIME:
        return EMPTY
    try:
        match defn.source:
            case RuleSource.CONVENTION:
                if defn.semantic_id == SemanticId.PRIME_ANCIENNETE:
                    return _anciennete_convention(defn, ctx)
            case RuleSource.ACCORD:
                return _prime_accord(defn, ctx)
    except (KeyError, TypeError, ValueError, ValidationError) as e:
        logger.debug("prime %s ignorée (définition incohérente): %s", defn.id, e)
    return EMPTY

# ccnm/services/arretees.py
"""
Rappel de salaire (arriérés) : rejoue mois par mois la rémunération due
et la compare au salaire mensuel déclaré.

- ancienneté du mois = années révolues au 1er du mois
- répartition 12 ou 13 mois (13e mois versé double le mois prévu par l'accord)
- primes forfaitaires datées (ex. prime de vacances en juillet) : retirées de l'assiette
  annuelle avant division, ajoutées le mois de versement
- seules les différences strictement positives entrent dans le total (pas de compensation)
"""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
import logging

from ccnm.schemas import (
    Agreement, ArrearsResult, ArrearsRow, CompensationResult, PeriodeArretees,
    RuleSource, WorkerProfile,
)
from ccnm.services.agreements import coerce_agreement
from ccnm.services.dates import (
    add_years, first_of_month, full_years_between, iter_months, month_key,
)
from ccnm.services.dates import prorata_entree as _prorata
from ccnm.services.errors import ConfigurationError, MissingData
from ccnm.services.money import round_cents, sum_euros
from ccnm.services.remuneration import (
    MODE_FULL, MODE_SMH_ONLY, calculate_annual_remuneration,
)
from ccnm.services.rules_catalog import load_convention

logger = logging.getLogger("ccnm")


# -------- primes forfaitaires datées --------

def _primes_datees(result: CompensationResult) -> List[Tuple[int, int]]:
    """(mois de versement, montant) des primes d'accord forfaitaires retenues dans le résultat."""
    out: List[Tuple[int, int]] = []
    for r in result.details:
        mois = r.meta.get("mois_versement")
        if r.source is RuleSource.ACCORD and mois and r.amount > 0:
            out.append((int(mois), r.amount))
    return out


def montant_primes_fixes(result: CompensationResult) -> int:
    """Total annuel des primes forfaitaires versées à date fixe."""
    return sum(m for _, m in _primes_datees(result))


def montant_primes_du_mois(result: CompensationResult, mois: int) -> int:
    """Part des primes forfaitaires versée le mois donné (1-12)."""
    return sum(m for mv, m in _primes_datees(result) if mv == mois)


# -------- répartition mensuelle --------

def repartition(agreement: Optional[Agreement], profile: WorkerProfile) -> Tuple[int, Optional[int]]:
    """
    (nombre de mensualités, mois doublé).
    13 mois si l'accord le prévoit, sauf choix explicite de 12 mois sur le profil.
    """
    rep = agreement.repartition_13_mois if agreement else None
    if rep is not None and rep.actif and profile.nb_mois != 12:
        return 13, rep.mois_versement
    return 12, None


def salaire_mensuel_du(
    result: CompensationResult,
    mois: int,
    agreement: Optional[Agreement],
    profile: WorkerProfile,
    smh_seul: bool,
) -> float:
    """Part mensuelle due du montant annuel, 13e mois et primes datées compris."""
    nb_mensualites, mois_double = repartition(agreement, profile)
    assiette = float(result.total)
    primes_du_mois = 0
    if not smh_seul:
        assiette -= montant_primes_fixes(result)
        primes_du_mois = montant_primes_du_mois(result, mois)
    part = assiette / nb_mensualites
    if mois == mois_double:
        part *= 2
    return part + primes_du_mois


def _salaire_declare(salaires: Mapping[str, Any], key: str) -> float:
    v = salaires.get(key)
    if v is None:
        raise MissingData(f"aucun salaire déclaré pour {key}")
    return float(v)


# -------- rejeu --------

def calculer_arretees(
    date_debut: date,
    date_fin: date,
    date_embauche: date,
    date_changement_classification: Optional[date],
    salaires_par_mois: Mapping[str, Any],
    profile: WorkerProfile,
    agreement: Union[Agreement, Mapping[str, Any], None] = None,
    smh_seul: bool = True,
    *,
    prorata_entree: bool = False,
) -> ArrearsResult:
    """
    Rejoue chaque mois de [date_debut, date_fin] présent dans `salaires_par_mois` (clé 'AAAA-MM').
    Les mois sans salaire déclaré sont ignorés (absence de donnée, pas un salaire nul).
    Tout mois déclaré est restitué ; un mois antérieur à l'embauche est dû à 0.
    Le changement de classification ne filtre aucun mois : la fenêtre se restreint
    en amont avec `compute_periode_arretees`.
    """
    try:
        accord = coerce_agreement(agreement)
    except ConfigurationError as e:
        logger.warning("rappel de salaire impossible: %s", e)
        return ArrearsResult()

    mode = MODE_SMH_ONLY if smh_seul else MODE_FULL
    debut_embauche = first_of_month(date_embauche)
    jours_reference = load_convention().jours_ouvres_reference

    tous: List[ArrearsRow] = []
    positifs: List[ArrearsRow] = []
    for mois in iter_months(date_debut, date_fin):
        key = month_key(mois)
        try:
            reel = _salaire_declare(salaires_par_mois, key)
        except MissingData:
            continue

        anciennete = full_years_between(date_embauche, mois)
        snapshot = profile.model_copy(update={"anciennete": float(anciennete), "date_embauche": date_embauche})
        result = calculate_annual_remuneration(snapshot, accord, mode=mode, as_of=mois)
        if mois < debut_embauche:
            # pas encore salarié
            du = 0.0
        else:
            du = salaire_mensuel_du(result, mois.month, accord, snapshot, smh_seul)
        if prorata_entree and mois == debut_embauche and date_embauche.day > 1:
            du = _prorata(du, date_embauche, jours_reference)

        du = round_cents(du)
        row = ArrearsRow(
            periode_key=key,
            date_mois=mois,
            anciennete=anciennete,
            salaire_annuel_du=result.total,
            salaire_mensuel_du=du,
            salaire_mensuel_reel=reel,
            difference=round_cents(du - reel),
        )
        tous.append(row)
        if row.difference > 0:
            positifs.append(row)

    return ArrearsResult(
        total_arretees=sum_euros(r.difference for r in positifs),
        details_arretees=positifs,
        details_tous_mois=tous,
    )


def compute_periode_arretees(
    date_embauche: date,
    date_changement_classification: Optional[date] = None,
    date_rupture: Optional[date] = None,
    today: Optional[date] = None,
) -> PeriodeArretees:
    """
    Fenêtre réclamable : du plus tardif de (embauche, changement de classification,
    entrée en vigueur CCNM, prescription triennale) jusqu'à la rupture ou aujourd'hui.
    """
    regles = load_convention()
    today = today or date.today()
    prescription = add_years(today, -regles.prescription_annees)
    bornes = [date_embauche, regles.meta.effective_from, prescription]
    if date_changement_classification:
        bornes.append(date_changement_classification)
    return PeriodeArretees(
        date_debut=max(bornes),
        date_fin=date_rupture or today,
        date_prescription=prescription,
    )


def arretees_report_context(
    result: ArrearsResult,
    periode: Optional[PeriodeArretees] = None,
    profile: Optional[WorkerProfile] = None,
    agreement: Optional[Agreement] = None,
) -> Dict[str, Any]:
    """Contexte du modèle HTML/PDF de rappel de salaire."""
    return {
        "result": result,
        "periode": periode,
        "profile": profile,
        "accord": agreement,
        "nb_mois_concernes": len(result.details_arretees),
        "nb_mois_saisis": len(result.details_tous_mois),
    }

# ccnm/services/remuneration.py
"""
Rémunération annuelle garantie (CCNM + accord d'entreprise éventuel).

Étapes :
  1. classification active → classe ; classe absente de la grille SMH → résultat 'error'
  2. assiette : SMH de la classe, ou barème débutants (F11/F12, expérience < 6 ans)
  3. mode 'smh-only' : assiette + forfait cadre, rien d'autre
  4. mode 'full' :
       - non-cadre : prime d'ancienneté selon le principe de faveur (CCN vs accord)
       - cadre / cadre débutant : forfait, puis ancienneté accord si `tous_statuts`
  5. majorations nuit / dimanche et primes horaires d'accord (non-cadres),
     sauf cadre au forfait jours
  6. primes forfaitaires d'accord éligibles (tous statuts)
  7. total = somme des lignes non nulles, l'assiette en premier
"""
from __future__ import annotations

from datetime import date
from typing import Any, List, Mapping, Optional, Tuple, Union
import logging

from ccnm.schemas import (
    Agreement, Classification, CompensationResult, ComputeContext, ConventionRules,
    ElementDef, ElementKind, ElementResult, RuleSource, SemanticId, ValueKind, WorkerProfile,
)
from ccnm.services import agreements as accords
from ccnm.services.classification import get_active_classification, is_cadre
from ccnm.services.errors import ConfigurationError
from ccnm.services.forfaits import compute_forfait
from ccnm.services.majorations import compute_majoration
from ccnm.services.primes import compute_prime
from ccnm.services.rules_catalog import convention_defs, find_convention_def, load_convention

logger = logging.getLogger("ccnm")

MODE_FULL = "full"
MODE_SMH_ONLY = "smh-only"

SCENARIO_NON_CADRE = "non-cadre"
SCENARIO_CADRE = "cadre"
SCENARIO_CADRE_DEBUTANT = "cadre-debutant"
SCENARIO_SMH_ONLY = "smh-only"
SCENARIO_ERROR = "error"

NOTE_ACCORD_PLUS_FAVORABLE = "Plus avantageux que la CCN"
NOTE_CCN_PLUS_FAVORABLE = "Plus avantageux que l'accord"


# -------- assiette --------

def _tranche_debutant(regles: ConventionRules, classe: int, experience: float) -> Optional[int]:
    """Tranche d'expérience du barème débutants, ou None si le barème ne s'applique pas."""
    bareme = regles.bareme_debutants.classes.get(classe)
    if not bareme or experience >= regles.bareme_debutants.experience_seuil:
        return None
    tranches = sorted(bareme)
    retenue = tranches[0]
    for t in tranches:
        if t <= experience:
            retenue = t
    return int(retenue)


def _label_tranche(regles: ConventionRules, classe: int, tranche: int) -> str:
    bornes = sorted(int(t) for t in regles.bareme_debutants.classes[classe])
    bornes.append(int(regles.bareme_debutants.experience_seuil))
    i = bornes.index(tranche)
    if i == 0:
        return f"< {bornes[1]} ans"
    return f"{tranche} à {bornes[i + 1]} ans"


def base_smh(regles: ConventionRules, classe: int, profile: WorkerProfile) -> Tuple[int, Optional[int]]:
    """(assiette annuelle, tranche débutants ou None). Lève ConfigurationError si la classe est hors grille."""
    if classe not in regles.smh:
        raise ConfigurationError(f"classe {classe} absente de la grille SMH")
    tranche = _tranche_debutant(regles, classe, profile.experience_pro)
    if tranche is None:
        return regles.smh[classe], None
    return regles.bareme_debutants.classes[classe][tranche], tranche


def build_context(
    profile: WorkerProfile,
    base: float,
    classe: int,
    cadre: bool,
    agreement: Optional[Agreement] = None,
    as_of: Optional[date] = None,
) -> ComputeContext:
    regles = load_convention()
    return ComputeContext(
        profile=profile,
        base_smh=base,
        salaire_base=base,
        taux_horaire=base / 12 / regles.heures_mensuelles if base > 0 else 0.0,
        point_territorial=profile.point_territorial,
        classe=classe,
        is_cadre=cadre,
        agreement=agreement,
        as_of=as_of,
    )


# -------- principe de faveur --------

def resolve_most_favorable(convention: ElementResult, accord: ElementResult) -> Optional[ElementResult]:
    """
    Retient le plus favorable des deux montants ; égalité → convention.
    Aucun des deux positif → None (pas de ligne).
    """
    if convention.amount <= 0 and accord.amount <= 0:
        return None
    if accord.amount > convention.amount:
        note = NOTE_ACCORD_PLUS_FAVORABLE if convention.amount > 0 else ""
        return accord.model_copy(update={"note": note})
    note = NOTE_CCN_PLUS_FAVORABLE if accord.amount > 0 else ""
    return convention.model_copy(update={"note": note})


# -------- lignes --------

def _forfait_line(ctx: ComputeContext) -> Optional[ElementResult]:
    """Forfait CCN ; si l'accord déclare le même forfait, le plus favorable des deux."""
    forfait = ctx.profile.forfait
    conv = next(
        (d for d in convention_defs(ElementKind.FORFAIT) if d.config.get("forfait") == forfait),
        None,
    )
    r_conv = compute_forfait(conv, ctx) if conv else ElementResult()
    if ctx.agreement is not None:
        acc = accords.forfait_defs(ctx.agreement).get(forfait)
        if acc is not None:
            return resolve_most_favorable(r_conv, compute_forfait(acc, ctx))
    return r_conv if r_conv.amount > 0 else None


def _anciennete_accord(ctx: ComputeContext) -> ElementResult:
    if ctx.agreement is None:
        return ElementResult()
    defn = accords.anciennete_def(ctx.agreement)
    return compute_prime(defn, ctx) if defn else ElementResult()


def _anciennete_non_cadre(ctx: ComputeContext) -> Optional[ElementResult]:
    conv = find_convention_def(SemanticId.PRIME_ANCIENNETE, ElementKind.PRIME)
    r_conv = compute_prime(conv, ctx) if conv else ElementResult()
    return resolve_most_favorable(r_conv, _anciennete_accord(ctx))


def _majoration_defs(agreement: Optional[Agreement]) -> List[ElementDef]:
    """Définitions nuit / dimanche : celles de l'accord se substituent à celles de la CCN."""
    substituts = accords.majoration_defs(agreement) if agreement else {}
    return [substituts.get(d.semantic_id, d) for d in convention_defs(ElementKind.MAJORATION)]


def _accord_primes(ctx: ComputeContext, value_kind: ValueKind) -> List[ElementResult]:
    if ctx.agreement is None:
        return []
    return [compute_prime(d, ctx) for d in accords.prime_defs(ctx.agreement, value_kind)]


def _base_line(classif: Classification, base: int, label: str) -> ElementResult:
    return ElementResult(
        amount=base,
        label=label,
        source=RuleSource.CONVENTION,
        semantic_id=SemanticId.SMH,
        is_base=True,
        meta={"groupe": classif.groupe, "classe": classif.classe},
    )


def _error_result(classif: Optional[Classification] = None) -> CompensationResult:
    return CompensationResult(
        scenario=SCENARIO_ERROR,
        groupe=classif.groupe if classif else "A",
        classe=classif.classe if classif else 1,
    )


def _result(scenario: str, base: int, lignes: List[Optional[ElementResult]],
            classif: Classification, cadre: bool) -> CompensationResult:
    details = [r for r in lignes if r is not None and (r.is_base or r.amount > 0)]
    return CompensationResult(
        scenario=scenario,
        base_smh=base,
        details=details,
        total=sum(r.amount for r in details),
        groupe=classif.groupe,
        classe=classif.classe,
        is_cadre=cadre,
    )


# -------- point d'entrée --------

def calculate_annual_remuneration(
    profile: WorkerProfile,
    agreement: Union[Agreement, Mapping[str, Any], None] = None,
    mode: str = MODE_FULL,
    as_of: Optional[date] = None,
) -> CompensationResult:
    """
    Rémunération annuelle due pour un profil.
    Ne lève pas sur une donnée métier invalide : renvoie un résultat 'error' (total 0, aucune ligne).
    """
    if profile is None:
        raise ValueError("profile est requis pour calculate_annual_remuneration")
    if mode not in (MODE_FULL, MODE_SMH_ONLY):
        raise ValueError(f"mode inconnu: {mode!r}")

    classif: Optional[Classification] = None
    try:
        accord = accords.coerce_agreement(agreement)
        regles = load_convention()
        classif = get_active_classification(profile)
        base, tranche = base_smh(regles, classif.classe, profile)
    except ConfigurationError as e:
        logger.warning("calcul de rémunération impossible: %s", e)
        return _error_result(classif)

    cadre = is_cadre(classif.classe)
    ctx = build_context(profile, base, classif.classe, cadre, accord, as_of)

    code = f"{classif.groupe}{classif.classe}"
    if tranche is not None:
        label_base = f"Barème débutants {code} ({_label_tranche(regles, classif.classe, tranche)})"
    else:
        label_base = f"SMH Base ({code})"
    lignes: List[Optional[ElementResult]] = [_base_line(classif, base, label_base)]

    if mode == MODE_SMH_ONLY:
        # forfait cadre uniquement, comme en mode complet
        if cadre:
            lignes.append(_forfait_line(ctx))
        return _result(SCENARIO_SMH_ONLY, base, lignes, classif, cadre)

    if not cadre:
        scenario = SCENARIO_NON_CADRE
        lignes.append(_anciennete_non_cadre(ctx))
    else:
        scenario = SCENARIO_CADRE_DEBUTANT if tranche is not None else SCENARIO_CADRE
        lignes.append(_forfait_line(ctx))
        if accord is not None and accord.anciennete is not None and accord.anciennete.tous_statuts:
            # barème débutants × taux accord : combinaison conservée, à confirmer juridiquement
            lignes.append(_anciennete_accord(ctx))

    if not (cadre and profile.forfait == "jours"):
        lignes.extend(compute_majoration(d, ctx) for d in _majoration_defs(accord))
        if not cadre:
            lignes.extend(_accord_primes(ctx, ValueKind.HORAIRE))

    lignes.extend(_accord_primes(ctx, ValueKind.MONTANT))
    return _result(scenario, base, lignes, classif, cadre)


def get_montant_annuel_smh_seul(profile: WorkerProfile) -> int:
    """Plancher SMH (assiette + forfait), sans prime ni majoration ni accord."""
    return calculate_annual_remuneration(profile, None, mode=MODE_SMH_ONLY).total

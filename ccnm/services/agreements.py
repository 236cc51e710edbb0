# ccnm/services/agreements.py
"""
Registre des accords d'entreprise (un YAML par accord sous `rules/accords/`)
et passerelle accord → définitions d'éléments.

Un accord mal formé est écarté du registre (warning), jamais à moitié chargé.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union
from types import MappingProxyType
import logging

from pydantic import ValidationError

from ccnm.schemas import (
    Agreement, AccordInputValue, ElementDef, ElementKind, PrimeAccord,
    RuleSource, SemanticId, ValueKind, WorkerProfile,
)
from ccnm.services.errors import ConfigurationError
from ccnm.services.rules_catalog import RULES_DIR, _load_yaml_cached, _mtime, load_convention

logger = logging.getLogger("ccnm")

ACCORDS_DIR = RULES_DIR / "accords"


# -------- registre --------

def _stamp(d: Path) -> Tuple[Tuple[str, float], ...]:
    if not d.is_dir():
        return ()
    return tuple(sorted((str(p), _mtime(p)) for p in d.glob("*.yml")))


@lru_cache(maxsize=16)
def _registry_cached(stamp: Tuple[Tuple[str, float], ...]) -> Mapping[str, Agreement]:
    reg: Dict[str, Agreement] = {}
    for path_str, mtime in stamp:
        data = _load_yaml_cached(path_str, mtime)
        if not data:
            logger.warning("accord ignoré (YAML vide ou illisible): %s", path_str)
            continue
        try:
            accord = Agreement.model_validate(data)
        except ValidationError as e:
            logger.warning("accord ignoré (invalide) %s: %s", path_str, e)
            continue
        if accord.id in reg:
            logger.warning("accord en double ignoré: %s (%s)", accord.id, path_str)
            continue
        reg[accord.id] = accord
    return MappingProxyType(reg)


def _registry() -> Mapping[str, Agreement]:
    return _registry_cached(_stamp(ACCORDS_DIR))


def get_agreement(accord_id: Optional[str]) -> Optional[Agreement]:
    if not accord_id:
        return None
    return _registry().get(accord_id)


def has_agreement(accord_id: Optional[str]) -> bool:
    return get_agreement(accord_id) is not None


def list_agreements() -> List[Agreement]:
    return sorted(_registry().values(), key=lambda a: a.nom_court.lower())


def agreement_summaries() -> List[Dict[str, Any]]:
    """Vue légère pour les listes de choix (id, noms, url, description)."""
    return [
        {
            "id": a.id,
            "nom": a.nom,
            "nom_court": a.nom_court,
            "url": a.url,
            "description": a.labels.get("description"),
        }
        for a in list_agreements()
    ]


def coerce_agreement(obj: Union[Agreement, Mapping[str, Any], None]) -> Optional[Agreement]:
    """Agreement, dict brut ou None → Agreement validé. Lève ConfigurationError si mal formé."""
    if obj is None or isinstance(obj, Agreement):
        return obj
    if not isinstance(obj, Mapping):
        raise ConfigurationError(f"accord illisible: {type(obj).__name__}")
    try:
        return Agreement.model_validate(dict(obj))
    except ValidationError as e:
        raise ConfigurationError(f"accord invalide: {e}") from e


# -------- saisies propres à l'accord --------

def get_accord_input(profile: WorkerProfile, key: Optional[str]) -> Optional[AccordInputValue]:
    if not key:
        return None
    return profile.accord_inputs.get(key)


def is_truthy_input(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "oui", "yes", "on"}
    return bool(value)


def is_prime_active(prime: PrimeAccord, profile: WorkerProfile) -> bool:
    """Prime activée par la saisie ; à défaut, valeur par défaut de l'accord."""
    if not prime.state_key_actif:
        return prime.default_actif
    v = get_accord_input(profile, prime.state_key_actif)
    if v is None:
        return prime.default_actif
    return is_truthy_input(v)


def get_prime_heures(prime: PrimeAccord, profile: WorkerProfile) -> float:
    """Heures mensuelles saisies ; à défaut, celles de l'accord ou la durée mensuelle CCNM."""
    v = get_accord_input(profile, prime.state_key_heures)
    if v is not None:
        return _to_float(v)
    if prime.default_heures is not None:
        return float(prime.default_heures)
    return load_convention().heures_mensuelles


def _to_float(val: Any) -> float:
    if val is None or isinstance(val, bool):
        return 0.0
    try:
        return float(str(val).replace(",", ".").strip())
    except ValueError:
        return 0.0


def get_prime_value(prime: PrimeAccord, profile: WorkerProfile) -> float:
    """Valeur fixée par l'accord, sinon modalité saisie (clé = id de la prime)."""
    if prime.source_valeur == "accord" and prime.valeur_accord is not None:
        return float(prime.valeur_accord)
    return _to_float(get_accord_input(profile, prime.id))


def hydrate_accord_inputs(agreement: Optional[Agreement], profile: WorkerProfile) -> WorkerProfile:
    """
    Complète les saisies manquantes avec les valeurs par défaut de l'accord
    (activation, heures). Les saisies déjà présentes ne sont jamais écrasées.
    """
    if agreement is None:
        return profile
    inputs: Dict[str, AccordInputValue] = dict(profile.accord_inputs)
    for prime in agreement.primes:
        if prime.state_key_actif and prime.state_key_actif not in inputs:
            inputs[prime.state_key_actif] = prime.default_actif
        if prime.state_key_heures and prime.state_key_heures not in inputs:
            inputs[prime.state_key_heures] = get_prime_heures(prime, profile)
    return profile.model_copy(update={"accord_inputs": inputs})


# -------- accord → définitions d'éléments --------

def anciennete_def(agreement: Agreement) -> Optional[ElementDef]:
    anc = agreement.anciennete
    if anc is None:
        return None
    return ElementDef(
        id=f"primeAnciennete_{agreement.id}",
        semantic_id=SemanticId.PRIME_ANCIENNETE,
        kind=ElementKind.PRIME,
        source=RuleSource.ACCORD,
        value_kind=ValueKind.POURCENTAGE,
        label=f"Prime d'ancienneté {agreement.nom_court}",
        config={
            "seuil": anc.seuil,
            "plafond": anc.plafond,
            "bareme": sorted(anc.bareme.items()),
            "base_calcul": anc.base_calcul,
            "majoration_forfait_jours": anc.majoration_forfait_jours,
            "tous_statuts": anc.tous_statuts,
        },
    )


def prime_def(agreement: Agreement, prime: PrimeAccord) -> ElementDef:
    return ElementDef(
        id=f"{prime.id}_{agreement.id}",
        semantic_id=prime.id,
        kind=ElementKind.PRIME,
        source=RuleSource.ACCORD,
        value_kind=prime.value_type,
        label=f"{prime.label} {agreement.nom_court}",
        config=prime.model_dump(),
    )


def prime_defs(agreement: Agreement, value_kind: Optional[ValueKind] = None) -> List[ElementDef]:
    """Primes déclarées par l'accord (hors ancienneté), dans l'ordre du YAML."""
    return [
        prime_def(agreement, p)
        for p in agreement.primes
        if value_kind is None or p.value_type is value_kind
    ]


def majoration_defs(agreement: Agreement) -> Dict[str, ElementDef]:
    """Majorations déclarées par l'accord, indexées par identifiant sémantique."""
    out: Dict[str, ElementDef] = {}
    nuit = agreement.majorations.nuit
    if nuit is not None:
        out[SemanticId.MAJORATION_NUIT] = ElementDef(
            id=f"majorationNuit_{agreement.id}",
            semantic_id=SemanticId.MAJORATION_NUIT,
            kind=ElementKind.MAJORATION,
            source=RuleSource.ACCORD,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Majoration nuit {agreement.nom_court}",
            config={"poste_nuit": nuit.poste_nuit, "poste_matin": nuit.poste_matin},
        )
    if agreement.majorations.dimanche is not None:
        taux = agreement.majorations.dimanche
        out[SemanticId.MAJORATION_DIMANCHE] = ElementDef(
            id=f"majorationDimanche_{agreement.id}",
            semantic_id=SemanticId.MAJORATION_DIMANCHE,
            kind=ElementKind.MAJORATION,
            source=RuleSource.ACCORD,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Majoration dimanche {agreement.nom_court} (+{int(round(taux * 100))}%)",
            config={"taux": taux},
        )
    return out


def forfait_defs(agreement: Agreement) -> Dict[str, ElementDef]:
    """Forfaits cadres propres à l'accord, indexés par clé de forfait ('heures', 'jours')."""
    ids = {"heures": SemanticId.FORFAIT_HEURES, "jours": SemanticId.FORFAIT_JOURS}
    out: Dict[str, ElementDef] = {}
    for cle, taux in agreement.forfaits.items():
        if cle not in ids:
            logger.warning("forfait inconnu dans l'accord %s: %s", agreement.id, cle)
            continue
        out[cle] = ElementDef(
            id=f"{ids[cle]}_{agreement.id}",
            semantic_id=ids[cle],
            kind=ElementKind.FORFAIT,
            source=RuleSource.ACCORD,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Forfait {cle.capitalize()} {agreement.nom_court} (+{int(round(taux * 100))}%)",
            config={"forfait": cle, "taux": taux},
        )
    return out

# ccnm/services/rules_catalog.py
"""
Référentiel convention (CCNM) : chargement du YAML `rules/convention/ccnm.yml`
et définitions d'éléments (primes, majorations, forfaits) côté convention.

Le YAML est relu dès que son mtime change (cache clé: chemin + mtime).
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple
import logging
import os

import yaml
from pydantic import ValidationError

from ccnm.schemas import (
    ConventionRules, ElementDef, ElementKind, RuleSource, SemanticId, ValueKind,
)
from ccnm.services.errors import ConfigurationError

logger = logging.getLogger("ccnm")

# Dossiers
APP_DIR = Path(__file__).resolve().parents[1]   # .../ccnm
RULES_DIR = Path(os.getenv("CCNM_RULES_DIR") or (APP_DIR / "rules"))  # livré avec le package
CONVENTION_FILE = "convention/ccnm.yml"


def _mtime(p: Path) -> float:
    try:
        return p.stat().st_mtime
    except OSError:
        return 0.0


@lru_cache(maxsize=256)
def _load_yaml_cached(path_str: str, mtime: float) -> Dict[str, Any]:
    p = Path(path_str)
    if not p.exists():
        return {}
    try:
        data = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        logger.warning("YAML illisible %s: %s", p, e)
        return {}
    return data if isinstance(data, dict) else {}


def load_yaml(p: Path) -> Dict[str, Any]:
    """Chargement YAML avec cache (clé: chemin + mtime)."""
    return _load_yaml_cached(str(p), _mtime(p))


def convention_path() -> Path:
    return RULES_DIR / CONVENTION_FILE


@lru_cache(maxsize=8)
def _convention_cached(path_str: str, mtime: float) -> ConventionRules:
    data = _load_yaml_cached(path_str, mtime)
    if not data:
        raise ConfigurationError(f"référentiel convention introuvable ou vide: {path_str}")
    try:
        return ConventionRules.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"référentiel convention invalide ({path_str}): {e}") from e


def load_convention() -> ConventionRules:
    """Référentiel CCNM validé. Lève ConfigurationError si absent ou mal formé."""
    p = convention_path()
    return _convention_cached(str(p), _mtime(p))


# -------- définitions d'éléments côté convention --------

def _pct(taux: float) -> int:
    return int(round(taux * 100))


@lru_cache(maxsize=8)
def _convention_defs_cached(path_str: str, mtime: float) -> Tuple[ElementDef, ...]:
    regles = _convention_cached(path_str, mtime)
    defs: List[ElementDef] = [
        ElementDef(
            id="primeAncienneteCCN",
            semantic_id=SemanticId.PRIME_ANCIENNETE,
            kind=ElementKind.PRIME,
            source=RuleSource.CONVENTION,
            value_kind=ValueKind.POURCENTAGE,
            label="Prime d'ancienneté CCN",
            config={
                "seuil": regles.anciennete.seuil,
                "plafond": regles.anciennete.plafond,
                "taux_par_classe": dict(regles.anciennete.taux_par_classe),
                "formule": "Point × Taux × Années × 12",
            },
        ),
        ElementDef(
            id="majorationNuitCCN",
            semantic_id=SemanticId.MAJORATION_NUIT,
            kind=ElementKind.MAJORATION,
            source=RuleSource.CONVENTION,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Majoration nuit CCN (+{_pct(regles.majorations.nuit)}%)",
            config={"taux": regles.majorations.nuit},
        ),
        ElementDef(
            id="majorationDimancheCCN",
            semantic_id=SemanticId.MAJORATION_DIMANCHE,
            kind=ElementKind.MAJORATION,
            source=RuleSource.CONVENTION,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Majoration dimanche CCN (+{_pct(regles.majorations.dimanche)}%)",
            config={"taux": regles.majorations.dimanche},
        ),
    ]
    forfait_ids = {"heures": SemanticId.FORFAIT_HEURES, "jours": SemanticId.FORFAIT_JOURS}
    for cle, taux in regles.forfaits.items():
        semantic = forfait_ids.get(cle)
        if semantic is None:
            logger.warning("forfait convention inconnu ignoré: %s", cle)
            continue
        defs.append(ElementDef(
            id=f"{semantic}CCN",
            semantic_id=semantic,
            kind=ElementKind.FORFAIT,
            source=RuleSource.CONVENTION,
            value_kind=ValueKind.POURCENTAGE,
            label=f"Forfait {cle.capitalize()} (+{_pct(taux)}%)",
            config={"forfait": cle, "taux": taux},
        ))
    return tuple(defs)


def convention_defs(kind: Optional[ElementKind] = None) -> List[ElementDef]:
    """Définitions convention, filtrées par type d'élément si demandé."""
    p = convention_path()
    defs = _convention_defs_cached(str(p), _mtime(p))
    return [d for d in defs if kind is None or d.kind is kind]


def find_convention_def(semantic_id: str, kind: ElementKind) -> Optional[ElementDef]:
    for d in convention_defs(kind):
        if d.semantic_id == semantic_id:
            return d
    return None

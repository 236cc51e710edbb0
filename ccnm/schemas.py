# ccnm/schemas.py
from datetime import date
from enum import Enum
from typing import Optional, Dict, Any, List, Tuple, Union, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator


# --- Tolérance aux champs supplémentaires ---
class _CCNMBase(BaseModel):
    model_config = ConfigDict(extra="allow")


class _Frozen(_CCNMBase):
    model_config = ConfigDict(extra="allow", frozen=True)


# ---- Types d'éléments de rémunération

class RuleSource(str, Enum):
    """Source juridique d'un élément : convention collective ou accord d'entreprise."""
    CONVENTION = "convention"
    ACCORD = "accord"


class ElementKind(str, Enum):
    PRIME = "prime"
    MAJORATION = "majoration"
    FORFAIT = "forfait"


class ValueKind(str, Enum):
    HORAIRE = "horaire"
    MONTANT = "montant"
    POURCENTAGE = "pourcentage"


class SemanticId:
    """Identifiants sémantiques partagés convention / accord (principe de faveur)."""
    SMH = "smh"
    PRIME_ANCIENNETE = "primeAnciennete"
    PRIME_EQUIPE = "primeEquipe"
    PRIME_VACANCES = "primeVacances"
    MAJORATION_NUIT = "majorationNuit"
    MAJORATION_DIMANCHE = "majorationDimanche"
    FORFAIT_HEURES = "forfaitHeures"
    FORFAIT_JOURS = "forfaitJours"


AccordInputValue = Union[bool, int, float, str]


# ---- Profil salarié

class WorkerProfile(_Frozen):
    """Saisie du salarié, immuable : un instantané par calcul."""
    # classification
    scores: List[int] = Field(default_factory=lambda: [1, 1, 1, 1, 1, 1])
    mode_manuel: bool = False
    groupe_manuel: str = "A"
    classe_manuel: int = 1
    # situation
    anciennete: float = 0.0
    experience_pro: float = 0.0
    forfait: Literal["35h", "heures", "jours"] = "35h"
    point_territorial: float = 5.90
    date_embauche: Optional[date] = None
    # conditions de travail
    type_nuit: Literal["aucun", "poste-nuit", "poste-matin"] = "aucun"
    heures_nuit: float = 0.0
    heures_dimanche: float = 0.0
    # accord d'entreprise (clés fournies par l'accord)
    accord_actif: bool = False
    accord_id: Optional[str] = None
    accord_inputs: Dict[str, AccordInputValue] = Field(default_factory=dict)
    # répartition mensuelle : None = celle de l'accord
    nb_mois: Optional[Literal[12, 13]] = None


# ---- Définitions et résultats d'éléments

class ElementDef(_Frozen):
    id: str
    semantic_id: str
    kind: ElementKind
    source: RuleSource
    value_kind: ValueKind
    label: str
    config: Dict[str, Any] = Field(default_factory=dict)


class ElementResult(_Frozen):
    amount: int = 0
    label: str = ""
    source: Optional[RuleSource] = None
    semantic_id: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict)
    is_base: bool = False
    note: str = ""


# ---- Accord d'entreprise

class AncienneteAccord(_CCNMBase):
    seuil: float
    plafond: float
    tous_statuts: bool = False
    base_calcul: Literal["salaire"] = "salaire"
    bareme: Dict[float, float]
    majoration_forfait_jours: Optional[float] = None
    formule: Optional[str] = None

    @field_validator("bareme")
    @classmethod
    def _bareme_non_vide(cls, v: Dict[float, float]) -> Dict[float, float]:
        if not v:
            raise ValueError("le barème d'ancienneté ne peut pas être vide")
        return v


class MajorationNuitAccord(_CCNMBase):
    poste_nuit: float
    poste_matin: float


class MajorationsAccord(_CCNMBase):
    nuit: Optional[MajorationNuitAccord] = None
    dimanche: Optional[float] = None


class ConditionAnciennete(_CCNMBase):
    type: Literal["aucune", "annees_revolues", "proratise"] = "aucune"
    annees: Optional[float] = None
    date_reference: Optional[str] = None   # "MM-JJ", ex. "06-01"
    description: Optional[str] = None


class PrimeAccord(_CCNMBase):
    id: str
    label: str
    source_valeur: Literal["accord", "modalite"] = "accord"
    value_type: ValueKind
    unit: Optional[str] = None
    valeur_accord: Optional[float] = None
    state_key_actif: Optional[str] = None
    state_key_heures: Optional[str] = None
    default_actif: bool = False
    default_heures: Optional[float] = None
    mois_versement: Optional[int] = Field(default=None, ge=1, le=12)
    condition_anciennete: ConditionAnciennete = Field(default_factory=ConditionAnciennete)
    tooltip: Optional[str] = None


class Repartition13Mois(_CCNMBase):
    actif: bool = False
    mois_versement: int = Field(default=11, ge=1, le=12)
    inclus_dans_smh: bool = True


class Agreement(_Frozen):
    id: str
    nom: str = ""
    nom_court: str
    url: Optional[str] = None
    date_effet: Optional[date] = None
    date_signature: Optional[date] = None
    anciennete: Optional[AncienneteAccord] = None
    majorations: MajorationsAccord = Field(default_factory=MajorationsAccord)
    primes: List[PrimeAccord] = Field(default_factory=list)
    forfaits: Dict[str, float] = Field(default_factory=dict)
    repartition_13_mois: Repartition13Mois = Field(default_factory=Repartition13Mois)
    labels: Dict[str, Any] = Field(default_factory=dict)
    metadata: Dict[str, Any] = Field(default_factory=dict)


# ---- Convention (données YAML validées au chargement)

class ConventionMeta(_CCNMBase):
    label: str
    idcc: Optional[int] = None
    effective_from: date
    source: Dict[str, Any] = Field(default_factory=dict)


class BaremeDebutants(_CCNMBase):
    experience_seuil: float = 6
    classes: Dict[int, Dict[float, int]] = Field(default_factory=dict)


class AncienneteConvention(_CCNMBase):
    seuil: float
    plafond: float
    taux_par_classe: Dict[int, float]


class PointTerritorial(_CCNMBase):
    defaut: float
    territoire: Optional[str] = None


class MajorationsConvention(_CCNMBase):
    nuit: float
    dimanche: float


class ConventionRules(_Frozen):
    meta: ConventionMeta
    smh: Dict[int, int]
    bareme_debutants: BaremeDebutants = Field(default_factory=BaremeDebutants)
    anciennete: AncienneteConvention
    point_territorial: PointTerritorial
    seuil_cadre: int = 11
    mapping_points: List[Tuple[int, int, str, int]]
    forfaits: Dict[str, float] = Field(default_factory=dict)
    majorations: MajorationsConvention
    heures_mensuelles: float = 151.67
    jours_ouvres_reference: int = 22
    prescription_annees: int = 3
    criteres: List[Dict[str, str]] = Field(default_factory=list)


# ---- Contexte et résultats de calcul

class Classification(_Frozen):
    groupe: str
    classe: int
    total_score: Optional[int] = None


class ComputeContext(_Frozen):
    profile: WorkerProfile
    base_smh: float = 0.0
    salaire_base: float = 0.0
    taux_horaire: float = 0.0
    point_territorial: float = 0.0
    classe: int = 1
    is_cadre: bool = False
    agreement: Optional[Agreement] = None
    as_of: Optional[date] = None


class CompensationResult(_CCNMBase):
    scenario: str
    base_smh: int = 0
    details: List[ElementResult] = Field(default_factory=list)
    total: int = 0
    groupe: str = "A"
    classe: int = 1
    is_cadre: bool = False


class ArrearsRow(_Frozen):
    periode_key: str
    date_mois: date
    anciennete: int
    salaire_annuel_du: int
    salaire_mensuel_du: float
    salaire_mensuel_reel: float
    difference: float


class ArrearsResult(_CCNMBase):
    total_arretees: int = 0
    details_arretees: List[ArrearsRow] = Field(default_factory=list)
    details_tous_mois: List[ArrearsRow] = Field(default_factory=list)


class PeriodeArretees(_CCNMBase):
    date_debut: date
    date_fin: date
    date_prescription: date


# ---- API

class ClassificationResponse(_CCNMBase):
    groupe: str
    classe: int
    total_score: Optional[int] = None
    is_cadre: bool


class RemunerationRequest(_CCNMBase):
    profile: WorkerProfile = Field(default_factory=WorkerProfile)
    accord_id: Optional[str] = None
    mode: Literal["full", "smh-only"] = "full"
    as_of: Optional[date] = None


class ArreteesRequest(_CCNMBase):
    date_debut: date
    date_fin: date
    date_embauche: date
    date_changement_classification: Optional[date] = None
    salaires_par_mois: Dict[str, float] = Field(default_factory=dict)
    profile: WorkerProfile = Field(default_factory=WorkerProfile)
    accord_id: Optional[str] = None
    smh_seul: bool = True
    prorata_entree: bool = False

from datetime import date

from ccnm.schemas import (
    ElementDef, ElementKind, RuleSource, SemanticId, ValueKind, WorkerProfile,
)
from ccnm.services import agreements as accords
from ccnm.services.forfaits import compute_forfait
from ccnm.services.majorations import compute_majoration
from ccnm.services.primes import compute_prime, condition_anciennete_remplie, lookup_bareme
from ccnm.services.remuneration import build_context
from ccnm.services.rules_catalog import convention_defs, find_convention_def


KUHN = accords.get_agreement("kuhn")


def _ctx(profile, base=24250, classe=5, cadre=False, agreement=None, as_of=None):
    return build_context(profile, base, classe, cadre, agreement, as_of)


def _prime_kuhn(prime_id):
    return next(d for d in accords.prime_defs(KUHN) if d.semantic_id == prime_id)


def test_anciennete_ccn_c5_10_ans():
    # 5,90 × 2,20 × 10 × 12 = 1557,6 → 1558
    defn = find_convention_def(SemanticId.PRIME_ANCIENNETE, ElementKind.PRIME)
    r = compute_prime(defn, _ctx(WorkerProfile(anciennete=10)))
    assert r.amount == 1558
    assert r.source is RuleSource.CONVENTION
    assert r.meta["taux"] == 2.20


def test_anciennete_ccn_seuil_et_plafond():
    defn = find_convention_def(SemanticId.PRIME_ANCIENNETE, ElementKind.PRIME)
    # sous le seuil de 3 ans
    assert compute_prime(defn, _ctx(WorkerProfile(anciennete=2.9))).amount == 0
    # plafond 15 ans
    a15 = compute_prime(defn, _ctx(WorkerProfile(anciennete=15))).amount
    a30 = compute_prime(defn, _ctx(WorkerProfile(anciennete=30))).amount
    assert a15 == a30 > 0


def test_anciennete_monotone():
    defn_ccn = find_convention_def(SemanticId.PRIME_ANCIENNETE, ElementKind.PRIME)
    defn_accord = accords.anciennete_def(KUHN)
    for defn in (defn_ccn, defn_accord):
        prev = 0
        for annees in range(0, 31):
            amount = compute_prime(defn, _ctx(WorkerProfile(anciennete=annees))).amount
            assert amount >= prev
            prev = amount


def test_anciennete_accord_kuhn_5_ans():
    # 24 250 × 5 % = 1 212,5 → 1 213 (arrondi au demi supérieur)
    r = compute_prime(accords.anciennete_def(KUHN), _ctx(WorkerProfile(anciennete=5)))
    assert r.amount == 1213
    assert r.source is RuleSource.ACCORD
    assert r.meta["taux"] == 5.0


def test_anciennete_accord_bareme_palier_inferieur():
    # 16 à 24 ans : palier 15 %, 25 ans : 16 %
    bareme = sorted(KUHN.anciennete.bareme.items())
    assert lookup_bareme(bareme, 20) == 0.15
    assert lookup_bareme(bareme, 25) == 0.16
    assert lookup_bareme(bareme, 1.9) == 0.0
    assert lookup_bareme(bareme, 2) == 0.02


def test_anciennete_accord_forfait_jours_majoree():
    # cadre au forfait jours : 40 000 × 5 % × 1,30 = 2 600
    p = WorkerProfile(anciennete=5, forfait="jours")
    r = compute_prime(accords.anciennete_def(KUHN), _ctx(p, base=40000, classe=13, cadre=True))
    assert r.amount == 2600


def test_prime_equipe_horaire():
    # 151,67 h × 0,82 €/h = 124,37 €/mois → 1 492 €/an
    p = WorkerProfile(accord_inputs={"travailEquipe": True, "heuresEquipe": 151.67})
    r = compute_prime(_prime_kuhn("primeEquipe"), _ctx(p, agreement=KUHN))
    assert r.meta["montant_mensuel"] == 124.37
    assert r.amount == 1492


def test_prime_equipe_inactive():
    p = WorkerProfile(accord_inputs={"travailEquipe": False, "heuresEquipe": 151.67})
    assert compute_prime(_prime_kuhn("primeEquipe"), _ctx(p, agreement=KUHN)).amount == 0


def test_prime_vacances_eligibilite():
    defn = _prime_kuhn("primeVacances")
    # 1 an révolu : montant plein, non proratisé
    r = compute_prime(defn, _ctx(WorkerProfile(anciennete=1, accord_inputs={"primeVacances": True}), agreement=KUHN))
    assert r.amount == 525
    assert r.meta["mois_versement"] == 7
    # moins d'un an : rien
    r = compute_prime(defn, _ctx(WorkerProfile(anciennete=0.5, accord_inputs={"primeVacances": True}), agreement=KUHN))
    assert r.amount == 0
    # désactivée
    r = compute_prime(defn, _ctx(WorkerProfile(anciennete=3, accord_inputs={"primeVacances": False}), agreement=KUHN))
    assert r.amount == 0


def test_prime_vacances_un_an_au_1er_juin():
    cond = KUHN.primes[1].condition_anciennete
    # embauche 15/06/2023 : pas 1 an au 01/06/2024
    p = WorkerProfile(date_embauche=date(2023, 6, 15), anciennete=1.2)
    assert not condition_anciennete_remplie(cond, p, as_of=date(2024, 7, 1))
    # embauche 01/06/2023 : 1 an au 01/06/2024
    p = WorkerProfile(date_embauche=date(2023, 6, 1))
    assert condition_anciennete_remplie(cond, p, as_of=date(2024, 7, 1))


def test_definition_incoherente_element_vide():
    # type d'élément incompatible
    forfait_def = convention_defs(ElementKind.FORFAIT)[0]
    r = compute_prime(forfait_def, _ctx(WorkerProfile(anciennete=10)))
    assert (r.amount, r.label) == (0, "")
    # configuration manquante
    bad = ElementDef(
        id="x", semantic_id=SemanticId.PRIME_ANCIENNETE, kind=ElementKind.PRIME,
        source=RuleSource.CONVENTION, value_kind=ValueKind.POURCENTAGE, label="x", config={},
    )
    r = compute_prime(bad, _ctx(WorkerProfile(anciennete=10)))
    assert (r.amount, r.label) == (0, "")
    assert compute_majoration(bad, _ctx(WorkerProfile())).amount == 0
    assert compute_forfait(bad, _ctx(WorkerProfile())).amount == 0


def _maj(semantic_id, agreement=None):
    if agreement is not None:
        return accords.majoration_defs(agreement)[semantic_id]
    return find_convention_def(semantic_id, ElementKind.MAJORATION)


def test_majoration_nuit_ccn_taux_unique():
    # A1 : taux horaire 21 700 / 12 / 151,67 ; 10 h × 15 % = 17,88 €/mois → 215 €/an
    for type_nuit in ("poste-nuit", "poste-matin"):
        p = WorkerProfile(type_nuit=type_nuit, heures_nuit=10)
        r = compute_majoration(_maj(SemanticId.MAJORATION_NUIT), _ctx(p, base=21700, classe=1))
        assert r.amount == 215
        assert r.meta["montant_mensuel"] == 17.88


def test_majoration_nuit_accord_deux_taux():
    defn = _maj(SemanticId.MAJORATION_NUIT, KUHN)
    nuit = compute_majoration(defn, _ctx(WorkerProfile(type_nuit="poste-nuit", heures_nuit=10), base=21700, classe=1))
    matin = compute_majoration(defn, _ctx(WorkerProfile(type_nuit="poste-matin", heures_nuit=10), base=21700, classe=1))
    assert nuit.meta["taux"] == 20
    assert matin.meta["taux"] == 15
    assert nuit.amount > matin.amount == 215


def test_majoration_nuit_aucune():
    defn = _maj(SemanticId.MAJORATION_NUIT)
    assert compute_majoration(defn, _ctx(WorkerProfile(type_nuit="aucun", heures_nuit=10))).amount == 0
    assert compute_majoration(defn, _ctx(WorkerProfile(type_nuit="poste-nuit", heures_nuit=0))).amount == 0


def test_majoration_dimanche():
    # 8 h × 11,92 €/h × 100 % = 95,38 €/mois → 1 145 €/an
    p = WorkerProfile(heures_dimanche=8)
    r = compute_majoration(_maj(SemanticId.MAJORATION_DIMANCHE), _ctx(p, base=21700, classe=1))
    assert r.amount == 1145
    r_kuhn = compute_majoration(_maj(SemanticId.MAJORATION_DIMANCHE, KUHN), _ctx(p, base=21700, classe=1))
    assert r_kuhn.meta["taux"] == 50
    assert r_kuhn.amount < r.amount


def test_forfaits_ccn():
    heures, jours = (next(d for d in convention_defs(ElementKind.FORFAIT) if d.config["forfait"] == k)
                     for k in ("heures", "jours"))
    ctx_h = _ctx(WorkerProfile(forfait="heures"), base=40000, classe=13, cadre=True)
    ctx_j = _ctx(WorkerProfile(forfait="jours"), base=40000, classe=13, cadre=True)
    assert compute_forfait(heures, ctx_h).amount == 6000
    assert compute_forfait(jours, ctx_j).amount == 12000
    # forfait non choisi : rien
    assert compute_forfait(jours, ctx_h).amount == 0
    assert compute_forfait(heures, _ctx(WorkerProfile(), base=40000, classe=13, cadre=True)).amount == 0


def test_forfait_accord():
    # taux propre à l'accord, ligne sourcée accord
    accord = accords.coerce_agreement({"id": "t", "nom_court": "T", "forfaits": {"jours": 0.35}})
    defn = accords.forfait_defs(accord)["jours"]
    ctx = _ctx(WorkerProfile(forfait="jours"), base=40000, classe=13, cadre=True, agreement=accord)
    r = compute_forfait(defn, ctx)
    assert r.amount == 14000
    assert r.source is RuleSource.ACCORD
    assert compute_forfait(defn, _ctx(WorkerProfile(forfait="heures"), base=40000, classe=13, cadre=True)).amount == 0

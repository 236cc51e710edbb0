from ccnm.schemas import Agreement, ValueKind, WorkerProfile
from ccnm.services import agreements as accords


def test_registre_kuhn():
    kuhn = accords.get_agreement("kuhn")
    assert isinstance(kuhn, Agreement)
    assert kuhn.nom_court == "Kuhn"
    assert kuhn.anciennete.tous_statuts is True
    assert kuhn.repartition_13_mois.actif and kuhn.repartition_13_mois.mois_versement == 11
    assert accords.has_agreement("kuhn")
    assert not accords.has_agreement("inconnu")
    assert accords.get_agreement(None) is None
    assert "kuhn" in [a["id"] for a in accords.agreement_summaries()]


def test_registre_ignore_fichier_invalide(tmp_path, monkeypatch):
    (tmp_path / "ok.yml").write_text("id: ok\nnom: OK SAS\nnom_court: OK\n", encoding="utf-8")
    (tmp_path / "ko.yml").write_text("id: ko\nprimes: 12\n", encoding="utf-8")
    (tmp_path / "vide.yml").write_text("", encoding="utf-8")
    monkeypatch.setattr(accords, "ACCORDS_DIR", tmp_path)
    assert [a.id for a in accords.list_agreements()] == ["ok"]


def test_hydrate_valeurs_par_defaut():
    kuhn = accords.get_agreement("kuhn")
    p = accords.hydrate_accord_inputs(kuhn, WorkerProfile())
    assert p.accord_inputs["travailEquipe"] is False
    assert p.accord_inputs["heuresEquipe"] == 151.67
    assert p.accord_inputs["primeVacances"] is True


def test_hydrate_conserve_la_saisie():
    kuhn = accords.get_agreement("kuhn")
    saisie = WorkerProfile(accord_inputs={"travailEquipe": True, "heuresEquipe": 80})
    p = accords.hydrate_accord_inputs(kuhn, saisie)
    assert p.accord_inputs["travailEquipe"] is True
    assert p.accord_inputs["heuresEquipe"] == 80
    # profil d'origine inchangé
    assert "primeVacances" not in saisie.accord_inputs


def test_prime_value_accord_et_modalite():
    kuhn = accords.get_agreement("kuhn")
    equipe = kuhn.primes[0]
    assert accords.get_prime_value(equipe, WorkerProfile()) == 0.82
    modalite = equipe.model_copy(update={"source_valeur": "modalite", "valeur_accord": None})
    assert accords.get_prime_value(modalite, WorkerProfile(accord_inputs={"primeEquipe": "1,10"})) == 1.10
    assert accords.get_prime_value(modalite, WorkerProfile()) == 0.0


def test_prime_active_saisie_texte():
    kuhn = accords.get_agreement("kuhn")
    equipe = kuhn.primes[0]
    assert accords.is_prime_active(equipe, WorkerProfile(accord_inputs={"travailEquipe": "true"}))
    assert not accords.is_prime_active(equipe, WorkerProfile(accord_inputs={"travailEquipe": "non"}))
    assert not accords.is_prime_active(equipe, WorkerProfile())


def test_definitions_elements_accord():
    kuhn = accords.get_agreement("kuhn")
    assert [d.semantic_id for d in accords.prime_defs(kuhn, ValueKind.HORAIRE)] == ["primeEquipe"]
    assert [d.semantic_id for d in accords.prime_defs(kuhn, ValueKind.MONTANT)] == ["primeVacances"]
    maj = accords.majoration_defs(kuhn)
    assert set(maj) == {"majorationNuit", "majorationDimanche"}
    assert accords.forfait_defs(kuhn) == {}
    assert accords.anciennete_def(kuhn).label == "Prime d'ancienneté Kuhn"

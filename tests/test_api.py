from fastapi.testclient import TestClient

from ccnm.main import app


client = TestClient(app)


def test_api_accords():
    r = client.get("/api/accords")
    assert r.status_code == 200
    assert "kuhn" in [a["id"] for a in r.json()["items"]]


def test_api_classification():
    r = client.get("/api/classification", params={"scores": [3, 3, 3, 3, 3, 3]})
    assert r.status_code == 200
    assert r.json() == {"groupe": "C", "classe": 5, "total_score": 18, "is_cadre": False}


def test_api_classification_invalide_repli():
    r = client.get("/api/classification", params={"scores": [1, 1]})
    assert r.status_code == 200
    assert (r.json()["groupe"], r.json()["classe"]) == ("A", 1)


def test_api_classes_groupe():
    assert client.get("/api/groupes/f/classes").json()["classes"] == [11, 12]
    assert client.get("/api/groupes/Z/classes").status_code == 404


def test_api_remuneration_accord_du_profil():
    payload = {"profile": {"scores": [3, 3, 3, 3, 3, 3], "anciennete": 5,
                           "accord_actif": True, "accord_id": "kuhn"}}
    r = client.post("/api/remuneration", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body["scenario"] == "non-cadre"
    assert body["total"] == 24250 + 1213 + 525


def test_api_remuneration_accord_inconnu():
    r = client.post("/api/remuneration", json={"profile": {}, "accord_id": "nope"})
    assert r.status_code == 404


def test_api_remuneration_saisie_invalide():
    r = client.post("/api/remuneration", json={"profile": {"forfait": "mensuel"}})
    assert r.status_code == 422


def test_api_arretees():
    payload = {
        "date_debut": "2024-01-01",
        "date_fin": "2024-02-29",
        "date_embauche": "2020-01-01",
        "salaires_par_mois": {"2024-01": 1708.33},
        "profile": {"scores": [1, 1, 1, 1, 1, 1]},
    }
    r = client.post("/api/arretees", json=payload)
    assert r.status_code == 200
    body = r.json()
    assert body["total_arretees"] == 100
    assert [row["periode_key"] for row in body["details_tous_mois"]] == ["2024-01"]


def test_api_periode():
    r = client.get("/api/arretees/periode", params={"date_embauche": "2025-03-10"})
    assert r.status_code == 200
    assert r.json()["date_debut"] == "2025-03-10"

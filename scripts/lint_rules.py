#!/usr/bin/env python3
import sys
import argparse
from pathlib import Path
from datetime import date
import yaml

ROOT = Path(__file__).resolve().parents[1]
RULES = ROOT / "ccnm" / "rules"

sys.path.insert(0, str(ROOT))
from ccnm.services.classification import mapping_gaps  # noqa: E402


def load_yaml(p: Path):
    try:
        return yaml.safe_load(p.read_text(encoding="utf-8"))
    except Exception as e:
        print(f"[ERR] YAML invalide: {p}: {e}")
        return None


def _is_number(x):
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _is_iso_date(s) -> bool:
    try:
        date.fromisoformat(str(s))
        return True
    except ValueError:
        return False


def _is_rate(x) -> bool:
    return _is_number(x) and 0 <= x <= 2


def check_convention(p: Path, data) -> bool:
    if not isinstance(data, dict):
        print(f"[ERR] {p}: doit être un objet")
        return False
    ok = True
    eff = (data.get("meta") or {}).get("effective_from")
    if not _is_iso_date(eff):
        print(f"[ERR] {p}: meta.effective_from non‑ISO: {eff}")
        ok = False

    smh = data.get("smh") or {}
    if sorted(smh) != list(range(1, 19)):
        print(f"[ERR] {p}: smh doit couvrir les classes 1 à 18")
        ok = False
    prev = 0
    for classe in sorted(k for k in smh if _is_number(k)):
        v = smh[classe]
        if not _is_number(v) or v <= prev:
            print(f"[ERR] {p}: smh.{classe} doit être numérique et croissant")
            ok = False
        else:
            prev = v

    # barème débutants : montants < SMH de la classe
    for classe, tranches in ((data.get("bareme_debutants") or {}).get("classes") or {}).items():
        if not isinstance(tranches, dict) or not tranches:
            print(f"[ERR] {p}: bareme_debutants.classes.{classe} doit être un objet non vide")
            ok = False
            continue
        for t, v in tranches.items():
            if not _is_number(v) or (classe in smh and v >= smh[classe]):
                print(f"[ERR] {p}: bareme_debutants.{classe}.{t} doit être numérique et < SMH")
                ok = False

    for classe, taux in ((data.get("anciennete") or {}).get("taux_par_classe") or {}).items():
        if not _is_number(taux):
            print(f"[ERR] {p}: anciennete.taux_par_classe.{classe} doit être numérique")
            ok = False

    for err in mapping_gaps(data.get("mapping_points") or []):
        print(f"[ERR] {p}: mapping_points: {err}")
        ok = False

    for section in ("forfaits", "majorations"):
        for k, v in (data.get(section) or {}).items():
            if not _is_rate(v):
                print(f"[ERR] {p}: {section}.{k} doit être un taux (0 à 2)")
                ok = False
    return ok


def check_accord(p: Path, data) -> bool:
    if not isinstance(data, dict):
        print(f"[ERR] {p}: doit être un objet")
        return False
    ok = True
    for k in ("id", "nom", "nom_court"):
        if not data.get(k):
            print(f"[ERR] {p}: champ requis manquant '{k}'")
            ok = False
    for k in ("date_effet", "date_signature"):
        if data.get(k) is not None and not _is_iso_date(data[k]):
            print(f"[ERR] {p}: {k} non‑ISO: {data[k]}")
            ok = False

    anc = data.get("anciennete")
    if anc is not None and not isinstance(anc, dict):
        print(f"[ERR] {p}: anciennete doit être un objet")
        ok = False
    elif anc is not None:
        bareme = anc.get("bareme") or {}
        if not bareme:
            print(f"[ERR] {p}: anciennete.bareme vide")
            ok = False
        for annees, taux in bareme.items():
            if not _is_number(annees) or not _is_rate(taux):
                print(f"[ERR] {p}: anciennete.bareme.{annees} invalide")
                ok = False
        if _is_number(anc.get("seuil")) and _is_number(anc.get("plafond")) and anc["seuil"] > anc["plafond"]:
            print(f"[ERR] {p}: anciennete.seuil > anciennete.plafond")
            ok = False

    primes = data.get("primes") or []
    if not isinstance(primes, list):
        print(f"[ERR] {p}: 'primes' doit être une liste")
        return False
    for i, prime in enumerate(primes):
        for k in ("id", "label", "value_type"):
            if k not in prime:
                print(f"[ERR] {p}: prime #{i} manque '{k}'")
                ok = False
        if prime.get("value_type") not in {"horaire", "montant", "pourcentage"}:
            print(f"[ERR] {p}: prime #{i} value_type inconnu: {prime.get('value_type')}")
            ok = False
        mois = prime.get("mois_versement")
        if mois is not None and not (isinstance(mois, int) and 1 <= mois <= 12):
            print(f"[ERR] {p}: prime #{i} mois_versement hors 1..12")
            ok = False
    return ok


def main():
    ap = argparse.ArgumentParser(description="Valide les référentiels YAML (convention + accords)")
    ap.add_argument("--rules-dir", type=Path, default=RULES, help="Dossier des règles (défaut: ccnm/rules/)")
    args = ap.parse_args()

    ok = True
    for p in sorted(args.rules_dir.rglob("*.yml")):
        data = load_yaml(p)
        if data is None:
            ok = False
            continue
        if p.parent.name == "convention":
            ok = check_convention(p, data) and ok
        elif p.parent.name == "accords":
            ok = check_accord(p, data) and ok

    sys.exit(0 if ok else 1)

if __name__ == "__main__":
    main()

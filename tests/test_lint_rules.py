import importlib.util
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parents[1]


def _lint():
    spec = importlib.util.spec_from_file_location("lint_rules", ROOT / "scripts" / "lint_rules.py")
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def _load(rel):
    return yaml.safe_load((ROOT / "ccnm" / "rules" / rel).read_text(encoding="utf-8"))


def test_referentiels_livres_valides():
    lint = _lint()
    assert lint.check_convention(Path("ccnm.yml"), _load("convention/ccnm.yml"))
    assert lint.check_accord(Path("kuhn.yml"), _load("accords/kuhn.yml"))


def test_convention_trou_dans_la_grille(capsys):
    lint = _lint()
    data = _load("convention/ccnm.yml")
    data["mapping_points"] = [row for row in data["mapping_points"] if row[3] != 9]
    assert not lint.check_convention(Path("ccnm.yml"), data)
    assert "[ERR]" in capsys.readouterr().out


def test_accord_prime_mal_formee():
    lint = _lint()
    data = _load("accords/kuhn.yml")
    data["primes"][1]["mois_versement"] = 13
    assert not lint.check_accord(Path("kuhn.yml"), data)


def test_referentiels_livres_avec_le_package():
    # les YAML voyagent avec le package (installation non éditable comprise)
    from ccnm.services.rules_catalog import APP_DIR, convention_path, load_convention

    assert (APP_DIR / "rules" / "convention" / "ccnm.yml").is_file()
    assert (APP_DIR / "rules" / "accords" / "kuhn.yml").is_file()
    assert convention_path().is_file()
    assert load_convention().smh[1] == 21700

# ccnm/services/pdf_renderer.py

from pathlib import Path
from datetime import datetime
from jinja2 import Environment, FileSystemLoader, select_autoescape
import os
KEEP_HTML_DEBUG = os.getenv("CCNM_KEEP_HTML_DEBUG", "0").lower() in {"1", "true", "yes"}


APP_DIR = Path(__file__).resolve().parents[1]
TEMPLATES_DIR = APP_DIR / "templates"
OUT_DIR = APP_DIR.parent / "var" / "generated"

MOIS_FR = ["janvier", "février", "mars", "avril", "mai", "juin", "juillet",
           "août", "septembre", "octobre", "novembre", "décembre"]


def format_euros(value, decimals: int = 2) -> str:
    """1234.5 → "1 234,50 €"."""
    if value is None:
        return ""
    s = f"{float(value):,.{decimals}f}"
    return s.replace(",", " ").replace(".", ",") + " €"


def format_mois(d) -> str:
    return f"{MOIS_FR[d.month - 1]} {d.year}"


def _env() -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml", "j2"]),
    )
    env.filters["euros"] = format_euros
    env.filters["mois"] = format_mois
    return env


def render_html(template_rel_path: str, context: dict) -> str:
    ctx = dict(context)
    ctx.setdefault("generated_at", datetime.now())
    return _env().get_template(template_rel_path).render(**ctx)


def render_pdf_bytes(template_rel_path: str, context: dict) -> bytes:
    # Import tardif de WeasyPrint pour éviter de bloquer le démarrage si libs manquantes
    from weasyprint import HTML

    html_str = render_html(template_rel_path, context)

    # Debug optionnel : garder l'HTML rendu (désactivé par défaut)
    if KEEP_HTML_DEBUG:
        OUT_DIR.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        with open(OUT_DIR / f"arretees_{ts}.html", "w", encoding="utf-8") as f:
            f.write(html_str)

    # write_pdf() sans target retourne directement des bytes
    return HTML(string=html_str, base_url=str(TEMPLATES_DIR)).write_pdf()

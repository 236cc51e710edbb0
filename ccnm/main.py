# ccnm/main.py

# Standard library
from datetime import date
from io import BytesIO
from typing import List, Optional
import logging

# Third-party
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.concurrency import run_in_threadpool

# Local modules
from ccnm.schemas import (
    Agreement, ArrearsResult, ArreteesRequest, ClassificationResponse,
    CompensationResult, PeriodeArretees, RemunerationRequest, WorkerProfile,
)
from ccnm.services.agreements import agreement_summaries, get_agreement, hydrate_accord_inputs
from ccnm.services.arretees import arretees_report_context, calculer_arretees, compute_periode_arretees
from ccnm.services.classification import get_active_classification, get_classes_for_groupe, is_cadre
from ccnm.services.pdf_renderer import render_pdf_bytes
from ccnm.services.remuneration import calculate_annual_remuneration

# --- logger minimal (n'affecte pas la prod) ---
logger = logging.getLogger("ccnm")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO)

# --- app FastAPI ---
app = FastAPI(title="CCNM Rémunération", version="0.1")


def _resolve_accord(accord_id: Optional[str], profile: WorkerProfile) -> Optional[Agreement]:
    """Accord demandé explicitement, sinon celui du profil s'il est activé. 404 si inconnu."""
    ident = accord_id or (profile.accord_id if profile.accord_actif else None)
    if not ident:
        return None
    accord = get_agreement(ident)
    if accord is None:
        raise HTTPException(status_code=404, detail=f"accord inconnu: {ident}")
    return accord


@app.get("/api/accords")
def api_accords():
    return {"items": agreement_summaries()}


@app.get("/api/classification", response_model=ClassificationResponse)
def api_classification(scores: List[int] = Query(..., description="6 scores de 1 à 10")):
    # saisie invalide → repli sur A1 (pas d'erreur)
    classif = get_active_classification(WorkerProfile(scores=scores))
    return ClassificationResponse(
        groupe=classif.groupe,
        classe=classif.classe,
        total_score=classif.total_score,
        is_cadre=is_cadre(classif.classe),
    )


@app.get("/api/groupes/{groupe}/classes")
def api_classes_groupe(groupe: str):
    classes = get_classes_for_groupe(groupe.upper())
    if not classes:
        raise HTTPException(status_code=404, detail=f"groupe inconnu: {groupe}")
    return {"groupe": groupe.upper(), "classes": classes}


@app.post("/api/remuneration", response_model=CompensationResult)
def api_remuneration(req: RemunerationRequest):
    accord = _resolve_accord(req.accord_id, req.profile)
    profile = hydrate_accord_inputs(accord, req.profile)
    return calculate_annual_remuneration(profile, accord, mode=req.mode, as_of=req.as_of)


@app.get("/api/arretees/periode", response_model=PeriodeArretees)
def api_arretees_periode(
    date_embauche: date,
    date_changement_classification: Optional[date] = None,
    date_rupture: Optional[date] = None,
):
    return compute_periode_arretees(date_embauche, date_changement_classification, date_rupture)


def _run_arretees(req: ArreteesRequest):
    accord = _resolve_accord(req.accord_id, req.profile)
    profile = hydrate_accord_inputs(accord, req.profile)
    result = calculer_arretees(
        req.date_debut,
        req.date_fin,
        req.date_embauche,
        req.date_changement_classification,
        req.salaires_par_mois,
        profile,
        accord,
        req.smh_seul,
        prorata_entree=req.prorata_entree,
    )
    return result, profile, accord


@app.post("/api/arretees", response_model=ArrearsResult)
def api_arretees(req: ArreteesRequest):
    result, _, _ = _run_arretees(req)
    return result


@app.post("/api/arretees/pdf")
async def api_arretees_pdf(req: ArreteesRequest):
    result, profile, accord = _run_arretees(req)
    periode = PeriodeArretees(
        date_debut=req.date_debut,
        date_fin=req.date_fin,
        date_prescription=compute_periode_arretees(req.date_embauche).date_prescription,
    )
    context = arretees_report_context(result, periode, profile, accord)
    try:
        pdf_bytes = await run_in_threadpool(render_pdf_bytes, "arretees.html.j2", context)
    except Exception as e:
        logger.exception("arretees pdf render failed: %s", e)
        return JSONResponse({"error": "pdf_failed", "detail": str(e)}, status_code=500)
    headers = {"Content-Disposition": 'inline; filename="rappel_salaire.pdf"'}
    return StreamingResponse(BytesIO(pdf_bytes), media_type="application/pdf", headers=headers)

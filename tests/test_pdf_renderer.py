from datetime import date

from ccnm.schemas import WorkerProfile
from ccnm.services.arretees import arretees_report_context, calculer_arretees, compute_periode_arretees
from ccnm.services.pdf_renderer import format_euros, render_html


def test_format_euros():
    assert format_euros(1234.5) == "1 234,50 €"
    assert format_euros(525, 0) == "525 €"
    assert format_euros(None) == ""


def test_rendu_html_arretees():
    res = calculer_arretees(date(2024, 1, 1), date(2024, 2, 29), date(2020, 1, 1), None,
                            {"2024-01": 1708.33, "2024-02": 1900}, WorkerProfile(scores=[1] * 6), None, True)
    periode = compute_periode_arretees(date(2020, 1, 1), today=date(2026, 10, 19))
    html = render_html("arretees.html.j2", arretees_report_context(res, periode))
    assert "janvier 2024" in html
    assert "février 2024" in html
    assert "100,00 €" in html
    assert "Total des arriérés : 100 €" in html
    assert "(1 mois sur 2)" in html

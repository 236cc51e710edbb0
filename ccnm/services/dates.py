# ccnm/services/dates.py
from __future__ import annotations

import calendar
from datetime import date, timedelta
from typing import Iterator


def month_key(d: date) -> str:
    """Clé de période 'AAAA-MM'."""
    return f"{d.year:04d}-{d.month:02d}"


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def last_of_month(d: date) -> date:
    return d.replace(day=calendar.monthrange(d.year, d.month)[1])


def iter_months(debut: date, fin: date) -> Iterator[date]:
    """1er de chaque mois de [debut, fin], bornes incluses (au mois près)."""
    cur = first_of_month(debut)
    stop = first_of_month(fin)
    while cur <= stop:
        yield cur
        if cur.month == 12:
            cur = date(cur.year + 1, 1, 1)
        else:
            cur = date(cur.year, cur.month + 1, 1)


def add_years(d: date, n: int) -> date:
    """Décale d'années entières ; un 29 février devient 28 février si besoin."""
    try:
        return d.replace(year=d.year + n)
    except ValueError:
        return d.replace(year=d.year + n, day=28)


def full_years_between(start: date, end: date) -> int:
    """Années révolues entre deux dates (0 si end < start)."""
    years = end.year - start.year
    if (end.month, end.day) < (start.month, start.day):
        years -= 1
    return max(0, years)


def working_days_between(start: date, end: date) -> int:
    """Jours ouvrés (lundi → vendredi) de [start, end], bornes incluses."""
    if end < start:
        return 0
    n = 0
    cur = start
    while cur <= end:
        if cur.weekday() < 5:
            n += 1
        cur += timedelta(days=1)
    return n


def prorata_entree(montant_mensuel: float, date_debut: date, jours_reference: int = 22) -> float:
    """
    Proratise le mois d'entrée : montant × jours ouvrés travaillés / jours de référence,
    sans jamais dépasser le montant mensuel plein.
    """
    if jours_reference <= 0:
        return montant_mensuel
    jours = working_days_between(date_debut, last_of_month(date_debut))
    return min(montant_mensuel, montant_mensuel * jours / jours_reference)

# ccnm/services/errors.py


class CCNMError(Exception):
    """Erreur de base du moteur de rémunération CCNM."""


class InvalidInput(CCNMError):
    """Saisie invalide (scores hors bornes, longueur incorrecte, ...)."""


class ConfigurationError(CCNMError):
    """Référentiel ou accord mal formé (classe absente de la grille, YAML illisible, ...)."""


class MissingData(CCNMError):
    """Donnée attendue absente (ex. salaire déclaré d'un mois)."""

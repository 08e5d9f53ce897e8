"""Erreurs métier levées par le moteur de politique et les machines d'état.

Chaque erreur porte son code HTTP; les gestionnaires enregistrés dans
app_factory.py les convertissent en enveloppe {success: false, message, ...}.
"""
from typing import List, Optional


class DomainError(Exception):
    status_code = 500
    default_message = "Erreur serveur"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DomainError):
    status_code = 400
    default_message = "Données invalides"

    def __init__(self, message: Optional[str] = None, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []


class NotFound(DomainError):
    status_code = 404
    default_message = "Ressource non trouvée"


class Forbidden(DomainError):
    status_code = 403
    default_message = "Accès non autorisé"


class InvalidTransition(DomainError):
    status_code = 400
    default_message = "Transition de statut invalide"

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        self.current = current
        self.target = target
        super().__init__(message or f"Transition de statut invalide: '{current}' -> '{target}'")


class ServerError(DomainError):
    """Erreur inattendue: le gestionnaire générique répond avec ce code et ce message."""
    status_code = 500
    default_message = "Erreur serveur"

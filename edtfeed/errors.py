"""
Exception types.

Only ConfigurationError and TransportError are meant to reach the user.
SecondaryFeedError and CacheError are raised and caught inside the package
so that their boundaries stay explicit in the code.
"""

from __future__ import annotations


TRANSPORT_ERROR_MESSAGE = "Impossible de charger le calendrier. Vérifiez l'URL ou votre connexion."
CONFIGURATION_ERROR_MESSAGE = "Aucune URL de calendrier configurée. Allez dans les paramètres."


class EdtFeedError(Exception):
    """Base class for all edtfeed errors."""


class ConfigurationError(EdtFeedError):
    def __init__(self, message: str = CONFIGURATION_ERROR_MESSAGE) -> None:
        super().__init__(message)


class TransportError(EdtFeedError):
    def __init__(self, url: str, message: str = TRANSPORT_ERROR_MESSAGE) -> None:
        super().__init__(message)
        self.url = url


class SecondaryFeedError(EdtFeedError):
    pass


class CacheError(EdtFeedError):
    pass

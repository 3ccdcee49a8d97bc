"""
Exception classes for Soundboard Work.

Hierarchy:
    SoundboardError (base)
        PayloadError - malformed JSON coming from a client or an external API
        QueueError - queue operations that cannot be applied
            EntryNotFound - the referenced queue entry no longer exists
            NotEntryOwner - only the user who added an entry may remove it
        SpotifyNotConnected - the user has no stored Spotify session
        SpotifyAuthError - authorization code or refresh exchange failed
"""


class SoundboardError(Exception):
    """Base exception; carries the HTTP status routes should answer with"""

    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        return self.message


class PayloadError(SoundboardError):
    status_code = 400


class QueueError(SoundboardError):
    status_code = 409


class EntryNotFound(QueueError):
    status_code = 404


class NotEntryOwner(QueueError):
    status_code = 403


class SpotifyNotConnected(SoundboardError):
    status_code = 404

    def __init__(self, message="Not connected to Spotify", details=None):
        super().__init__(message, details)


class SpotifyAuthError(SoundboardError):
    status_code = 502

from __future__ import annotations


class FogExplorerError(Exception):
    pass


class InvalidInputError(FogExplorerError, ValueError):
    pass


class ProfileNotFoundError(FogExplorerError, KeyError):
    def __init__(self, profile_id: str):
        super().__init__(profile_id)
        self.profile_id = profile_id

    def __str__(self) -> str:
        return f"profile {self.profile_id} not found"


class SessionNotFoundError(FogExplorerError, KeyError):
    def __init__(self, session_id: str):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"session {self.session_id} not found"


class LocationSourceError(FogExplorerError):
    """Failure reported by a location source.

    Codes follow the platform geolocation convention: 1 permission denied,
    2 position unavailable, 3 timeout. Anything else is reported as unknown.
    """

    CODES = {1: "permission_denied", 2: "position_unavailable", 3: "timeout"}
    MESSAGES = {
        "permission_denied": "Location permission was denied.",
        "position_unavailable": "Location information is unavailable.",
        "timeout": "The location request timed out.",
        "unknown": "Unable to get location information.",
    }

    def __init__(self, code: int | str, message: str | None = None):
        if isinstance(code, int):
            code = self.CODES.get(code, "unknown")
        if code not in self.MESSAGES:
            code = "unknown"
        self.code = code
        self.message = message or self.MESSAGES[code]
        super().__init__(self.message)

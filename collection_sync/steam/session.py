"""
Session ID providers.

Mutating collection calls must carry the ``sessionid`` of a logged-in
community session. How it is obtained is up to the caller.
"""

from typing import Protocol


class SessionProvider(Protocol):
    """Supplies the session ID sent with every mutating call."""

    def current_session_id(self) -> str:
        ...


class StaticSessionProvider:
    """Returns a fixed, preconfigured session ID."""

    def __init__(self, session_id: str):
        self._session_id = session_id

    def current_session_id(self) -> str:
        return self._session_id

    def __repr__(self) -> str:
        return "StaticSessionProvider(session_id='***REDACTED***')"


class CookieSessionProvider:
    """
    Reads the session ID out of a ``Cookie`` header string.

    Returns an empty string when no ``sessionid`` cookie is present.
    """

    COOKIE_NAME = "sessionid"

    def __init__(self, cookie_header: str):
        self._cookie_header = cookie_header or ""

    @staticmethod
    def parse(cookie_header: str) -> dict[str, str]:
        """Split a ``name=value; name2=value2`` header into a dict."""
        cookies = {}
        for part in cookie_header.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name] = value
        return cookies

    def current_session_id(self) -> str:
        return self.parse(self._cookie_header).get(self.COOKIE_NAME, "")

    def __repr__(self) -> str:
        return "CookieSessionProvider(cookie_header='***REDACTED***')"

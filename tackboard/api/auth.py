"""
Authentication gate for the HTTP command surface.

A request presents `Authorization: Bearer <key>`. Each key is scoped to
either every board ("*") or a fixed set of board ids. Interactive callers
(CLI, REPL) never go through this gate.
"""
import hmac
import logging
from typing import Iterable, Mapping, Optional

from ..core.exceptions import AuthError

logger = logging.getLogger(__name__)

WILDCARD = "*"


def bearer_token(headers: Mapping[str, str]) -> Optional[str]:
    """Extract the token from an Authorization header, or None."""
    header = headers.get("Authorization", "") or ""
    if not header.startswith("Bearer "):
        return None
    token = header[len("Bearer "):].strip()
    return token or None


class AuthGate:
    """Approves or denies access to one board."""

    def authenticate(self, headers: Mapping[str, str], board_id: str) -> bool:
        raise NotImplementedError

    def require(self, headers: Mapping[str, str], board_id: str) -> None:
        """Raise AuthError unless the request may access the board."""
        if not self.authenticate(headers, board_id):
            raise AuthError()


class ApiKeyAuthGate(AuthGate):
    """Static API keys loaded from configuration."""

    def __init__(self, keys: Mapping[str, Iterable[str]]):
        self._keys = {key: frozenset(boards) for key, boards in keys.items()}

    def _lookup(self, token: str) -> Optional[frozenset]:
        # Compare every key in constant time instead of a dict lookup
        found = None
        for key, boards in self._keys.items():
            if hmac.compare_digest(key.encode(), token.encode()):
                found = boards
        return found

    def authenticate(self, headers: Mapping[str, str], board_id: str) -> bool:
        token = bearer_token(headers)
        if token is None:
            return False
        boards = self._lookup(token)
        if boards is None:
            logger.warning("Rejected unknown API key for board %s", board_id)
            return False
        if WILDCARD in boards or board_id in boards:
            return True
        logger.warning("API key not scoped to board %s", board_id)
        return False

"""Authorization gate deciding which origins may contribute files."""

from __future__ import annotations

from typing import Iterable, Union

from core.errors import UnauthorizedError
from core.models import Origin, OriginKind
from core.origins import build_allow_list, normalize_origin_id


class AuthorizationGate:
    """Allow-list check for group and channel origins.

    The allow-list is frozen when the gate is built. An empty allow-list
    rejects every group and channel; reloading means building a new gate.
    """

    def __init__(self, configured_ids: Iterable[Union[int, str]]) -> None:
        self._allowed = build_allow_list(configured_ids)

    @property
    def allowed(self) -> frozenset[str]:
        return self._allowed

    def is_authorized(self, origin_id: Union[int, str]) -> bool:
        return normalize_origin_id(origin_id) in self._allowed

    def admits(self, origin_id: Union[int, str], origin_kind: OriginKind) -> bool:
        """Return True when an event from this origin may be ingested.

        Private chats never contribute files; they are eligible for search only.
        """

        if origin_kind is OriginKind.PRIVATE:
            return False
        return self.is_authorized(origin_id)

    def require(self, origin: Origin) -> None:
        """Raise UnauthorizedError for a group or channel outside the allow-list."""

        if origin.kind is not OriginKind.PRIVATE and not self.is_authorized(origin.chat_id):
            raise UnauthorizedError(f"{origin.kind.value} {origin.chat_id} is not allow-listed")

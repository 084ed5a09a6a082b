from __future__ import annotations

import asyncio
from collections import defaultdict

from .states import ConversationState, Start


class SessionStore:
    """In-memory conversation state keyed by account.

    Only accounts with a flow in progress have an entry; storing ``Start``
    drops it. Nothing is persisted, so a restart returns every account to
    ``Start``.
    """

    def __init__(self) -> None:
        self._states: dict[int, ConversationState] = {}
        self._locks: defaultdict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

    def get(self, account_id: int) -> ConversationState:
        return self._states.get(account_id, Start())

    def set(self, account_id: int, state: ConversationState) -> None:
        if isinstance(state, Start):
            self._states.pop(account_id, None)
        else:
            self._states[account_id] = state

    def reset(self, account_id: int) -> None:
        self._states.pop(account_id, None)

    def lock(self, account_id: int) -> asyncio.Lock:
        """Lock serialising message handling for one account."""
        return self._locks[account_id]

    def __len__(self) -> int:
        return len(self._states)

"""Selection controller — which match is active, if any."""
import logging
from typing import Optional

logger = logging.getLogger(__name__)

POLICY_FIRST = "first"
POLICY_NONE = "none"
POLICIES = (POLICY_FIRST, POLICY_NONE)


class SelectionController:
    """Single source of truth for the selected match index.

    List clicks and span clicks both end up in ``select``; nothing else
    writes ``_index``.
    """

    def __init__(self, policy: str = POLICY_FIRST):
        if policy not in POLICIES:
            raise ValueError(f"unknown selection policy: {policy!r}")
        self.policy = policy
        self._index: Optional[int] = None
        self._count = 0

    @property
    def index(self) -> Optional[int]:
        return self._index

    @property
    def count(self) -> int:
        return self._count

    def select(self, index: Optional[int]) -> bool:
        """Select ``index`` if it is in range, else clear. Returns True if changed."""
        previous = self._index
        if index is not None and 0 <= index < self._count:
            self._index = index
        else:
            if index is not None:
                logger.debug("Ignoring stale selection %r (%d matches)", index, self._count)
            self._index = None
        return self._index != previous

    def select_from_segment(self, match_index: Optional[int]) -> bool:
        """Span click. Plain text (``None``) leaves the selection alone."""
        if match_index is None:
            return False
        return self.select(match_index)

    def reset(self, count: int, recover: bool = True):
        """Revalidate after the match set was replaced.

        With ``recover`` the configured policy picks the new selection;
        without it the selection is simply cleared.
        """
        self._count = max(0, count)
        if recover and self.policy == POLICY_FIRST and self._count:
            self._index = 0
        else:
            self._index = None

    def clear(self):
        self._index = None

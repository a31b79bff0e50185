"""
registry.py - Insertion-ordered registry of depositing accounts
"""

from typing import List, Set

from .core import OutOfBounds


class AccountRegistry:
    """
    Every account that has ever deposited, in first-deposit order.

    Backed by a list for stable ordering and slicing, and a set for O(1)
    membership checks.
    """

    def __init__(self):
        self._accounts: List[str] = []
        self._members: Set[str] = set()

    def register_if_new(self, account: str) -> bool:
        """
        Register `account` unless already present.

        Returns:
            True if this call registered the account, False if it was already known
        """
        if account in self._members:
            return False
        self._members.add(account)
        self._accounts.append(account)
        return True

    def page(self, offset: int, count: int) -> List[str]:
        """
        Return up to `count` accounts starting at `offset`, in registration order.

        Raises:
            ValueError: If offset or count is negative
            OutOfBounds: If offset is at or beyond the registry size
        """
        if offset < 0 or count < 0:
            raise ValueError(f"offset and count must be non-negative: {offset}, {count}")
        total = len(self._accounts)
        if offset >= total:
            raise OutOfBounds(f"Offset {offset} out of bounds for {total} accounts")
        return self._accounts[offset:min(offset + count, total)]

    def count(self) -> int:
        return len(self._accounts)

    def accounts(self) -> List[str]:
        """Ordered copy of all registered accounts."""
        return list(self._accounts)

    def __contains__(self, account: object) -> bool:
        return account in self._members

    def __len__(self) -> int:
        return len(self._accounts)

    def __repr__(self) -> str:
        return f"AccountRegistry({len(self._accounts)} accounts)"

"""Per-game cache of human-readable client names for board and leaderboard views."""


class ClientNameCache:
    """Map client ids to display names.

    Real names are remembered from registration responses and client-info
    lookups. Unknown ids get sequential placeholders ("Player 1", "Player 2",
    ...) that stay stable until the cache is cleared.
    """

    def __init__(self) -> None:
        self._names: dict[str, str] = {}
        self._placeholders: dict[str, int] = {}
        self._next_number = 1

    def remember(self, client_id: str, name: str) -> None:
        """Record the true name for a client, replacing any placeholder."""
        self._names[client_id] = name
        self._placeholders.pop(client_id, None)

    def known(self, client_id: str) -> bool:
        return client_id in self._names

    def name_for(self, client_id: str) -> str:
        name = self._names.get(client_id)
        if name is not None:
            return name
        number = self._placeholders.get(client_id)
        if number is None:
            number = self._next_number
            self._placeholders[client_id] = number
            self._next_number += 1
        return f"Player {number}"

    def clear(self) -> None:
        self._names.clear()
        self._placeholders.clear()
        self._next_number = 1

    def __len__(self) -> int:
        return len(self._names) + len(self._placeholders)

"""Per-conversation chat logs kept as text files."""

from __future__ import annotations

from pathlib import Path


def sanitize_filename(name: str) -> str:
    """Replace spaces with underscores."""
    return name.replace(" ", "_")


class ChatHistory:
    """Stores each pair of users' messages in one file inside a folder."""

    def __init__(self, folder="history"):
        self.folder = Path(folder)

    def path_for(self, user1: str, user2: str) -> Path:
        """Return the log file for two users, the same in either order."""
        self.folder.mkdir(mode=0o700, parents=True, exist_ok=True)
        first, second = sorted((user1, user2))
        return self.folder / sanitize_filename(f"{first}_{second}.txt")

    def save(self, user1: str, user2: str, message: str) -> None:
        """Append one message to the conversation's log."""
        with self.path_for(user1, user2).open("a", encoding="utf-8", newline="\n") as handle:
            handle.write(f"{message}\n")

    def lines(self, user1: str, user2: str) -> list[str]:
        """Return the logged lines, newlines kept.

        Raises FileNotFoundError when the users have no history.
        """
        with self.path_for(user1, user2).open(encoding="utf-8", newline="\n") as handle:
            return list(handle)
"""Flat-file store of user names and passwords."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from pathlib import Path

_C_SPACE = " \t\n\v\f\r"


def _parse_line(line: str) -> tuple[str, str | None] | None:
    """Split a "user:password" line; the name is everything before the colon."""
    name, colon, rest = line.partition(":")
    if not name:
        return None
    if not colon:
        return name, None
    tokens = rest.split()
    secret = tokens[0] if tokens and rest.strip(_C_SPACE) else None
    return name, secret


class UserDatabase:
    """Users stored one per line as ``name:password``."""

    def __init__(self, path="users.txt"):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _entries(self) -> Iterator[tuple[str, str | None]]:
        try:
            with self.path.open(encoding="utf-8", newline="\n") as handle:
                for line in handle:
                    entry = _parse_line(line)
                    if entry is not None:
                        yield entry
        except FileNotFoundError:
            return

    def check_login(self, username: str, password: str) -> bool:
        """Return True when the name and password match a stored user."""
        return any(
            name == username and stored == password
            for name, stored in self._entries()
            if stored is not None
        )

    def username_exists(self, username: str) -> bool:
        """Return True when the name is already registered."""
        return any(name == username for name, _ in self._entries())

    def register(self, username: str, password: str) -> bool:
        """Add a user; return False when the name is already taken."""
        with self._lock:
            if self.username_exists(username):
                return False
            with self.path.open("a", encoding="utf-8", newline="\n") as handle:
                handle.write(f"{username}:{password}\n")
            return True
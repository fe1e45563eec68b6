"""Wire format shared by the chat server and client."""

from __future__ import annotations

import re
from typing import NamedTuple

PORT = 12345
BUFFER_SIZE = 1024
MAX_CLIENTS = 10

COMMAND_WIDTH = 15
NAME_WIDTH = 49

LOGIN = "LOGIN"
REGISTER = "REGISTER"

LOGIN_SUCCESS = "LOGIN_SUCCESS\n"
REGISTER_SUCCESS = "REGISTER_SUCCESS\n"
INVALID_FORMAT = "Invalid command format\n"
AUTH_FAILED = "Login/Register failed\n"
SELECT_PROMPT = "Select user to chat (1, 2, ...):\n"
HISTORY_HEADER = "=== Chat history ===\n"
NOW_CHATTING = "Now chatting. Type message:\n"
SWITCHED_CHAT = "Switched chat. Type message:\n"
EXITED_CHAT = "Exited chat. Select user to chat (1, 2, ...):\n"
INVALID_INDEX = "Invalid user index.\n"
ONLINE_HEADER = "Online users:\n"
NO_HISTORY = "No chat history found between {0} and {1}.\n"
HELP_TEXT = (
    "Available commands:\n"
    "/command        - Show this help message\n"
    "/list           - Show list of online users\n"
    "/switch <n>     - Switch chat to user n\n"
    "/exit           - Exit chat\n"
)

_C_SPACE = " \t\n\v\f\r"
_ATOI = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class ProtocolError(ValueError):
    """Raised when a message does not follow the expected format."""


class Credentials(NamedTuple):
    command: str
    username: str
    password: str


def build_command(verb: str, username: str, password: str) -> str:
    """Build a LOGIN or REGISTER request line."""
    return f"{verb} {username} {password}"[: BUFFER_SIZE - 1]


def _scan_words(text: str, widths: tuple[int, ...]) -> list[str]:
    """Read whitespace-separated words, each at most its width long."""
    words: list[str] = []
    pos = 0
    for width in widths:
        while pos < len(text) and text[pos] in _C_SPACE:
            pos += 1
        if pos >= len(text):
            break
        end = pos
        while end < len(text) and end - pos < width and text[end] not in _C_SPACE:
            end += 1
        words.append(text[pos:end])
        pos = end
    return words


def parse_credentials(text: str) -> Credentials:
    """Split a request into command, username and password.

    Raises ProtocolError when fewer than three words are present.
    """
    words = _scan_words(text, (COMMAND_WIDTH, NAME_WIDTH, NAME_WIDTH))
    if len(words) != 3:
        raise ProtocolError(f"expected command, username and password: {text!r}")
    return Credentials(*words)


def parse_index(text: str) -> int:
    """Turn a 1-based user number typed by a client into a 0-based index.

    Text without a leading number yields -1.
    """
    match = _ATOI.match(text)
    number = int(match.group(1)) if match else 0
    return number - 1
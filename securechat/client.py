"""Interactive TLS chat client."""

from __future__ import annotations

import argparse
import socket
import ssl
import sys
import threading
from collections.abc import Callable
from typing import Any, NamedTuple

from securechat import protocol
from securechat.protocol import BUFFER_SIZE, NAME_WIDTH, PORT

MENU = "Choose option:\n1. Login\n2. Register\nEnter choice: "


class Reply(NamedTuple):
    """Outcome of a login or registration request."""

    success: bool
    message: str


def create_client_context() -> ssl.SSLContext:
    """TLS context for the client; the server certificate is not verified."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    return context


class ChatClient:
    """Connection to a chat server over TLS."""

    def __init__(self, host, port=PORT):
        self.host = host
        self.port = port
        self.connection: Any = None

    def connect(self) -> str:
        """Open the TLS connection and return the negotiated cipher name.

        Raises ValueError when the host is not an IPv4 address.
        """
        try:
            socket.inet_pton(socket.AF_INET, self.host)
        except (OSError, TypeError) as exc:
            raise ValueError(f"Invalid address: {self.host!r}") from exc
        raw = socket.create_connection((self.host, self.port))
        try:
            self.connection = create_client_context().wrap_socket(raw)
        except BaseException:
            raw.close()
            raise
        cipher = self.connection.cipher()
        return cipher[0] if cipher else ""

    def _require_connection(self) -> Any:
        if self.connection is None:
            raise RuntimeError("not connected")
        return self.connection

    def send(self, text: str) -> None:
        """Send one message to the server."""
        self._require_connection().sendall(text.encode("utf-8"))

    def receive(self) -> str:
        """Read one chunk from the server; an empty string means it closed."""
        data = self._require_connection().recv(BUFFER_SIZE - 1)
        return data.decode("utf-8", errors="replace")

    def _request(self, verb: str, username: str, password: str, success: str) -> Reply:
        self.send(protocol.build_command(verb, username, password))
        reply = self.receive()
        if not reply:
            raise ConnectionError("Disconnected from server.")
        return Reply(reply.startswith(success.rstrip("\n")), reply)

    def login(self, username: str, password: str) -> Reply:
        """Ask the server to log in; raises ConnectionError if it hung up."""
        return self._request(protocol.LOGIN, username, password, protocol.LOGIN_SUCCESS)

    def register(self, username: str, password: str) -> Reply:
        """Ask the server to create an account; raises ConnectionError if it hung up."""
        return self._request(
            protocol.REGISTER, username, password, protocol.REGISTER_SUCCESS
        )

    def close(self) -> None:
        """Shut down the connection if it is open."""
        connection, self.connection = self.connection, None
        if connection is None:
            return
        if isinstance(connection, ssl.SSLSocket):
            try:
                connection.unwrap()
            except (OSError, ValueError):
                pass
        connection.close()

    def __enter__(self) -> ChatClient:
        if self.connection is None:
            self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _read_field(read_line: Callable[[], str], width: int) -> str:
    return read_line().split("\n", 1)[0][:width]


def _receive_loop(client: ChatClient, write: Callable[[str], None]) -> None:
    while True:
        try:
            text = client.receive()
        except (OSError, RuntimeError):
            return
        if not text:
            return
        write(f"\nServer: {text}\nYou: ")


def _chat(client: ChatClient, read_line: Callable[[], str], write: Callable[[str], None]) -> None:
    write("Login successful. You can start chatting now.\n")
    client.send("LIST")
    client.send("/command")
    write(f"{client.receive()}\n")

    threading.Thread(target=_receive_loop, args=(client, write), daemon=True).start()
    while True:
        write("You: ")
        try:
            line = _read_field(read_line, BUFFER_SIZE - 1)
        except EOFError:
            return
        if line:
            client.send(line)


def run_interactive(client, read_line, write) -> int:
    """Run the login/register menu and then the chat loop.

    ``read_line`` returns the next line typed and raises EOFError at the end
    of input; ``write`` shows text to the user.
    """
    while True:
        write(MENU)
        try:
            choice = protocol.parse_index(read_line()) + 1
            if choice not in (1, 2):
                write("Invalid choice\n")
                continue
            prefix = "" if choice == 1 else "new "
            write(f"Enter {prefix}username: ")
            username = _read_field(read_line, NAME_WIDTH)
            write(f"Enter {prefix}password: ")
            password = _read_field(read_line, NAME_WIDTH)
        except EOFError:
            return 0

        try:
            if choice == 1:
                reply = client.login(username, password)
            else:
                reply = client.register(username, password)
        except OSError:
            write("Disconnected from server.\n")
            return 0

        if choice == 1:
            if reply.success:
                try:
                    _chat(client, read_line, write)
                except OSError:
                    write("Disconnected from server.\n")
                return 0
            write(f"Login failed: {reply.message}\n")
        elif reply.success:
            write("Registration successful! You can now login.\n")
        else:
            write(f"Registration failed: {reply.message}\n")


def _read_stdin() -> str:
    line = sys.stdin.readline()
    if not line:
        raise EOFError
    return line


def _write_stdout(text: str) -> None:
    sys.stdout.write(text)
    sys.stdout.flush()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Secure chat client.")
    parser.add_argument("server_ip")
    parser.add_argument("--port", type=int, default=PORT)
    args = parser.parse_args(argv)

    client = ChatClient(args.server_ip, args.port)
    try:
        cipher = client.connect()
    except ValueError:
        print("Invalid address", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Connection failed: {exc}", file=sys.stderr)
        return 1

    with client:
        print(f"Connected with {cipher} encryption")
        print("Enter commands or messages:")
        return run_interactive(client, _read_stdin, _write_stdout)


if __name__ == "__main__":
    sys.exit(main())
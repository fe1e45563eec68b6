"""TLS chat server: authentication, user selection and private messages."""

from __future__ import annotations

import argparse
import socket
import ssl
import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from securechat import protocol
from securechat.history import ChatHistory
from securechat.protocol import BUFFER_SIZE, MAX_CLIENTS, PORT, ProtocolError
from securechat.userdb import UserDatabase

_ENTRY_WIDTH = 63


@dataclass
class ClientEntry:
    """A logged-in client as listed to others."""

    connection: Any
    username: str
    send: Callable[[str], None]
    chatting_with: int = -1


class ClientRegistry:
    """Ordered, bounded list of logged-in clients."""

    def __init__(self, capacity=MAX_CLIENTS):
        self.capacity = capacity
        self.lock = threading.RLock()
        self._entries: list[ClientEntry] = []

    def add(self, entry: ClientEntry) -> bool:
        """Append a client; return False when the registry is full."""
        with self.lock:
            if len(self._entries) >= self.capacity:
                return False
            self._entries.append(entry)
            return True

    def remove(self, connection: Any) -> None:
        """Drop the first client using the given connection."""
        with self.lock:
            for position, entry in enumerate(self._entries):
                if entry.connection is connection:
                    del self._entries[position]
                    return

    def get(self, index: int) -> ClientEntry:
        """Return the client at a 0-based index; IndexError when out of range."""
        with self.lock:
            if not 0 <= index < len(self._entries):
                raise IndexError(f"no client at index {index}")
            return self._entries[index]

    def online_users_message(self) -> str:
        """Numbered list of online users as sent to clients."""
        with self.lock:
            lines = [
                f"{number}. {entry.username}\n"[:_ENTRY_WIDTH]
                for number, entry in enumerate(self._entries, start=1)
            ]
        return (protocol.ONLINE_HEADER + "".join(lines))[: BUFFER_SIZE - 1]

    def __len__(self) -> int:
        with self.lock:
            return len(self._entries)


class ClientSession:
    """State machine for one connected client."""

    def __init__(self, connection, send, registry, users, history):
        self.connection = connection
        self._send = send
        self._registry = registry
        self._users = users
        self._history = history
        self.username = ""
        self.logged_in = False
        self.chatting_with = -1

    def handle(self, text: str) -> None:
        """Process one message received from the client."""
        if not self.logged_in:
            self._handle_auth(text)
        elif self.chatting_with == -1:
            self._handle_selection(text)
        else:
            self._handle_chat(text)

    def close(self) -> None:
        """Remove the client from the online list."""
        self._registry.remove(self.connection)
        print(f"Client disconnected: {self.username}")

    def _handle_auth(self, text: str) -> None:
        try:
            command, username, password = protocol.parse_credentials(text)
        except ProtocolError:
            self._send(protocol.INVALID_FORMAT)
            return

        if command == protocol.LOGIN and self._users.check_login(username, password):
            self.logged_in = True
            self.username = username
            self._registry.add(ClientEntry(self.connection, username, self._send))
            self._send(protocol.LOGIN_SUCCESS)
            self._send(self._registry.online_users_message())
            self._send(protocol.SELECT_PROMPT)
        elif command == protocol.REGISTER and self._try_register(username, password):
            self._send(protocol.REGISTER_SUCCESS)
        else:
            self._send(protocol.AUTH_FAILED)

    def _try_register(self, username: str, password: str) -> bool:
        try:
            return self._users.register(username, password)
        except OSError as exc:
            print(f"Error writing user database: {exc}", file=sys.stderr)
            return False

    def _handle_selection(self, text: str) -> None:
        index = protocol.parse_index(text)
        with self._registry.lock:
            try:
                partner = self._registry.get(index)
            except IndexError:
                return
            self.chatting_with = index
            self._send(protocol.HISTORY_HEADER)
            self._send_history(partner.username)
            self._send(protocol.NOW_CHATTING)

    def _handle_chat(self, text: str) -> None:
        if text.startswith("/exit"):
            self.chatting_with = -1
            self._send(protocol.EXITED_CHAT)
            self._send(self._registry.online_users_message())
        elif text.startswith("/list"):
            self._send(self._registry.online_users_message())
        elif text.startswith("/command"):
            self._send(protocol.HELP_TEXT)
        elif text.startswith("/switch"):
            self._switch(protocol.parse_index(text[8:]))
        else:
            self._deliver(text)

    def _switch(self, index: int) -> None:
        with self._registry.lock:
            try:
                partner = self._registry.get(index)
            except IndexError:
                self._send(protocol.INVALID_INDEX)
                return
            self.chatting_with = index
            self._send(protocol.HISTORY_HEADER)
            self._send_history(partner.username)
            self._send(protocol.SWITCHED_CHAT)

    def _deliver(self, text: str) -> None:
        message = f"[{self.username}]: {text}"[: BUFFER_SIZE - 1]
        with self._registry.lock:
            try:
                target = self._registry.get(self.chatting_with)
            except IndexError:
                return
            target.send(message)
            try:
                self._history.save(self.username, target.username, message)
            except OSError as exc:
                print(f"Error opening chat file: {exc}", file=sys.stderr)

    def _send_history(self, partner: str) -> None:
        try:
            lines = self._history.lines(self.username, partner)
        except OSError:
            self._send(protocol.NO_HISTORY.format(self.username, partner))
            return
        for line in lines:
            self._send(line)


def create_server_context(certfile, keyfile) -> ssl.SSLContext:
    """TLS context for the server using a PEM certificate and key."""
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(certfile, keyfile)
    return context


class ChatServer:
    """Accepts TLS connections and runs a session per client thread."""

    def __init__(
        self,
        host="",
        port=PORT,
        certfile="server.crt",
        keyfile="server.key",
        users=None,
        history=None,
    ):
        self.host = host
        self.port = port
        self.certfile = certfile
        self.keyfile = keyfile
        self.users = users if users is not None else UserDatabase("users.txt")
        self.history = history if history is not None else ChatHistory("history")
        self.registry = ClientRegistry(MAX_CLIENTS)

    def serve_forever(self) -> None:
        """Listen and serve clients until interrupted."""
        context = create_server_context(self.certfile, self.keyfile)
        with socket.create_server((self.host, self.port), backlog=10) as listener:
            print(f"Secure chat server listening on port {self.port}...")
            while True:
                raw, _ = listener.accept()
                try:
                    connection = context.wrap_socket(raw, server_side=True)
                except OSError as exc:
                    print(f"TLS handshake failed: {exc}", file=sys.stderr)
                    raw.close()
                    continue
                threading.Thread(
                    target=self._serve_client, args=(connection,), daemon=True
                ).start()

    def _serve_client(self, connection: ssl.SSLSocket) -> None:
        write_lock = threading.Lock()

        def send(text: str) -> None:
            with write_lock:
                try:
                    connection.sendall(text.encode("utf-8"))
                except OSError:
                    pass

        session = ClientSession(connection, send, self.registry, self.users, self.history)
        try:
            while True:
                try:
                    data = connection.recv(BUFFER_SIZE - 1)
                except OSError:
                    break
                if not data:
                    break
                session.handle(data.decode("utf-8", errors="replace"))
        finally:
            session.close()
            try:
                connection.unwrap()
            except (OSError, ValueError):
                pass
            connection.close()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Secure chat server.")
    parser.add_argument("--host", default="")
    parser.add_argument("--port", type=int, default=PORT)
    parser.add_argument("--cert", default="server.crt")
    parser.add_argument("--key", default="server.key")
    parser.add_argument("--users", default="users.txt")
    parser.add_argument("--history", default="history")
    args = parser.parse_args(argv)

    server = ChatServer(
        args.host,
        args.port,
        args.cert,
        args.key,
        UserDatabase(args.users),
        ChatHistory(args.history),
    )
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        return 0
    except OSError as exc:
        print(f"Server error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
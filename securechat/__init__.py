"""TLS chat server and client with user accounts and per-pair chat history."""

__version__ = "0.1.0"
__all__ = ["protocol", "userdb", "history", "server", "client"]
import pytest

from securechat import protocol
from securechat.history import ChatHistory
from securechat.server import (
    ClientEntry,
    ClientRegistry,
    ClientSession,
    create_server_context,
)
from securechat.userdb import UserDatabase


class _Conn:
    """Stand-in for a network connection, compared by identity."""


@pytest.fixture
def env(tmp_path):
    users = UserDatabase(tmp_path / "users.txt")
    users.register("alice", "password")
    users.register("bob", "password")
    history = ChatHistory(tmp_path / "history")
    registry = ClientRegistry(protocol.MAX_CLIENTS)
    return registry, users, history


def _session(env):
    registry, users, history = env
    outbox = []
    session = ClientSession(_Conn(), outbox.append, registry, users, history)
    return session, outbox


def _logged_in(env, name):
    session, outbox = _session(env)
    session.handle(protocol.build_command(protocol.LOGIN, name, "password"))
    outbox.clear()
    return session, outbox


def test_registry_capacity():
    registry = ClientRegistry(1)
    assert registry.add(ClientEntry(_Conn(), "alice", print)) is True
    assert registry.add(ClientEntry(_Conn(), "bob", print)) is False
    assert len(registry) == 1


def test_registry_remove_shifts_entries():
    registry = ClientRegistry(3)
    first, second = _Conn(), _Conn()
    registry.add(ClientEntry(first, "alice", print))
    registry.add(ClientEntry(second, "bob", print))
    registry.remove(first)
    assert len(registry) == 1
    assert registry.get(0).username == "bob"


def test_registry_get_out_of_range():
    registry = ClientRegistry(2)
    with pytest.raises(IndexError):
        registry.get(0)
    registry.add(ClientEntry(_Conn(), "alice", print))
    with pytest.raises(IndexError):
        registry.get(-1)


def test_online_users_message():
    registry = ClientRegistry(2)
    assert registry.online_users_message() == protocol.ONLINE_HEADER
    registry.add(ClientEntry(_Conn(), "alice", print))
    message = registry.online_users_message()
    assert message.startswith(protocol.ONLINE_HEADER)
    assert message.endswith("1. alice\n")


def test_invalid_format(env):
    session, outbox = _session(env)
    session.handle("LOGIN alice")
    assert outbox == [protocol.INVALID_FORMAT]
    assert session.logged_in is False


def test_register_via_session(env):
    session, outbox = _session(env)
    session.handle("REGISTER carol password")
    session.handle("REGISTER carol password")
    assert outbox == [protocol.REGISTER_SUCCESS, protocol.AUTH_FAILED]
    assert env[1].check_login("carol", "password") is True


def test_login_success(env):
    registry = env[0]
    session, outbox = _session(env)
    session.handle("LOGIN alice password")
    assert session.logged_in is True
    assert session.username == "alice"
    assert len(registry) == 1
    assert outbox == [
        protocol.LOGIN_SUCCESS,
        registry.online_users_message(),
        protocol.SELECT_PROMPT,
    ]


def test_login_wrong_password(env):
    session, outbox = _session(env)
    session.handle("LOGIN alice secret")
    assert outbox == [protocol.AUTH_FAILED]
    assert len(env[0]) == 0


def test_select_and_chat(env):
    alice, alice_out = _logged_in(env, "alice")
    bob, bob_out = _logged_in(env, "bob")

    alice.handle("2")
    assert alice.chatting_with == 1
    assert alice_out == [
        protocol.HISTORY_HEADER,
        protocol.NO_HISTORY.format("alice", "bob"),
        protocol.NOW_CHATTING,
    ]

    alice.handle("hi")
    assert bob_out == ["[alice]: hi"]
    assert env[2].lines("bob", "alice") == ["[alice]: hi\n"]


def test_history_sent_on_selection(env):
    env[2].save("alice", "bob", "[bob]: earlier")
    alice, alice_out = _logged_in(env, "alice")
    _logged_in(env, "bob")
    alice.handle("2")
    assert alice_out[1] == "[bob]: earlier\n"


def test_invalid_selection_is_silent(env):
    alice, alice_out = _logged_in(env, "alice")
    alice.handle("9")
    alice.handle("LIST")
    assert alice_out == []
    assert alice.chatting_with == -1


def test_chat_commands(env):
    alice, alice_out = _logged_in(env, "alice")
    alice.handle("1")
    alice_out.clear()

    alice.handle("/command")
    assert alice_out == [protocol.HELP_TEXT]
    alice_out.clear()

    alice.handle("/list")
    assert alice_out == [env[0].online_users_message()]
    alice_out.clear()

    alice.handle("/switch 5")
    assert alice_out == [protocol.INVALID_INDEX]
    alice_out.clear()

    alice.handle("/exit")
    assert alice.chatting_with == -1
    assert alice_out == [protocol.EXITED_CHAT, env[0].online_users_message()]


def test_switch_to_valid_user(env):
    alice, alice_out = _logged_in(env, "alice")
    _logged_in(env, "bob")
    alice.handle("1")
    alice_out.clear()
    alice.handle("/switch 2")
    assert alice.chatting_with == 1
    assert alice_out[0] == protocol.HISTORY_HEADER
    assert alice_out[-1] == protocol.SWITCHED_CHAT


def test_close_removes_client(env):
    alice, _ = _logged_in(env, "alice")
    bob, _ = _logged_in(env, "bob")
    alice.close()
    assert len(env[0]) == 1
    assert env[0].get(0).username == "bob"


def test_server_context_missing_files(tmp_path):
    with pytest.raises(OSError):
        create_server_context(tmp_path / "none.crt", tmp_path / "none.key")
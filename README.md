# securechat

A small one-to-one chat system over TLS. Users register an account, log
in, pick another online user by number and send that user messages. Each
conversation between two users is logged to a history file, which is
replayed when the conversation is opened again.

## Installation

```
pip install .
```

## Running the server

```
securechat-server
```

The server listens on port 12345 on all interfaces and serves each
client in its own thread. Options:

| Option            | Default       | Meaning                                  |
|-------------------|---------------|------------------------------------------|
| `--host`          | all addresses | Address to listen on                     |
| `--port`          | `12345`       | Port to listen on                        |
| `--cert`          | `server.crt`  | PEM certificate                          |
| `--key`           | `server.key`  | PEM private key                          |
| `--users`         | `users.txt`   | Account file, one `username:password` per line |
| `--history`       | `history`     | Folder for conversation logs             |

A conversation between two users is stored in
`<history>/<first>_<second>.txt`, the two names in sorted order and any
spaces replaced by underscores. At most ten users are listed as online at
the same time.

## Running the client

```
securechat-client 127.0.0.1
```

The server address must be an IPv4 address; `--port` selects a port other
than 12345. The client shows a menu:

1. Login
2. Register

After a successful login the client prints what the server sends. Type a
number to open a conversation with that user from the online list; the
earlier history is shown first. While chatting, these commands are
available:

| Command       | Effect                             |
|---------------|------------------------------------|
| `/command`    | Show the list of commands          |
| `/list`       | Show the users who are online      |
| `/switch <n>` | Switch the conversation to user n  |
| `/exit`       | Leave the current conversation     |

Anything else you type is sent to the selected user as `[you]: text` and
appended to the conversation's history.

## Using the library

```python
from securechat.client import ChatClient

password = "password"
with ChatClient("127.0.0.1", 12345) as client:
    reply = client.register("alice", password)
    print(reply.success, reply.message)
    reply = client.login("alice", password)
    print(reply.success, reply.message)
```

`ChatClient.send` and `ChatClient.receive` exchange raw text with the
server; `login` and `register` return a `Reply` with `success` and
`message`, and raise `ConnectionError` when the server hangs up.

Other pieces can be used on their own:

- `securechat.userdb.UserDatabase` — `check_login`, `username_exists` and
  `register` on the account file.
- `securechat.history.ChatHistory` — `path_for`, `save` and `lines` for
  conversation files.
- `securechat.server.ChatServer` — `serve_forever` runs the server;
  `ClientRegistry` and `ClientSession` hold the online list and the
  per-client state machine.
- `securechat.protocol` — message texts and the helpers
  `build_command`, `parse_credentials` and `parse_index`.

## What it does not do

- Passwords are stored in the account file as plain text, not hashed.
- The client does not verify the server's certificate, and the package
  does not create certificates or keys.
- There is no group chat or broadcast: each message goes to one selected
  user.
- The selected partner is remembered by position in the online list, so
  when users log out the position may then refer to someone else.

## Tests

```
pip install .[test]
pytest
```
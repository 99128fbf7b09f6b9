# signalhub

signalhub is a small WebSocket signalling server. Peers connect with a session
id and can see who else is online. They send JSON messages to one another
through the server. When a peer comes or goes, the server tells every other
connected peer. Each peer's last login is kept in a JSON file between runs.

## Installing

```
pip install .
```

To run the tests, install the `test` extra:

```
pip install ".[test]"
pytest
```

## Running

```
signalhub
```

The command takes these options:

| Option | Meaning |
| --- | --- |
| `--config PATH` | INI settings file. The default is `config.ini` in the directory that holds the program being run. |
| `--log-file PATH` | Log file. The default is `logs/app.log` in that same directory. |
| `--data-file PATH` | Users data file. The default is `signalhub/users.json` under the per-user data directory: `$XDG_DATA_HOME` or `~/.local/share` on Linux, `~/Library/Application Support` on macOS, and `%APPDATA%` on Windows. |
| `--lock-file PATH` | Single-instance lock file. The default is `signal_server.lock` in the system temporary directory. |

Only one instance can hold the lock at a time. A second instance exits at
once with status 0. The server runs until it is stopped with Ctrl+C. When it
exits, it writes every known user to the data file.

### Settings

```ini
[local]
logLevel=info

[signal_server]
serverPort=8080
serverName=Signal Server
```

Every key is optional, and the defaults are the values shown above.

- `logLevel` can be `debug`, `info`, `warn` or `error`. Any other value turns
  logging off.
- If `serverPort` cannot be read as a number, or gives 0, the server uses
  8080. Only the low 16 bits of a larger number are kept.
- If `serverName` is empty, the server uses `Signal Server`.

Logs go to standard output and to the log file. The log file rotates at 10 MB
and keeps ten old files. If the log file cannot be opened, logging goes to the
console only.

## Protocol

Connect with a session id, and optionally a host name:

```
ws://localhost:8080/?sessionId=alice&hostname=laptop
```

A connection without a `sessionId` is closed straight away. A new connection
with the same session id as an existing one replaces the older connection,
and the older one is closed.

Messages are JSON objects:

```json
{"type": "offer", "sender": "alice", "receiver": "bob", "data": {"sdp": "..."}}
```

- The text `@heart` is a heartbeat. It is accepted and gets no reply.
- A message without a non-empty `type` is answered with
  `{"data":"Invalid message format","receiver":<your session id>,"sender":"server","type":"error"}`.
  Text that is not a JSON object counts as such a message.
- If `receiver` is empty, the reply is an `error` message with the data
  `not found recv id`, addressed to the message's `sender`.
- If the receiver is not a known user, or is not connected, the reply is an
  `error` message with the data `The controlled end may not be online`,
  addressed to the message's `sender`.
- Otherwise the server forwards the text to the receiver exactly as it was
  sent.

The server sends compact JSON with the keys in sorted order. It sends a
payload that is a boolean or a number as text.

### Presence

- When a peer connects and more than one user is online, the server sends
  that peer an `onlineList` message. Its `data` is the list of the other
  online users.
- When a peer connects and more than one connection is open, every other
  connected peer gets an `onlineOne` message about it.
- When a peer disconnects, its user is marked offline, and the other
  connected peers get an `offlineOne` message about it.

Each user record has the fields `sn`, `hostname`, `loginIp`, `loginDate`
(ISO 8601, to the second) and `status` (1 online, 0 offline). All users
loaded from the data file start offline. The file is rewritten whenever a
user is added, updated or changes status.

Every 30 seconds, the server forgets any registered client whose connection
is no longer open.

## Using it from Python

```python
import asyncio
from signalhub.server import SignalServer

server = SignalServer("Signal Server", 8080)
asyncio.run(server.serve_forever())
```

`SignalServer(name, port=8080, *, host=None, user_manager=None, listener=None, cleanup_interval=30.0)`:

- `start()` and `stop()` are coroutines. `start()` returns False if the
  server is already running or the port cannot be bound.
- `serve_forever()` starts the server and waits until `stop()` is called.
- `is_listening()`, `get_client(session_id)`, `all_clients()` and
  `online_count()` report on the server's state. `bound_port` is the port the
  server actually listens on.
- `listener`, if given, is called as `listener(event, *args)` for each
  `signalhub.server.ServerEvent`: `CLIENT_CONNECTED`, `CLIENT_DISCONNECTED`,
  `MESSAGE_RECEIVED`, `STARTED`, `STOPPED` and `ERROR`.
- `signalhub.server.parse_connection_params(path)` returns
  `(session_id, hostname)` from a request path, or None if there is no
  `sessionId`.

Other modules:

- `signalhub.wsmsg.WsMsg` builds and parses messages: `to_json`,
  `to_json_string`, `from_json`, `from_json_string`, and the ready-made
  replies `error_not_found`, `offline` and `error_pwd`.
- `signalhub.rcsuser.RcsUser` holds a user record, with `to_json` and
  `from_json`.
- `signalhub.usermanager.UserManager(data_file=None)` is the user store.
  - `get`, `insert`, `update` and `delete` read and change users.
  - `select`, `online_users`, `online_count` and `is_online` answer queries.
  - `set_online` and `set_offline` change a user's status.
  - `save_user`, `save_all` and `load` read and write the data file.
  - `subscribe(event, callback)` registers a callback for `UserEvent.ONLINE`,
    `OFFLINE` or `UPDATED`.
- `signalhub.client.Client` wraps one connection. Its `send` raises
  `ClientNotConnected` if the connection is not open.
- `signalhub.messagehandler.MessageHandler` routes messages and sends the
  presence notices.
- `signalhub.config.load_config(path)` reads the settings into a `Config`.
- `signalhub.logsetup.setup_logging(log_file, level_name)` and
  `get_logger(name)` set up and return the loggers.

## What it does not do

- The server speaks plain `ws://` only. It has no TLS.
- It does not authenticate peers. Anyone who knows a session id can connect
  as that peer.
# kioskhub

A library of building blocks for a hub that watches over a fleet of kiosk
tablets:

- `kioskhub.config` – settings read from the environment and an optional `.env` file.
- `kioskhub.database` – opening the SQLite database.
- `kioskhub.repositories` – SQLite storage for tablets, groups, status
  reports, tenants, devices, certificates, refresh tokens, command history
  and field-trip data.
- `kioskhub.mqtt` – broker settings, the topic layout, message handlers and a client.
- `kioskhub.models` – commands, devices, device status, tenants,
  certificates and field-trip records.
- `kioskhub.display` – view objects combining a tablet with its latest report and groups.
- `kioskhub.i18n` – translations loaded from per-language JSON files.

Install with `pip install .` (add `.[test]` for pytest).

## Configuration

`kioskhub.config.load()` loads `.env` from the working directory if there is
one, reads the environment, sets up logging to stdout and returns a `Config`.

| Variable | Default |
| --- | --- |
| `SERVER_PORT` | `8081` |
| `DB_PATH` | `freekiosk.db` |
| `POLL_INTERVAL` | `30s` |
| `MAX_WORKERS` | `5` |
| `LOG_LEVEL` | `INFO` (`DEBUG`, `WARN`, `ERROR` also accepted) |
| `RETENTION_DAYS` | `31` |
| `MQTT_BROKER_URL` | `localhost` |
| `MQTT_PORT` | `1883` |
| `MQTT_CLIENT_ID` | `freekiosk-hub` |
| `MQTT_USE_TLS` | `false` |
| `MQTT_KEEPALIVE` | `60s` |
| `JWT_ACCESS_TOKEN_TTL` | `1h` |
| `JWT_REFRESH_TOKEN_TTL` | `720h` |
| `CERT_VALIDITY_DAYS` | `365` |

Durations are written like `45s`, `1h30m` or `500ms` (`parse_duration`); an
unreadable one becomes 30 seconds. An unreadable integer (`parse_int`)
becomes 5. Both log a warning. Booleans (`parse_bool`) are true for `true`,
`1` or `yes`.

```python
from kioskhub.config import load

cfg = load()
print(cfg.db_path, cfg.poll_interval)
```

## Storage

`open_database(path)` returns an autocommit `sqlite3.Connection` with WAL
journaling, `synchronous=NORMAL`, a 5-second busy timeout and foreign keys on.

```python
from kioskhub.database import open_database
from kioskhub.repositories.tablet import Tablet, TabletRepository
from kioskhub.repositories.group import Group, GroupRepository

db = open_database("freekiosk.db")
tablets = TabletRepository(db)
tablets.init_table()
tablets.save(Tablet(ip="10.0.0.12", name="Lobby", version="1.2.0", online=True))

groups = GroupRepository(db)
groups.init_table()
group_id = groups.create(Group(name="Ground floor", color="#64748b"))

for tablet in tablets.get_all():
    groups.add_tablet_to_group(tablet.id, group_id)
```

`TabletRepository.save` inserts a tablet or updates the one with the same id
or IP address. Lookups that find nothing raise a `LookupError` subclass such
as `TabletNotFoundError`, `GroupNotFoundError`, `ReportNotFoundError`,
`TenantNotFoundError`, `DeviceNotFoundError`, `CertificateNotFoundError`,
`RefreshTokenNotFoundError` or `CommandRecordNotFoundError`.

Other repositories:

- `ReportRepository` – status snapshots (`TabletReport`); `get_latest_by_tablet`,
  `get_history`, and `cleanup(days)` to drop old reports.
- `TenantRepository` – tenants with JSON settings and database-set timestamps;
  `list(limit, offset)` returns a page and the total.
- `DeviceRepository`, `CertificateRepository`, `RefreshTokenRepository`,
  `CommandRecordRepository` – devices and their group membership, device
  certificates, refresh tokens stored by hash, and command history.
- `FieldTripRepository(db, hub_url)` – field-trip groups and devices, GPS logs,
  broadcasts, pending commands (`pop_pending_commands` returns them and marks
  them delivered), and a 30-day cache of plaintext API keys
  (`get_cached_api_key` raises `ApiKeyNotFoundError` or `ApiKeyExpiredError`).

Tenant quotas per plan:

```python
from kioskhub.models.tenant import TenantPlan, get_default_quota

get_default_quota(TenantPlan.PROFESSIONAL).max_devices  # 1000
```

## MQTT

```python
from kioskhub.mqtt.topics import TopicBuilder, status_wildcard, shared_command_subscription

topics = TopicBuilder("tenant001", "device001")
topics.status_topic()            # "kiosk/tenant001/device001/status"
topics.response_topic("cmd123")  # "kiosk/tenant001/device001/response/cmd123"
status_wildcard("tenant001")     # "kiosk/tenant001/+/status"
shared_command_subscription("hub-cluster")  # "$share/hub-cluster/kiosk/+/+/command"
```

`config_from_env()` builds an `MqttConfig` from the `MQTT_*` variables. The
handlers in `kioskhub.mqtt.handlers` decode JSON payloads into
`DeviceStatusInfo`, `DeviceEvent`, `DeviceTelemetry` or `CommandResult` and
put them on a `queue.Queue`, dropping them when the queue is full.
`CommandResponseHandler` delivers each result to the queue registered for its
command id.

```python
import queue

from kioskhub.mqtt.client import MqttClient
from kioskhub.mqtt.config import config_from_env
from kioskhub.mqtt.handlers import DeviceStatusHandler
from kioskhub.mqtt.topics import TopicBuilder

topics = TopicBuilder("tenant001", "device001")
statuses = queue.Queue(maxsize=100)

with MqttClient(config_from_env()) as client:
    client.subscribe(topics.status_topic(), DeviceStatusHandler(statuses).handle)
    client.publish(topics.command_topic(), b'{"type": "reload"}')
```

`connect()` waits up to five seconds; if the broker is not reached it does
not raise but keeps retrying in the background, and `is_connected()` reports
the live state. Subscriptions and publishes use QoS 1; `publish_retain`
sets the retain flag. Failures to subscribe or publish raise `MqttError`.
Incoming messages are routed to the handler registered for exactly the same
topic string, so a message arriving on a wildcard subscription reaches no
handler and is only logged.

## Translations

```python
from kioskhub.i18n import detect_language, get_store, tl

get_store().load_translations("locales")  # locales/en.json, locales/zh.json, ...
lang = detect_language(None, "en-US,en;q=0.9")  # "en"
tl(lang, "dashboard.title")
```

Languages that cannot be loaded are logged and skipped. Lookups fall back to
Chinese and finally to the key itself.

## What the package does not do

- It has no HTTP server, web pages or command-line program; it is a library.
- `DeviceRepository`, `CertificateRepository`, `RefreshTokenRepository` and
  `CommandRecordRepository` do not create their tables (`devices`,
  `device_groups`, `device_group_members`, `device_certificates`,
  `refresh_tokens`, `command_history`); the database must already have them.
- There is no storage of security policies or app whitelists.
# lightningsnap

Reads and writes the snapshot files that an LMDB synchronisation process
stores in object storage. A snapshot is a gzipped protobuf message holding
metadata and the key/value entries of one or more LMDB databases (DBIs).
The package also builds and parses snapshot file names, checks DBI
transforms, and tracks failure and start-up state for health reporting.

It depends on nothing outside the standard library.

## Installation

```
pip install lightningsnap
```

To run the tests:

```
pip install "lightningsnap[test]"
pytest
```

## Modules

- `lightningsnap.wire` – protobuf wire-format primitives: `encode_varint`,
  `decode_varint`, `encode_tag`, `skip_field`, `iter_fields`, `WireType`,
  and the errors `DecodeError` and `UnexpectedWireTypeError`.
- `lightningsnap.kv` – the `KV` entry (`key`, `value`, `timestamp_nano`,
  `flags`), `KV.marshal()` and `unmarshal_kv(data)`.
- `lightningsnap.meta` – the `Meta` message (`generation_id`, `instance_id`,
  `hostname`, `lmdb_txn_id`, `timestamp_nano`, `database_name`),
  `Meta.marshal()` and `unmarshal_meta(data)`.
- `lightningsnap.dbi` – `DBI`, a streaming container for one DBI's entries,
  `dbi_from_data(data)` and `FieldsFlushedError`.
- `lightningsnap.snapshot` – `Snapshot`, `unmarshal_snapshot`, `load_data`,
  `dump_data`, `DumpDataStats`, and the format version constants
  `CURRENT_FORMAT_VERSION` (3), `COMPAT_FORMAT_VERSION` (1) and
  `WRITE_COMPAT_FORMAT_VERSION` (1).
- `lightningsnap.name` – snapshot file names.
- `lightningsnap.transforms` – DBI transform checks.
- `lightningsnap.update` – `Update`, a snapshot paired with its name info.
- `lightningsnap.health`, `lightningsnap.healthtracker`,
  `lightningsnap.starttracker` – health checks and trackers.

Decoding errors raise `DecodeError` (a `ValueError`); a field with the wrong
wire type raises its subclass `UnexpectedWireTypeError`. Unknown fields are
skipped.

## Snapshots

```python
from lightningsnap.dbi import DBI
from lightningsnap.kv import KV
from lightningsnap.meta import Meta
from lightningsnap.snapshot import Snapshot, dump_data, load_data

dbi = DBI()
dbi.name = "records"
dbi.append(KV(key=b"k1", value=b"v1", timestamp_nano=1))
dbi.append(KV(key=b"k2", value=b"v2"))

snap = Snapshot(
    format_version=3,
    compat_version=1,
    meta=Meta(generation_id="gen", instance_id="inst", hostname="host"),
    databases=[dbi],
)

data, stats = dump_data(snap)   # gzipped protobuf bytes and DumpDataStats
loaded = load_data(data)
for kv in loaded.databases[0]:
    print(kv.key, kv.value)
```

`dump_data` compresses at gzip level 1 and returns `DumpDataStats` with
`t_compressed` (a `timedelta`), `protobuf_size` and `compressed_size`.
`Snapshot.write_to(stream)` streams the uncompressed protobuf to a binary
stream and returns the number of bytes written; `Snapshot.marshal()` returns
it as bytes. Zero and empty fields are not written, and DBIs whose encoding
is empty are left out.

A DBI's `name`, `flags` and `transform` may only be set before entries are
appended or the data is requested with `marshal()` or `size()`. After that,
or on a DBI loaded with `dbi_from_data`, setting them raises
`FieldsFlushedError`. Entries are kept in their encoded form and decoded one
at a time while iterating; `reset_cursor()` starts reading from the beginning
again, and `kv_list()` returns all entries as a list. Appending a `KV` with no
key, value, flags or timestamp writes nothing.

`DBI.map(transform, func)` builds a new DBI with the same name and flags, the
given transform, and every entry passed through `func`.

## Snapshot names

```python
from datetime import datetime, timezone
from lightningsnap.name import name, parse_name

fname = name("db1", "inst1", "gen1", datetime(2022, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
# 'db1__inst1__20220102-030405-000000000__gen1.pb.gz'
info = parse_name(fname)
info.syncer_name, info.instance_id, info.generation_id, info.timestamp
info.short_hash()   # seven hex characters to tell snapshots apart in logs
```

Timestamps may be a `datetime` (naive ones are taken as UTC) or an integer
number of nanoseconds since the Unix epoch; `name_timestamp` and
`name_timestamp_from_nano` format them on their own. `parse_name` returns a
`NameInfo` whose `timestamp` is a UTC `datetime` (to the microsecond) and
whose `timestamp_nano` keeps the full nanoseconds. Name parts after the
fourth are ignored. Names that do not follow the format raise
`InvalidNameError` (a `ValueError`).

## Transforms

`transform_supported(transform)` accepts `TRANSFORM_NONE` (`""`) and
`TRANSFORM_DUPSORT_HACK_V1` (`"dupsort_hack_v1"`).
`validate_transform(dbi, format_version, native_schema)` raises
`TransformError` when the transform is unknown, when a native schema has any
transform, or, from format version 3 on, when the `DUPSORT` flag and the
dupsort transform do not go together.

## Updates

`Update` pairs a `Snapshot` with its `NameInfo`. `close()` runs the optional
`on_close` callback once and drops the snapshot; used as a context manager
it closes on exit.

## Health tracking

`HealthRegistry` holds named checks. A check returns normally when healthy,
raises `HealthWarning` when degraded, and raises any other exception when
failing. `evaluate()` runs each check that is due for its interval and
returns a dict of every check's last result (`None` or the exception).
`set_meta` stores values readable through the `meta` property. A registry can
be given its own clock; trackers use the module-level `DEFAULT_REGISTRY` when
none is passed.

`HealthTracker(config, prefix, activity, registry)` registers
`<prefix>_failed_duration`. After `add_failure(err)` it reports an error once
failures have lasted `error_duration`, otherwise a `HealthWarning` once they
have lasted `warn_duration`; `add_success()` clears the streak.

`StartTracker(config, prefix, registry)` registers
`<prefix>_startup_in_progress`. With `report_healthz` set it reports while
the initial listing, initial store and first completed pass are pending.
Once all three are marked it sets the `startup_<prefix>` metadata to `True`
(with `report_metadata`) and deregisters itself.

Config intervals below one second are raised to one second by
`validated()`, which both trackers apply.

```python
from lightningsnap.health import HealthRegistry
from lightningsnap.healthtracker import HealthConfig, HealthTracker

registry = HealthRegistry()
tracker = HealthTracker(HealthConfig(), "storage_store", "store snapshot", registry)
tracker.add_failure(RuntimeError("connection refused"))
registry.evaluate()
# {'storage_store_failed_duration': RuntimeError("failed to store snapshot for 0s - last error: 'connection refused'")}
```

## What this package does not do

It does not open LMDB databases, talk to object storage, or run a
synchronisation loop. It serves no HTTP status page, metrics or healthz
endpoint: the application calls `HealthRegistry.evaluate()` itself and
reports the results as it sees fit. There is no command-line program.
from lightningsnap.name import parse_name
from lightningsnap.snapshot import Snapshot
from lightningsnap.update import Update

NAME = "db1__inst1__20220102-030405-012345678__gen1.pb.gz"


def test_close_runs_callback_once_and_drops_snapshot():
    seen = []
    snap = Snapshot(format_version=3)
    update = Update(
        snapshot=snap,
        name_info=parse_name(NAME),
        on_close=lambda u: seen.append((u, u.snapshot)),
    )
    update.close()
    assert seen == [(update, snap)]
    assert update.snapshot is None
    assert update.on_close is None
    update.close()
    assert len(seen) == 1


def test_close_without_callback():
    update = Update(snapshot=Snapshot(), name_info=parse_name(NAME))
    update.close()
    assert update.snapshot is None
    assert update.name_info.syncer_name == "db1"


def test_context_manager_closes():
    closed = []
    with Update(snapshot=Snapshot(), on_close=closed.append) as update:
        assert update.snapshot is not None and closed == []
    assert closed == [update]
    assert update.snapshot is None
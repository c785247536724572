import pytest

from conftest import FakeRemoteStore
from silent_auction.config import AppConfig
from silent_auction.errors import RemoteStoreError
from silent_auction.panel import RECOVER_JOB_ID, AdminPanel
from silent_auction.sync import LoadSource


class FakeFeed:
    def __init__(self, fail=False):
        self.fail = fail
        self.running = False
        self.closed = False

    def start(self):
        if self.fail:
            raise ConnectionError("realtime unavailable")
        self.running = True

    def close(self):
        self.running = False
        self.closed = True


@pytest.fixture
def config(tmp_path):
    return AppConfig(snapshot_dir=str(tmp_path / "snapshot"), resync_interval_seconds=60)


@pytest.fixture
def feeds():
    return []


def _panel(remote, config, feeds, fail_feed=False):
    def factory(sync):
        feed = FakeFeed(fail=fail_feed)
        feeds.append(feed)
        return feed
    return AdminPanel(remote=remote, config=config, feed_factory=factory)


def test_start_online_subscribes_without_recovery_job(config, feeds):
    remote = FakeRemoteStore()
    remote.tables["items"]["001"] = {"id": "001", "name": "Painting", "section": "", "winning_bid": None}
    panel = _panel(remote, config, feeds)
    try:
        result = panel.start()
        assert result.source is LoadSource.REMOTE
        assert panel.feed_running
        assert panel._scheduler.get_job(RECOVER_JOB_ID) is None
        assert panel.ledger.find_item("001").name == "Painting"
    finally:
        panel.close()
    assert feeds[0].closed


def test_offline_start_schedules_recovery_and_recovers(config, feeds):
    remote = FakeRemoteStore()
    remote.fail_when("select", "items", error=RemoteStoreError("timeout"))
    panel = _panel(remote, config, feeds)
    try:
        result = panel.start()
        assert result.source is LoadSource.EMPTY
        assert not panel.feed_running
        assert panel._scheduler.get_job(RECOVER_JOB_ID) is not None

        assert panel.recover() is True
        assert panel.status.online
        assert panel.feed_running
        assert panel._scheduler.get_job(RECOVER_JOB_ID) is None
    finally:
        panel.close()


def test_feed_failure_keeps_recovery_job(config, feeds):
    panel = _panel(FakeRemoteStore(), config, feeds, fail_feed=True)
    try:
        result = panel.start()
        assert result.online
        assert not panel.feed_running
        assert panel._scheduler.get_job(RECOVER_JOB_ID) is not None
        assert panel.recover() is False
    finally:
        panel.close()


def test_unconfigured_panel_does_not_schedule_recovery(config, feeds):
    panel = _panel(None, config, feeds)
    try:
        result = panel.start()
        assert result.configuration_error
        assert feeds == []
        assert not panel._scheduler.running
    finally:
        panel.close()


def test_feed_disabled_by_config(tmp_path):
    config = AppConfig(snapshot_dir=str(tmp_path / "snapshot"), enable_change_feed=False)
    panel = AdminPanel(remote=FakeRemoteStore(), config=config)
    try:
        panel.start()
        assert not panel.feed_running
        assert not panel._scheduler.running
    finally:
        panel.close()

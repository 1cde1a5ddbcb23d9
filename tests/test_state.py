"""state モジュールのテスト."""

import json

import pytest

from price_checker.models import (
    BatchStats,
    EnhancedStats,
    ResultRecord,
    ResultStatus,
    Snapshot,
)
from price_checker.state import (
    LEGACY_RESULTS_KEY,
    STATE_KEY,
    JsonStateStore,
    create_state_store,
)


def _snapshot() -> Snapshot:
    return Snapshot(
        results=[
            ResultRecord(
                id="product-0",
                url="https://www.amazon.com/dp/B000000001",
                saved_price=100.0,
                current_price="$120.00",
                price_change=20.0,
                price_change_percent=20.0,
                availability="In Stock",
                delivery_date="2024-07-15",
                title="Wireless Earbuds",
                status=ResultStatus.SUCCESS,
            ),
            ResultRecord(id="product-1", url="https://www.amazon.com/dp/B000000002"),
        ],
        stats=BatchStats(total=2, processed=1, success=1),
        enhanced_stats=EnhancedStats(price_increased=1),
        is_processing=True,
        input_mode="spreadsheet",
        spreadsheet_data=[{"url": "https://www.amazon.com/dp/B000000001", "price": "100"}],
        pending_urls=[{"url": "https://www.amazon.com/dp/B000000002", "saved_price": None}],
        timestamp=1719824400000,
    )


class TestJsonStateStore:
    """JsonStateStore のテスト."""

    def test_save_then_load(self, tmp_path):
        """保存直後に読み込むと同じスナップショットが返ること."""
        store = JsonStateStore(tmp_path / "state.json")
        snapshot = _snapshot()

        store.save(snapshot)

        assert store.load() == snapshot

    def test_load_missing(self, tmp_path):
        assert JsonStateStore(tmp_path / "state.json").load() is None

    def test_overwrite(self, tmp_path):
        """次の保存で置き換わること（マージしない）."""
        store = JsonStateStore(tmp_path / "state.json")
        store.save(_snapshot())
        store.save(Snapshot(timestamp=1))

        assert store.load() == Snapshot(timestamp=1)

    def test_legacy_results_key(self, tmp_path):
        """旧形式の結果一覧は別キーに保存され、スナップショットを壊さないこと."""
        path = tmp_path / "state.json"
        store = JsonStateStore(path)
        snapshot = _snapshot()
        store.save(snapshot)
        store.save_results(snapshot.results)

        data = json.loads(path.read_text(encoding="utf-8"))
        assert set(data) == {STATE_KEY, LEGACY_RESULTS_KEY}
        assert data[LEGACY_RESULTS_KEY][0]["status"] == "success"
        assert store.load_results() == snapshot.results
        assert store.load() == snapshot

    def test_creates_parent_dir(self, tmp_path):
        store = JsonStateStore(tmp_path / "nested" / "dir" / "state.json")
        store.save(Snapshot())
        assert store.load() == Snapshot()


class TestCreateStateStore:
    """create_state_store のテスト."""

    def test_file(self):
        assert isinstance(create_state_store("file"), JsonStateStore)

    def test_unknown(self):
        with pytest.raises(ValueError):
            create_state_store("redis")

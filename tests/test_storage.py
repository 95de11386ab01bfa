"""Tests for the call store and key-value stores."""

import json

import pytest

from canefarm.models.calls import CallRecord, Resolution
from canefarm.storage.call_store import CallStore
from canefarm.storage.kv_store import JsonFileKeyValueStore, MemoryKeyValueStore
from canefarm.storage.resolution_store import ResolutionStore, record_resolution


def call(created_at, **extra):
    data = {
        "transcript": "My cane is ready to cut",
        "summary": "I will arrange harvesting for you.",
        "categories": ["Harvesting"],
        "sentiment": 0.4,
        "created_at": created_at,
    }
    data.update(extra)
    return data


class TestCallRecord:
    """Test record validation and legacy keys."""

    @pytest.mark.parametrize("missing", ["transcript", "summary", "categories", "sentiment"])
    def test_required_fields(self, missing):
        """Each required field is enforced."""
        data = call("2024-01-01T00:00:00+00:00")
        del data[missing]
        with pytest.raises(ValueError):
            CallRecord.from_dict(data)

    def test_legacy_farmer_keys(self):
        """Older exports with spaced keys map onto farmer details."""
        record = CallRecord.from_dict(call(
            "2024-01-01T00:00:00+00:00",
            **{"Farmer ID": "KF007", "Farmer Name": "Achieng", "Farm Size (Acres)": "3.5",
               "Location": "Migori", "Age": "44", "Preferred Language": "Swahili"}
        ))
        assert record.farmer_id == "KF007"
        assert record.farmer_name == "Achieng"
        assert record.farm_size_acres == 3.5
        assert record.age == 44
        assert record.preferred_language == "Swahili"

    def test_zero_sentiment_is_valid(self):
        """A neutral sentiment of 0 is not treated as missing."""
        record = CallRecord.from_dict(call("2024-01-01T00:00:00+00:00", sentiment=0))
        assert record.sentiment == 0.0

    def test_string_flags(self):
        """String booleans such as "false" are read by value, not truthiness."""
        record = CallRecord.from_dict(call(
            "2024-01-01T00:00:00+00:00",
            needs_ploughing="false", needs_harvesting="True", resolved="false",
            follow_up_required="no", needs_pesticide="1",
        ))
        assert record.needs_ploughing is False
        assert record.needs_harvesting is True
        assert record.needs_pesticide is True
        assert record.resolved is False
        assert record.follow_up_required is False


class TestCallStore:
    """Test persistence and paging."""

    def test_save_and_reload(self, tmp_path):
        """Saved calls survive a new store instance."""
        path = str(tmp_path / "data" / "calls.jsonl")
        store = CallStore(path)
        saved = store.save(call("2024-03-01T10:00:00+00:00", farmer_id="KF001"))
        assert store.count() == 1

        reloaded = CallStore(path)
        assert reloaded.count() == 1
        assert reloaded.get(saved.id).farmer_id == "KF001"

    def test_newest_first(self, call_store):
        """list orders by timestamp, newest first, across formats."""
        call_store.save(call("2024-01-01T00:00:00Z", summary="old"))
        call_store.save(call("2024-06-01T00:00:00+00:00", summary="new"))
        call_store.save(call("2024-03-01T00:00:00", summary="middle"))

        summaries = [c.summary for c in call_store.list(limit=10)]
        assert summaries == ["new", "middle", "old"]
        assert [c.summary for c in call_store.list(limit=1, offset=1)] == ["middle"]

    @pytest.mark.parametrize("limit,offset", [(0, 0), (101, 0), (10, -1)])
    def test_paging_validation(self, call_store, limit, offset):
        """limit must be 1-100 and offset non-negative."""
        with pytest.raises(ValueError):
            call_store.list(limit, offset)

    def test_invalid_record_not_written(self, call_store):
        """A rejected record leaves the store unchanged."""
        with pytest.raises(ValueError):
            call_store.save({"transcript": "hello"})
        assert call_store.count() == 0

    def test_bad_lines_skipped(self, tmp_path):
        """Corrupt lines are skipped on load."""
        path = tmp_path / "calls.jsonl"
        good = json.dumps(call("2024-01-01T00:00:00+00:00"))
        path.write_text("not json\n" + good + "\n{\"summary\": \"x\"}\n", encoding="utf-8")
        assert CallStore(str(path)).count() == 1


class TestKeyValueStores:
    """Test the key-value stores."""

    def test_memory_store(self):
        """Memory store returns defaults for missing keys."""
        store = MemoryKeyValueStore()
        assert store.get("currentFarmerId", "KF001") == "KF001"
        store.set("currentFarmerId", "KF002")
        assert store.get("currentFarmerId") == "KF002"

    def test_json_file_store_persists(self, tmp_path):
        """Values written by one instance are read by the next."""
        path = str(tmp_path / "state" / "kv.json")
        JsonFileKeyValueStore(path).set("currentFarmerId", "KF003")
        assert JsonFileKeyValueStore(path).get("currentFarmerId") == "KF003"

    def test_json_file_store_ignores_corrupt_file(self, tmp_path):
        """An unreadable file is treated as empty."""
        path = tmp_path / "kv.json"
        path.write_text("[1, 2", encoding="utf-8")
        store = JsonFileKeyValueStore(str(path))
        assert store.get("currentFarmerId") is None
        store.set("currentFarmerId", "KF004")
        assert json.loads(path.read_text(encoding="utf-8")) == {"currentFarmerId": "KF004"}


class TestResolutions:
    """Test recording and listing issue resolutions."""

    @pytest.fixture
    def stores(self, tmp_path, call_store):
        return call_store, ResolutionStore(str(tmp_path / "resolutions.jsonl"))

    def resolution(self, call_id, **extra):
        data = {"call_id": call_id, "resolved_by": "Agent Njeri", "issue_resolved": "Harvest crew sent"}
        data.update(extra)
        return data

    def test_resolution_marks_call(self, stores, tmp_path):
        """Recording a resolution sets the call's resolved flag on disk."""
        calls, resolutions = stores
        saved = calls.save(call("2024-01-01T00:00:00+00:00"))
        resolution = record_resolution(calls, resolutions, self.resolution(saved.id, farmer_confirmation="true"))

        assert resolution.farmer_confirmation is True
        assert resolution.date_resolved
        assert calls.get(saved.id).resolved
        assert CallStore(calls.path).get(saved.id).resolved
        assert ResolutionStore(str(tmp_path / "resolutions.jsonl")).count() == 1

    @pytest.mark.parametrize("missing", ["call_id", "resolved_by", "issue_resolved"])
    def test_required_fields(self, missing):
        """call_id, resolved_by and issue_resolved are required."""
        data = self.resolution("abc")
        del data[missing]
        with pytest.raises(ValueError):
            Resolution.from_dict(data)

    def test_unknown_call(self, stores):
        """Resolving a call that does not exist stores nothing."""
        calls, resolutions = stores
        with pytest.raises(LookupError):
            record_resolution(calls, resolutions, self.resolution("missing"))
        assert resolutions.count() == 0

    def test_list_newest_first_with_filter(self, stores):
        """Resolutions list newest first and filter by call."""
        calls, resolutions = stores
        first = calls.save(call("2024-01-01T00:00:00+00:00"))
        second = calls.save(call("2024-01-02T00:00:00+00:00"))
        record_resolution(calls, resolutions, self.resolution(first.id, date_resolved="2024-02-01T00:00:00Z"))
        record_resolution(calls, resolutions, self.resolution(second.id, date_resolved="2024-03-01T00:00:00Z"))
        record_resolution(calls, resolutions, self.resolution(first.id, date_resolved="2024-04-01T00:00:00Z",
                                                              notes="Follow-up visit"))

        assert [r.date_resolved[:7] for r in resolutions.list()] == ["2024-04", "2024-03", "2024-02"]
        only_first = resolutions.list(call_id=first.id)
        assert [r.notes for r in only_first] == ["Follow-up visit", None]
        with pytest.raises(ValueError):
            resolutions.list(limit=0)

"""Tests for the package-level API."""

import pytest

from canefarm import api
from canefarm.models.calls import CallAnalysis


@pytest.fixture
def initialized(tmp_path):
    result = api.init({
        "logging": {"log_dir": str(tmp_path / "logs")},
        "storage": {
            "calls_file": str(tmp_path / "calls.jsonl"),
            "resolutions_file": str(tmp_path / "resolutions.jsonl"),
            "token_log_dir": str(tmp_path / "logs"),
        },
        "ai": {"enabled": False},
    })
    assert result["status"] == "ok"
    yield tmp_path
    api.shutdown()


def harvest_call(**extra):
    data = {
        "transcript": "My cane is ready, please send the harvesters",
        "summary": "I will schedule harvesting for you.",
        "categories": ["Harvesting"],
        "sentiment": 0.5,
        "needs_harvesting": True,
        "farmer_id": "KF002",
        "farmer_name": "Otieno",
        "farm_size_acres": 2.5,
    }
    data.update(extra)
    return data


class TestLifecycle:
    """Test init and shutdown."""

    def test_calls_before_init(self):
        """Every call reports an error before init."""
        api.shutdown()
        assert api.list_calls()["status"] == "error"
        assert api.start_simulation()["status"] == "error"
        assert not api.is_initialized()

    def test_init_and_shutdown(self, initialized):
        """init reports the version; shutdown clears state."""
        assert api.is_initialized()
        assert api.get_version() == "1.0.0"
        assert api.shutdown() == {"status": "ok"}
        assert not api.is_initialized()

    def test_invalid_settings(self, tmp_path):
        """Bad simulation settings fail init."""
        result = api.init({
            "logging": {"log_dir": str(tmp_path)},
            "storage": {"calls_file": str(tmp_path / "calls.jsonl")},
            "simulation": {"grid_width": 0},
            "ai": {"enabled": False},
        })
        assert result["status"] == "error"
        assert not api.is_initialized()


class TestCallApi:
    """Test call storage and analysis through the API."""

    def test_save_and_list(self, initialized):
        """Saved calls are listed newest first."""
        api.save_call(harvest_call(created_at="2024-01-01T00:00:00+00:00", summary="first"))
        api.save_call(harvest_call(created_at="2024-02-01T00:00:00+00:00", summary="second"))
        result = api.list_calls(limit=10)
        assert result["total"] == 2
        assert [c["summary"] for c in result["calls"]] == ["second", "first"]

    def test_invalid_call(self, initialized):
        """Invalid records and paging report errors."""
        assert api.save_call({"transcript": "hi"})["status"] == "error"
        assert api.list_calls(limit=0)["status"] == "error"

    def test_analysis_disabled(self, initialized):
        """analyze_call reports when AI is disabled."""
        assert api.analyze_call("hello")["error"] == "Call analysis is disabled"

    def test_analyze_and_save(self, initialized, monkeypatch):
        """An analyzed call is stored with the farmer details."""
        class StubAnalyzer:
            def analyze(self, transcript):
                analysis = CallAnalysis(summary="We will send fertilizer.", categories=["Fertilization"],
                                        sentiment=0.2, priority=2, provider="stub")
                analysis.needs["needs_fertilizer"] = True
                return analysis

        monkeypatch.setattr(api, "_analyzer", StubAnalyzer())
        result = api.analyze_call("Leaves are yellow", farmer={"farmer_id": "KF003"})
        assert result["status"] == "ok"
        assert result["provider"] == "stub"
        assert result["call"]["farmer_id"] == "KF003"
        assert result["call"]["needs_fertilizer"]
        assert api.list_calls()["total"] == 1

    def test_analytics(self, initialized):
        """Analytics cover stored calls."""
        api.save_call(harvest_call())
        report = api.get_call_analytics("month", month=5)
        assert report["status"] == "ok"
        assert report["total_calls"] == 1
        assert report["forecast"][0]["need"] == "needs_harvesting"
        assert api.get_call_analytics("decade")["status"] == "error"
        assert report["sentiment"]["days"] == 30

    def test_resolve_call(self, initialized):
        """Resolving a call records the resolution and flags the call."""
        call_id = api.save_call(harvest_call())["call"]["id"]
        result = api.resolve_call({"call_id": call_id, "resolved_by": "Agent Njeri",
                                   "issue_resolved": "Harvest crew booked"})
        assert result["status"] == "ok"
        assert api.list_calls()["calls"][0]["resolved"] is True

        listed = api.list_resolutions(call_id=call_id)["resolutions"]
        assert [r["resolved_by"] for r in listed] == ["Agent Njeri"]
        assert api.list_resolutions(call_id="other")["resolutions"] == []

    def test_resolve_errors(self, initialized):
        """Missing fields and unknown calls are reported."""
        assert api.resolve_call({"call_id": "x", "resolved_by": "A"})["status"] == "error"
        missing = api.resolve_call({"call_id": "x", "resolved_by": "A", "issue_resolved": "done"})
        assert missing["status"] == "error"
        assert api.list_resolutions(limit=500)["status"] == "error"


class TestSimulationApi:
    """Test driving the simulator through the API."""

    def test_not_started(self, initialized):
        """Simulation calls fail until a simulation starts."""
        assert api.simulation_tick(16)["status"] == "error"
        assert api.get_simulation_state()["status"] == "error"

    def test_starts_from_latest_call(self, initialized):
        """The simulation loads the most recent farmer."""
        api.save_call(harvest_call())
        state = api.start_simulation()["state"]
        assert state["farmer"]["farmerId"] == "KF002"
        assert state["farmer"]["farmSizeAcres"] == 2.5
        assert state["avatar"]["position"] == [5, 5]
        assert [t["id"] for t in state["tasks"] if t["needed"]] == ["harvest"]

    def test_default_farmer_without_history(self, initialized):
        """With no calls the default farmer needs every task."""
        state = api.start_simulation()["state"]
        assert state["farmer"]["farmerId"] == "KF001"
        assert all(t["needed"] for t in state["tasks"])

    def test_harvest_run(self, initialized):
        """Select, act and tick through a harvest."""
        api.save_call(harvest_call())
        api.start_simulation()

        assert api.select_task("harvest")["selected_task_id"] == "harvest"
        assert api.simulation_input({"kind": "key_down", "key": "p"})["handled"]
        assert api.perform_action()["started"] is False

        state = api.simulation_tick(2000)["state"]
        assert state["activity_in_progress"] is None
        assert state["harvest_animation"]
        assert state["all_complete"]
        assert state["celebrating"]

    def test_movement_input(self, initialized):
        """Arrow keys move the avatar."""
        api.start_simulation()
        state = api.simulation_input({"kind": "key_down", "key": "ArrowRight"})["state"]
        assert state["avatar"]["position"] == [6, 5]
        assert state["avatar"]["facing"] == "right"

    def test_bad_input(self, initialized):
        """Unknown input kinds and task ids are reported."""
        api.start_simulation()
        assert api.simulation_input({"kind": "jump"})["status"] == "error"
        assert api.select_task("irrigate")["status"] == "error"

    def test_stop(self, initialized):
        """A stopped simulation no longer accepts input."""
        api.start_simulation()
        assert api.stop_simulation() == {"status": "ok"}
        assert api.simulation_tick(16)["status"] == "error"

"""
CANEFARM API - library entry points

Every function returns a status dict ({"status": "ok", ...} or
{"status": "error", "error": message}) and never raises, so callers such as
a web handler or a CLI can pass results straight through.

Typical session:

    api.init({"storage": {"calls_file": "data/calls.jsonl"}})
    api.analyze_call("My cane leaves are turning yellow", farmer={"farmer_id": "KF002"})
    api.start_simulation()
    api.simulation_input({"kind": "key_down", "key": "ArrowRight"})
    api.simulation_tick(16)
"""

import logging

from .config.defaults import merge_config
from .utils.logging_setup import setup_logging
from .models.calls import CallRecord
from .models.simulation import SimulationSettings
from .storage.call_store import CallStore
from .storage.resolution_store import ResolutionStore, record_resolution
from .storage.kv_store import MemoryKeyValueStore, JsonFileKeyValueStore
from .calls.history import CallHistorySnapshotSource, FarmerDirectory
from .ai.provider_manager import LLMProviderManager
from .ai.analyzer import CallAnalyzer
from .runtime.token_tracker import TokenTracker
from .analytics.needs_analyzer import needs_report
from .sim.simulator import FarmSimulator, SimulationContext
from .sim.input import InputEvent

VERSION = "1.0.0"

# Module-level state
_logger = logging.getLogger('canefarm.api')
_config = None
_initialized = False
_call_store = None
_resolution_store = None
_kv_store = None
_farmer_directory = None
_analyzer = None
_token_tracker = None
_simulator = None


def _error(message):
    return {"status": "error", "error": message}


def _not_initialized():
    return _error("CANEFARM not initialized")


def init(config=None):
    """
    Initialize CANEFARM

    Args:
        config: Partial configuration dict merged over DEFAULT_CONFIG

    Returns:
        Status dict with the version and enabled subsystems
    """
    global _logger, _config, _initialized, _call_store, _resolution_store, _kv_store, _farmer_directory
    global _analyzer, _token_tracker, _simulator

    try:
        if _initialized:
            shutdown()

        _config = merge_config(config)
        _logger = setup_logging(_config["logging"])
        _logger.info('Initializing CANEFARM %s', VERSION)

        # Fail fast on bad simulation settings
        settings = SimulationSettings.from_config(_config["simulation"])
        _logger.info('Simulation grid %dx%d, hazard zone %s',
                     settings.grid_width, settings.grid_height, settings.hazard_zone.to_dict())

        storage = _config["storage"]
        _call_store = CallStore(storage["calls_file"])
        _resolution_store = ResolutionStore(storage["resolutions_file"])
        _kv_store = JsonFileKeyValueStore(storage["kv_file"]) if storage.get("kv_file") else MemoryKeyValueStore()
        _farmer_directory = FarmerDirectory.from_file(storage["farmers_file"]) if storage.get("farmers_file") else None

        ai_config = _config["ai"]
        if ai_config.get("enabled", True):
            _token_tracker = TokenTracker(storage.get("token_log_dir", "canefarm_logs"))
            manager = LLMProviderManager(ai_config.get("providers", []),
                                         default_min_interval=ai_config.get("min_interval", 1.0))
            _analyzer = CallAnalyzer(manager, _token_tracker,
                                     max_transcript_chars=ai_config.get("max_transcript_chars", 5000))
            _logger.info('Call analysis enabled (%d providers)', len(manager.providers))
        else:
            _analyzer = None
            _logger.info('Call analysis disabled')

        _simulator = None
        _initialized = True
        _logger.info('CANEFARM initialized (%d stored calls)', _call_store.count())

        return {
            "status": "ok",
            "version": VERSION,
            "calls": _call_store.count(),
            "ai_enabled": _analyzer is not None
        }

    except Exception as e:
        _initialized = False
        _logger.exception('Failed to initialize CANEFARM')
        return _error(str(e))


def shutdown():
    """Dispose the running simulation and drop all subsystems"""
    global _config, _initialized, _call_store, _resolution_store, _kv_store, _farmer_directory
    global _analyzer, _token_tracker, _simulator

    try:
        if not _initialized:
            return {"status": "ok", "message": "CANEFARM was not initialized"}

        _logger.info('Shutting down CANEFARM...')
        if _simulator is not None:
            _simulator.dispose()
        _simulator = None
        _analyzer = None
        _token_tracker = None
        _farmer_directory = None
        _call_store = None
        _resolution_store = None
        _kv_store = None
        _config = None
        _initialized = False
        _logger.info('CANEFARM shutdown complete')
        return {"status": "ok"}

    except Exception as e:
        _logger.exception('Error during CANEFARM shutdown')
        return _error(str(e))


def is_initialized():
    return _initialized


def get_version():
    return VERSION


# ----------------------------------------------------------------------
# Calls
# ----------------------------------------------------------------------

def analyze_call(transcript, save=True, farmer=None):
    """
    Analyze a call transcript and optionally store it

    Args:
        transcript: Farmer call transcript
        save: Store the analyzed call in the call store
        farmer: Optional farmer details (farmer_id, farmer_name, ...)

    Returns:
        Status dict with "analysis" and, when saved, "call"
    """
    if not _initialized:
        return _not_initialized()
    if _analyzer is None:
        return _error("Call analysis is disabled")

    try:
        analysis = _analyzer.analyze(transcript)
        result = {"status": "ok", "analysis": analysis.to_dict(), "provider": analysis.provider}
        if save:
            data = dict(farmer or {})
            data.update(analysis.to_dict())
            data["transcript"] = transcript
            record = _call_store.save(data)
            result["call"] = record.to_dict()
        return result

    except ValueError as e:
        _logger.warning('Rejected call analysis request: %s', e)
        return _error(str(e))
    except Exception as e:
        _logger.exception('Call analysis failed')
        return _error(str(e))


def save_call(record):
    """Store a call record dict (transcript, summary, categories, sentiment required)"""
    if not _initialized:
        return _not_initialized()
    try:
        stored = _call_store.save(record)
        return {"status": "ok", "call": stored.to_dict()}
    except ValueError as e:
        _logger.warning('Rejected call record: %s', e)
        return _error(str(e))
    except Exception as e:
        _logger.exception('Failed to save call')
        return _error(str(e))


def list_calls(limit=10, offset=0):
    """Page through stored calls, newest first"""
    if not _initialized:
        return _not_initialized()
    try:
        calls = _call_store.list(limit, offset)
        return {
            "status": "ok",
            "calls": [c.to_dict() for c in calls],
            "total": _call_store.count(),
            "limit": limit,
            "offset": offset
        }
    except ValueError as e:
        return _error(str(e))
    except Exception as e:
        _logger.exception('Failed to list calls')
        return _error(str(e))


def resolve_call(resolution):
    """
    Record how a call's issue was resolved and mark the call resolved

    Args:
        resolution: Dict with call_id, resolved_by and issue_resolved, and
                    optionally date_resolved, farmer_confirmation and notes
    """
    if not _initialized:
        return _not_initialized()
    try:
        stored = record_resolution(_call_store, _resolution_store, resolution)
        return {"status": "ok", "resolution": stored.to_dict()}
    except (ValueError, LookupError) as e:
        _logger.warning('Rejected resolution: %s', e)
        return _error(str(e))
    except Exception as e:
        _logger.exception('Failed to record resolution')
        return _error(str(e))


def list_resolutions(limit=50, offset=0, call_id=None):
    """Page through resolutions, newest first, optionally for one call"""
    if not _initialized:
        return _not_initialized()
    try:
        resolutions = _resolution_store.list(limit, offset, call_id)
        return {"status": "ok", "resolutions": [r.to_dict() for r in resolutions]}
    except ValueError as e:
        return _error(str(e))


def get_call_analytics(period="month", month=None, sentiment_days=30):
    """Need frequencies, correlations, crop health, forecast and sentiment trend over all stored calls"""
    if not _initialized:
        return _not_initialized()
    try:
        report = needs_report(_call_store.all(), period, month, sentiment_days)
        report["status"] = "ok"
        return report
    except ValueError as e:
        return _error(str(e))
    except Exception as e:
        _logger.exception('Failed to compute call analytics')
        return _error(str(e))


def get_token_stats():
    if not _initialized:
        return _not_initialized()
    if _token_tracker is None:
        return _error("Call analysis is disabled")
    stats = _token_tracker.get_stats()
    stats["status"] = "ok"
    return stats


# ----------------------------------------------------------------------
# Simulation
# ----------------------------------------------------------------------

def start_simulation():
    """
    Start (or restart) the farm simulation from the latest call

    Returns:
        Status dict with the initial simulation state
    """
    global _simulator

    if not _initialized:
        return _not_initialized()
    try:
        if _simulator is not None:
            _simulator.dispose()
        context = SimulationContext(
            settings=SimulationSettings.from_config(_config["simulation"]),
            snapshot_source=CallHistorySnapshotSource(_call_store, _farmer_directory),
            kv_store=_kv_store
        )
        _simulator = FarmSimulator(context)
        _simulator.start()
        return {"status": "ok", "state": _simulator.snapshot()}
    except Exception as e:
        _logger.exception('Failed to start simulation')
        return _error(str(e))


def _running_simulator():
    if not _initialized:
        return None, _not_initialized()
    if _simulator is None or not _simulator.active:
        return None, _error("Simulation not running")
    return _simulator, None


def simulation_tick(elapsed_ms):
    """Advance simulation time by elapsed_ms milliseconds"""
    simulator, error = _running_simulator()
    if error:
        return error
    try:
        fired = simulator.on_tick(int(elapsed_ms))
        return {"status": "ok", "fired": fired, "state": simulator.snapshot()}
    except ValueError as e:
        return _error(str(e))
    except Exception as e:
        _logger.exception('Simulation tick failed')
        return _error(str(e))


def simulation_input(event):
    """
    Feed a player input

    Args:
        event: InputEvent or dict such as {"kind": "key_down", "key": "p"}
    """
    simulator, error = _running_simulator()
    if error:
        return error
    try:
        if not isinstance(event, InputEvent):
            event = InputEvent.from_dict(event)
        handled = simulator.on_input(event)
        return {"status": "ok", "handled": handled, "state": simulator.snapshot()}
    except ValueError as e:
        return _error(str(e))
    except Exception as e:
        _logger.exception('Simulation input failed')
        return _error(str(e))


def select_task(task_id):
    simulator, error = _running_simulator()
    if error:
        return error
    try:
        selected = simulator.select_task(task_id)
        return {"status": "ok", "selected_task_id": selected.value if selected else None}
    except ValueError as e:
        return _error(str(e))


def perform_action():
    simulator, error = _running_simulator()
    if error:
        return error
    started = simulator.perform_action()
    return {"status": "ok", "started": started, "state": simulator.snapshot()}


def get_simulation_state():
    if not _initialized:
        return _not_initialized()
    if _simulator is None:
        return _error("Simulation not started")
    return {"status": "ok", "state": _simulator.snapshot()}


def stop_simulation():
    global _simulator

    if not _initialized:
        return _not_initialized()
    if _simulator is not None:
        _simulator.dispose()
    _simulator = None
    return {"status": "ok"}

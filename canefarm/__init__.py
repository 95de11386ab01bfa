"""
CANEFARM
Farmer call-centre core

This package provides:
- LLM analysis of farmer call transcripts (needs, sentiment, priority)
- Call record storage and needs analytics
- The farm activity simulator driven by the latest call
"""

# Version info
VERSION = "1.0.0"
AUTHOR = "CANEFARM contributors"

from . import api


def init(config=None):
    """Initialize CANEFARM"""
    return api.init(config)


def shutdown():
    """Shutdown CANEFARM"""
    return api.shutdown()


def is_initialized():
    """Check if CANEFARM is initialized"""
    return api.is_initialized()


def get_version():
    """Get CANEFARM version"""
    return api.get_version()


def analyze_call(transcript, save=True, farmer=None):
    """Analyze a call transcript"""
    return api.analyze_call(transcript, save=save, farmer=farmer)


def save_call(record):
    """Store a call record"""
    return api.save_call(record)


def list_calls(limit=10, offset=0):
    """List stored calls, newest first"""
    return api.list_calls(limit, offset)


def get_call_analytics(period="month", month=None, sentiment_days=30):
    """Needs and sentiment analytics over stored calls"""
    return api.get_call_analytics(period, month, sentiment_days)


def resolve_call(resolution):
    """Record a call resolution"""
    return api.resolve_call(resolution)


def list_resolutions(limit=50, offset=0, call_id=None):
    """List resolutions, newest first"""
    return api.list_resolutions(limit, offset, call_id)


def start_simulation():
    """Start the farm simulation"""
    return api.start_simulation()


def simulation_tick(elapsed_ms):
    """Advance the farm simulation"""
    return api.simulation_tick(elapsed_ms)


def simulation_input(event):
    """Send input to the farm simulation"""
    return api.simulation_input(event)


def select_task(task_id):
    """Toggle task selection"""
    return api.select_task(task_id)


def perform_action():
    """Perform the selected task"""
    return api.perform_action()


def get_simulation_state():
    """Current simulation state"""
    return api.get_simulation_state()


def stop_simulation():
    """Stop the farm simulation"""
    return api.stop_simulation()


def get_token_stats():
    """LLM token usage for this session"""
    return api.get_token_stats()

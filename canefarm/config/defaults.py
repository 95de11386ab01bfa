"""
Default configuration values for CANEFARM
"""

import copy

DEFAULT_CONFIG = {
    "logging": {
        "level": "INFO",
        "log_dir": "canefarm_logs",
        "console": False
    },
    "simulation": {
        "grid_width": 15,
        "grid_height": 10,
        "start_position": [5, 5],
        "start_facing": "down",
        "hazard_zone": {
            "left": 0.72,
            "top": 0.40,
            "width": 0.12,
            "height": 0.25
        },
        "exposure_delay_ms": 2000,
        "recovery_delay_ms": 1000,
        "recovery_settle_ms": 3000,
        "action_duration_ms": 2000,
        "harvest_animation_ms": 3000,
        "touch_release_ms": 200,
        "default_farmer_id": "KF001"
    },
    "ai": {
        "enabled": True,
        "max_transcript_chars": 5000,
        "min_interval": 1.0,
        "providers": [
            {
                "name": "openai-primary",
                "priority": 1,
                "enabled": True,
                "provider": "openai",
                "model": "gpt-4-turbo",
                "api_key": "",
                "endpoint": "",
                "timeout": 30,
                "max_output_tokens": 1024
            },
            {
                "name": "claude-fallback",
                "priority": 2,
                "enabled": False,
                "provider": "anthropic",
                "model": "claude-3-5-haiku-latest",
                "api_key": "",
                "endpoint": "",
                "timeout": 30,
                "max_output_tokens": 1024
            },
            {
                "name": "gemini-fallback",
                "priority": 3,
                "enabled": False,
                "provider": "gemini",
                "model": "gemini-2.5-flash",
                "api_key": "",
                "endpoint": "",
                "timeout": 30,
                "max_output_tokens": 1024
            }
        ]
    },
    "storage": {
        "calls_file": "canefarm_data/calls.jsonl",
        "resolutions_file": "canefarm_data/resolutions.jsonl",
        "kv_file": None,
        "farmers_file": None,
        "token_log_dir": "canefarm_logs"
    }
}


def merge_config(overrides=None, base=None):
    """
    Deep-merge user overrides into a copy of the defaults

    Args:
        overrides: Partial configuration dict (nested sections are merged key by key)
        base: Base configuration (default: DEFAULT_CONFIG)

    Returns:
        New configuration dict
    """
    merged = copy.deepcopy(base if base is not None else DEFAULT_CONFIG)
    if not overrides:
        return merged

    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(value, merged[key])
        else:
            merged[key] = copy.deepcopy(value)
    return merged

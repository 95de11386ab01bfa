"""
Token usage tracking

Every analysis call appends one JSON line to <log_dir>/token_usage.jsonl;
session totals are kept per provider.
"""

import os
import json
import logging
import tempfile
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Dict, Any

logger = logging.getLogger('canefarm.runtime.token_tracker')

USAGE_FILENAME = "token_usage.jsonl"


@dataclass
class TokenUsage:
    calls: int = 0
    input: int = 0
    output: int = 0

    @property
    def total(self) -> int:
        return self.input + self.output

    def add(self, input_tokens: int, output_tokens: int):
        self.calls += 1
        self.input += input_tokens
        self.output += output_tokens


def _writable_dir(log_dir: str) -> str:
    try:
        os.makedirs(log_dir, exist_ok=True)
        return log_dir
    except OSError as e:
        fallback = os.path.join(tempfile.gettempdir(), "canefarm_logs")
        logger.warning("Cannot use token log directory %s (%s), writing to %s", log_dir, e, fallback)
        os.makedirs(fallback, exist_ok=True)
        return fallback


class TokenTracker:
    """Session token counters backed by a JSONL usage log"""

    def __init__(self, log_dir: str = "canefarm_logs"):
        self.log_dir = _writable_dir(log_dir)
        self.log_file = os.path.join(self.log_dir, USAGE_FILENAME)
        self.session = TokenUsage()
        self.by_provider: Dict[str, TokenUsage] = {}
        self.started_at = datetime.now()
        logger.info("Token usage log: %s", self.log_file)

    def record_call(self, input_tokens: int, output_tokens: int, provider: str = "unknown"):
        """
        Add one call's usage to the session and append it to the log

        Args:
            input_tokens: Prompt tokens
            output_tokens: Completion tokens
            provider: Provider name from the ai.providers config
        """
        self.session.add(input_tokens, output_tokens)
        self.by_provider.setdefault(provider, TokenUsage()).add(input_tokens, output_tokens)

        entry = {
            "timestamp": datetime.now().isoformat(),
            "call_number": self.session.calls,
            "provider": provider,
            "input_tokens": input_tokens,
            "output_tokens": output_tokens,
            "cumulative_total": self.session.total,
        }
        try:
            with open(self.log_file, 'a', encoding='utf-8') as f:
                f.write(json.dumps(entry) + '\n')
        except OSError as e:
            logger.error("Could not append to %s: %s", self.log_file, e)
        logger.debug("%s used %d+%d tokens (session total %d)",
                     provider, input_tokens, output_tokens, self.session.total)

    def get_stats(self) -> Dict[str, Any]:
        calls = self.session.calls
        return {
            "total": dict(asdict(self.session), total=self.session.total),
            "by_provider": {name: asdict(usage) for name, usage in self.by_provider.items()},
            "averages": {
                "input_per_call": self.session.input / calls if calls else 0,
                "output_per_call": self.session.output / calls if calls else 0,
            },
            "session": {
                "start_time": self.started_at.isoformat(),
                "duration_seconds": (datetime.now() - self.started_at).total_seconds(),
            },
        }

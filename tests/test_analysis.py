"""Tests for transcript analysis: parsing, provider clients and fallback."""

import json
from types import SimpleNamespace

import pytest

from canefarm.ai.analysis_parser import parse_analysis, mentions_fertilizer
from canefarm.ai.analyzer import CallAnalyzer, build_system_prompt
from canefarm.ai.provider_manager import LLMProviderManager
from canefarm.ai.providers import extract_json, OpenAILLMClient, AnthropicLLMClient
from canefarm.ai.rate_limiter import RateLimiter
from canefarm.runtime.token_tracker import TokenTracker


def raw_analysis(**overrides):
    data = {
        "summary": "I am sorry about the pests, we will send help.",
        "categories": ["Pest Control"],
        "sentiment": -0.3,
        "needs_pesticide": True,
        "has_crop_issues": True,
        "follow_up_required": True,
        "priority": 2,
    }
    data.update(overrides)
    return data


class TestParseAnalysis:
    """Test validation of model output."""

    def test_valid_analysis(self):
        """A well-formed answer becomes a CallAnalysis with defaults filled in."""
        analysis = parse_analysis(raw_analysis(), "Insects are eating my cane")
        assert analysis.categories == ["Pest Control"]
        assert analysis.needs["needs_pesticide"]
        assert analysis.needs["has_crop_issues"]
        assert not analysis.needs["needs_harvesting"]
        assert analysis.resolved is False
        assert analysis.follow_up_required
        assert analysis.priority == 2

    def test_resolved_always_false(self):
        """The model cannot mark a fresh call as resolved."""
        analysis = parse_analysis(raw_analysis(resolved=True), "hello")
        assert analysis.resolved is False

    def test_fertilizer_keyword_forces_flag(self):
        """Fertilizer keywords in the transcript set needs_fertilizer."""
        analysis = parse_analysis(raw_analysis(needs_fertilizer=False), "The SOIL looks poor this year")
        assert analysis.needs["needs_fertilizer"]

    @pytest.mark.parametrize("overrides", [
        {"summary": ""},
        {"categories": "Harvesting"},
        {"categories": ["Weather"]},
        {"sentiment": "positive"},
        {"sentiment": True},
        {"sentiment": 1.5},
    ])
    def test_invalid_answers_rejected(self, overrides):
        """Missing summary, bad categories or bad sentiment raise ValueError."""
        with pytest.raises(ValueError):
            parse_analysis(raw_analysis(**overrides), "hello")

    @pytest.mark.parametrize("value,expected", [(None, 1), ("high", 1), (0, 1), (3, 3), (7, 3)])
    def test_priority_clamped(self, value, expected):
        """Priority is forced into 1-3."""
        assert parse_analysis(raw_analysis(priority=value), "hello").priority == expected

    def test_keyword_matching(self):
        """Keyword matching is case-insensitive substring matching."""
        assert mentions_fertilizer("Need some UREA")
        assert mentions_fertilizer("the cane won't grow")
        assert not mentions_fertilizer("please come and cut my cane")

    def test_prompt_hint(self):
        """The fertilizer note is added only when requested."""
        assert "fertilizer-related keywords" in build_system_prompt(True)
        assert "fertilizer-related keywords" not in build_system_prompt(False)
        assert "Pest Control" in build_system_prompt()


class TestExtractJson:
    """Test JSON extraction from model text."""

    def test_fenced_block(self):
        """A fenced json block is preferred."""
        text = 'Here you go:\n```json\n{"summary": "ok"}\n```\nThanks'
        assert extract_json(text) == {"summary": "ok"}

    def test_bare_object(self):
        """The outermost brace span is used without a fence."""
        assert extract_json('prefix {"a": {"b": 1}} suffix') == {"a": {"b": 1}}

    @pytest.mark.parametrize("text", ["", "no json here", "{broken", "[1, 2]"])
    def test_unparseable(self, text):
        """Anything that is not a JSON object gives None."""
        assert extract_json(text) is None


class FakeCompletions:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error
        return SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=self.content))],
            usage=SimpleNamespace(prompt_tokens=120, completion_tokens=30, total_tokens=150),
        )


class TestProviderClients:
    """Test the SDK clients against fake SDK objects."""

    def test_openai_client(self):
        """OpenAI responses are parsed and carry token usage."""
        completions = FakeCompletions(content=json.dumps(raw_analysis()))
        sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        client = OpenAILLMClient(api_key="unused", model="gpt-4-turbo", client=sdk)

        result = client.analyze_transcript("Insects everywhere", "system")
        assert result["summary"].startswith("I am sorry")
        assert result["__token_usage"] == {"input_tokens": 120, "output_tokens": 30, "total_tokens": 150}
        request = completions.calls[0]
        assert request["response_format"] == {"type": "json_object"}
        assert request["messages"][0] == {"role": "system", "content": "system"}

    def test_openai_failure_returns_none(self):
        """SDK exceptions are reported as None."""
        completions = FakeCompletions(error=RuntimeError("boom"))
        sdk = SimpleNamespace(chat=SimpleNamespace(completions=completions))
        client = OpenAILLMClient(api_key="unused", model="gpt-4-turbo", client=sdk)
        assert client.analyze_transcript("hello", "system") is None

    def test_anthropic_client(self):
        """Anthropic text blocks are joined and parsed."""
        text = "```json\n" + json.dumps(raw_analysis()) + "\n```"
        response = SimpleNamespace(
            content=[SimpleNamespace(text=text)],
            usage=SimpleNamespace(input_tokens=80, output_tokens=25),
        )
        sdk = SimpleNamespace(messages=SimpleNamespace(create=lambda **kwargs: response))
        client = AnthropicLLMClient(api_key="unused", model="claude", client=sdk)

        result = client.analyze_transcript("Insects everywhere", "system")
        assert result["categories"] == ["Pest Control"]
        assert result["__token_usage"]["total_tokens"] == 105


class FakeClient:
    def __init__(self, answer):
        self.answer = answer
        self.calls = 0

    def analyze_transcript(self, transcript, system_prompt):
        self.calls += 1
        return dict(self.answer) if self.answer is not None else None


PROVIDERS = [
    {"name": "primary", "provider": "openai", "priority": 1, "enabled": True, "api_key": "k1"},
    {"name": "backup", "provider": "anthropic", "priority": 2, "enabled": True, "api_key": "k2"},
]


@pytest.fixture
def fake_clients():
    return {
        "primary": FakeClient(None),
        "backup": FakeClient(raw_analysis(__token_usage={"input_tokens": 100, "output_tokens": 20})),
    }


@pytest.fixture
def manager(monkeypatch, fake_clients):
    manager = LLMProviderManager(PROVIDERS)
    monkeypatch.setattr(manager, "create_client",
                        lambda cfg: (fake_clients[cfg.name], RateLimiter(0.0), ""))
    return manager


class TestCallAnalyzer:
    """Test provider fallback in the analyzer."""

    def test_falls_back_to_next_provider(self, manager, fake_clients, tmp_path):
        """A provider that returns nothing is skipped for the next one."""
        tracker = TokenTracker(str(tmp_path / "tokens"))
        analyzer = CallAnalyzer(manager, token_tracker=tracker)

        analysis = analyzer.analyze("Insects are eating my cane")
        assert analysis.provider == "backup"
        assert fake_clients["primary"].calls == 1
        assert manager.failures == {"primary": 1}
        assert tracker.get_stats()["by_provider"]["backup"] == {"calls": 1, "input": 100, "output": 20}

    def test_invalid_answer_falls_back(self, manager, fake_clients):
        """A provider answer that fails validation counts as a failure."""
        fake_clients["primary"].answer = raw_analysis(sentiment=4)
        analysis = CallAnalyzer(manager).analyze("Insects are eating my cane")
        assert analysis.provider == "backup"
        assert manager.failures["primary"] == 1

    def test_all_providers_fail(self, manager, fake_clients):
        """RuntimeError when no provider produces an analysis."""
        fake_clients["backup"].answer = None
        with pytest.raises(RuntimeError):
            CallAnalyzer(manager).analyze("hello")

    def test_no_providers(self):
        """An empty provider list fails immediately."""
        with pytest.raises(RuntimeError):
            CallAnalyzer(LLMProviderManager([])).analyze("hello")

    @pytest.mark.parametrize("transcript", ["", "   ", None, "x" * 5001])
    def test_transcript_validation(self, manager, fake_clients, transcript):
        """Empty and over-long transcripts never reach a provider."""
        with pytest.raises(ValueError):
            CallAnalyzer(manager).analyze(transcript)
        assert fake_clients["primary"].calls == 0

    def test_rate_limited_provider_skipped(self, monkeypatch, fake_clients):
        """A rate-limited provider is passed over without counting a failure."""
        fake_clients["primary"].answer = raw_analysis()
        limiters = {"primary": RateLimiter(60.0), "backup": RateLimiter(0.0)}
        limiters["primary"].last_call_time = 100.0
        manager = LLMProviderManager(PROVIDERS)
        monkeypatch.setattr(manager, "create_client",
                            lambda cfg: (fake_clients[cfg.name], limiters[cfg.name], ""))

        analysis = CallAnalyzer(manager, clock=lambda: 110.0).analyze("Insects")
        assert analysis.provider == "backup"
        assert fake_clients["primary"].calls == 0
        assert manager.failures == {}


class TestTokenTracker:
    """Test token usage logging."""

    def test_records_to_jsonl(self, tmp_path):
        """Each call is appended to the log and totals accumulate."""
        tracker = TokenTracker(str(tmp_path))
        tracker.record_call(100, 20, provider="primary")
        tracker.record_call(50, 10, provider="primary")

        stats = tracker.get_stats()
        assert stats["total"] == {"calls": 2, "input": 150, "output": 30, "total": 180}
        assert stats["averages"]["input_per_call"] == 75

        lines = (tmp_path / "token_usage.jsonl").read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["cumulative_total"] for line in lines] == [120, 180]

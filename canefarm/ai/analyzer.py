"""
Call analyzer

Validates a transcript, asks the configured LLM providers (in priority
order, with fallback) to classify it, and validates the answer.
"""

import time
import logging
from typing import Callable, Optional

from ..models.calls import CallAnalysis, FARMING_CATEGORIES
from .analysis_parser import parse_analysis, mentions_fertilizer
from .provider_manager import LLMProviderManager

logger = logging.getLogger('canefarm.ai.analyzer')

SYSTEM_PROMPT = """You are an agricultural support assistant for a sugarcane milling company.
Read the farmer's message and reply to them directly, in the first person, warmly and briefly.

Decide whether the message indicates that the farmer needs:
1. Fertilizer input (any mention of poor growth, yellow leaves or soil problems counts)
2. Seed cane input
3. Harvesting service
4. Ploughing service
5. Help with crop issues
6. Pesticide input

Also choose the relevant categories from: {categories}
and a sentiment score from -1 (very negative) to +1 (very positive).

Respond with a JSON object:
{{
  "summary": "your first-person reply to the farmer (1-2 sentences)",
  "categories": ["category1"],
  "sentiment": number,
  "needs_fertilizer": boolean,
  "needs_seed_cane": boolean,
  "needs_harvesting": boolean,
  "needs_ploughing": boolean,
  "has_crop_issues": boolean,
  "needs_pesticide": boolean,
  "resolved": false,
  "follow_up_required": boolean,
  "priority": number (1-3, 3 is most urgent)
}}
Set a need to true only if the farmer states or implies it.{fertilizer_note}"""

FERTILIZER_NOTE = ("\nThe transcript contains fertilizer-related keywords; "
                   "consider needs_fertilizer carefully.")


def build_system_prompt(fertilizer_hint: bool = False) -> str:
    return SYSTEM_PROMPT.format(
        categories=", ".join(FARMING_CATEGORIES),
        fertilizer_note=FERTILIZER_NOTE if fertilizer_hint else ""
    )


class CallAnalyzer:
    """
    Classifies farmer call transcripts with LLM fallback
    """

    def __init__(self, provider_manager: LLMProviderManager, token_tracker=None,
                 max_transcript_chars: int = 5000, clock: Callable[[], float] = time.monotonic):
        """
        Initialize analyzer

        Args:
            provider_manager: Provider selection and fallback
            token_tracker: Optional TokenTracker for usage logging
            max_transcript_chars: Longest transcript accepted
            clock: Time source for provider rate limiting (seconds)
        """
        self.provider_manager = provider_manager
        self.token_tracker = token_tracker
        self.max_transcript_chars = max_transcript_chars
        self.clock = clock

    def validate_transcript(self, transcript) -> str:
        if not transcript or not isinstance(transcript, str) or not transcript.strip():
            raise ValueError("Transcript must be a non-empty string")
        if len(transcript) > self.max_transcript_chars:
            raise ValueError(f"Transcript too long (max {self.max_transcript_chars} characters)")
        return transcript

    def analyze(self, transcript: str) -> CallAnalysis:
        """
        Analyze a transcript

        Args:
            transcript: Farmer call transcript

        Returns:
            CallAnalysis from the first provider that returned a valid answer

        Raises:
            ValueError: If the transcript is empty or too long
            RuntimeError: If no provider produced a valid analysis
        """
        self.validate_transcript(transcript)
        system_prompt = build_system_prompt(mentions_fertilizer(transcript))
        logger.info("Analyzing transcript (%d chars): %s", len(transcript), transcript[:100])

        last_error: Optional[str] = None
        attempts = max(1, len(self.provider_manager.providers))
        for _ in range(attempts):
            selection = self.provider_manager.get_next_provider()
            if selection is None:
                break
            provider_config, client, rate_limiter = selection

            if not rate_limiter.should_call_llm(self.clock()):
                last_error = f"{provider_config.name} rate limited"
                logger.warning("Provider %s rate limited (%.1fs until next call)",
                               provider_config.name, rate_limiter.wait_time(self.clock()))
                self.provider_manager.fallback_to_next()
                continue

            raw = client.analyze_transcript(transcript, system_prompt)
            if raw is None:
                last_error = f"{provider_config.name} returned no analysis"
                self.provider_manager.record_failure(provider_config.name)
                self.provider_manager.fallback_to_next()
                continue

            try:
                analysis = parse_analysis(raw, transcript)
            except ValueError as e:
                last_error = f"{provider_config.name} returned an invalid analysis: {e}"
                logger.error("Invalid analysis from %s: %s", provider_config.name, e)
                self.provider_manager.record_failure(provider_config.name)
                self.provider_manager.fallback_to_next()
                continue

            self.provider_manager.record_success(provider_config.name)
            analysis.provider = provider_config.name
            if self.token_tracker and analysis.token_usage:
                self.token_tracker.record_call(
                    analysis.token_usage.get('input_tokens', 0),
                    analysis.token_usage.get('output_tokens', 0),
                    provider=provider_config.name
                )
            logger.info("Analysis by %s: priority %d, sentiment %.2f",
                        provider_config.name, analysis.priority, analysis.sentiment)
            return analysis

        raise RuntimeError(f"Call analysis failed: {last_error or 'no LLM providers available'}")

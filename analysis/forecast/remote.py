"""
FORECAST - Remote Inference Predictor

Asks a hosted chat-completion model (Mistral) for the next price and
parses the free-text answer.
"""

import math
import re
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import httpx

from shared import (
    ComponentLogger,
    ForecasterConfig,
    Observation,
    PredictionResult,
    PredictionSource,
    SeriesStats,
)

from .base import PredictionStrategy


SYSTEM_PROMPT = """You are a financial analyst specializing in predicting the FLR/USD price on the Flare network.

Your role:
- Analyze the provided historical FLR/USD price data
- Generate an accurate prediction for the next price
- Explain your reasoning in a clear and educational manner
- Mention trend factors, volatility, and regression models
- Structure your response by always starting with the predicted price (numeric format), followed by an explanation

Desired response format:
"The next predicted price is [PRICE] USD. This prediction is based on [EXPLANATION]..."
"""

PRIMING_PREFIX = "The next predicted price is "

# Cue word, up to ten characters of slack, then a decimal number
_CUED_PRICE = re.compile(
    r"(?:predicted price|prediction|estimated).{1,10}?(?:is of|is|:)?\s*([0-9]+[.,][0-9]+)",
    re.IGNORECASE,
)
_ANY_NUMBER = re.compile(r"\d+(?:[.,]\d+)?")
_LEADING_PUNCTUATION = re.compile(r"^\s*[.,:;]\s*")

# Only split off the explanation when the price is stated up front
_EXPLANATION_SPLIT_LIMIT = 50


@dataclass(frozen=True)
class ParsedPrediction:
    price: float | None
    explanation: str


def _to_float(text: str) -> float | None:
    try:
        value = float(text.replace(",", "."))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_prediction_text(text: str) -> ParsedPrediction:
    """
    Extract a price and explanation from a model response.

    Best effort: looks for a number right after "predicted price",
    "prediction" or "estimated", then for any number at all. A response
    without a number parses to ``price=None``.
    """
    cued = _CUED_PRICE.search(text)
    price = _to_float(cued.group(1)) if cued else None

    if price is None:
        cued = None
        loose = _ANY_NUMBER.search(text)
        if loose:
            price = _to_float(loose.group(0))

    explanation = text
    if price is not None and cued and cued.start() < _EXPLANATION_SPLIT_LIMIT:
        rest = _LEADING_PUNCTUATION.sub("", text[cued.end():]).strip()
        if rest:
            explanation = rest

    return ParsedPrediction(price=price, explanation=explanation.strip())


def _iso(timestamp: int | None) -> str:
    if timestamp is None:
        return "unknown"
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


def format_stats(stats: SeriesStats) -> str:
    return (
        f"- Number of observations: {stats.count}\n"
        f"- Minimum price: ${stats.min:.4f}\n"
        f"- Maximum price: ${stats.max:.4f}\n"
        f"- Average price: ${stats.avg:.4f}\n"
        f"- Period: {_iso(stats.period_start)} to {_iso(stats.period_end)}"
    )


def format_prices(series: Sequence[Observation]) -> str:
    return "\n".join(
        f"#{i}: ${o.value:.4f} ({o.observed_datetime:%Y-%m-%d %H:%M} UTC)"
        for i, o in enumerate(series, start=1)
    )


def build_messages(series: Sequence[Observation]) -> list[dict[str, Any]]:
    """System instruction, user request with the data, priming assistant turn."""
    stats = SeriesStats.from_series(series)
    user = (
        "I need a FLR/USD price prediction based on the following historical data:\n\n"
        f"{format_stats(stats)}\n\n"
        f"Price history:\n{format_prices(series)}\n\n"
        "Can you predict the next price and explain your reasoning?\n\n"
        "I require:\n"
        "1. A precise numeric prediction (start with this)\n"
        "2. A detailed explanation including trend and your methodology\n"
        "3. A confidence level for this prediction"
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
        {"role": "assistant", "content": PRIMING_PREFIX, "prefix": True},
    ]


def _extract_content(data: Any) -> str | None:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str) or not content.strip():
        return None
    return content


class RemoteInferencePredictor(PredictionStrategy):
    """Chat-completion backed prediction. Any failure yields None."""

    name = "remote_inference"

    def __init__(
        self,
        api_key: str | None,
        api_url: str = "https://api.mistral.ai/v1/chat/completions",
        model: str = "mistral-small-latest",
        max_tokens: int = 256,
        temperature: float = 0.7,
        top_p: float = 0.9,
        presence_penalty: float = 0.2,
        frequency_penalty: float = 0.3,
        timeout_s: float = 30.0,
        client_factory: Callable[..., Any] = httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ):
        self.logger = ComponentLogger("FORECAST-REMOTE")
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.top_p = top_p
        self.presence_penalty = presence_penalty
        self.frequency_penalty = frequency_penalty
        self.timeout_s = timeout_s
        self.client_factory = client_factory
        self.clock = clock

    @classmethod
    def from_config(cls, config: ForecasterConfig, **kwargs: Any) -> "RemoteInferencePredictor":
        remote = config.remote
        return cls(
            api_key=config.get_remote_api_key(),
            api_url=remote.api_url,
            model=remote.model,
            max_tokens=remote.max_tokens,
            temperature=remote.temperature,
            top_p=remote.top_p,
            presence_penalty=remote.presence_penalty,
            frequency_penalty=remote.frequency_penalty,
            timeout_s=remote.timeout_s,
            **kwargs,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def build_request(self, series: Sequence[Observation]) -> dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "stream": False,
            "messages": build_messages(series),
            "temperature": self.temperature,
            "top_p": self.top_p,
            "response_format": {"type": "text"},
            "presence_penalty": self.presence_penalty,
            "frequency_penalty": self.frequency_penalty,
            # Per-session seed for traceability, not reproducibility
            "random_seed": int(self.clock()),
        }

    async def attempt(self, series: Sequence[Observation]) -> PredictionResult | None:
        return await self.predict(series)

    async def predict(self, series: Sequence[Observation]) -> PredictionResult | None:
        if not self.enabled:
            self.logger.info("Mistral API key not available, skipping remote inference")
            return None
        if not series:
            return None

        try:
            body = self.build_request(series)
            headers = {
                "Authorization": f"Bearer {self.api_key.strip()}",
                "Content-Type": "application/json",
            }
            async with self.client_factory(timeout=self.timeout_s) as client:
                response = await client.post(self.api_url, headers=headers, json=body)

            if not 200 <= response.status_code < 300:
                self.logger.error(
                    "Mistral API error",
                    status_code=response.status_code,
                    response_text=response.text[:500],
                )
                return None

            content = _extract_content(response.json())
            if content is None:
                self.logger.error("Unexpected Mistral API response format")
                return None

            parsed = parse_prediction_text(content)
            if parsed.price is None:
                self.logger.warning("No price found in Mistral response", response=content[:200])
                return None

        except Exception as e:
            self.logger.warning("Mistral API inaccessible", error=str(e))
            return None

        self.logger.info("Remote prediction", price=parsed.price)
        return PredictionResult(
            price=parsed.price,
            explanation=parsed.explanation,
            source=PredictionSource.REMOTE_INFERENCE,
        )


async def predict_remote(
    series: Sequence[Observation],
    config: ForecasterConfig,
) -> PredictionResult | None:
    """Run remote inference with settings from ``config``."""
    return await RemoteInferencePredictor.from_config(config).predict(series)

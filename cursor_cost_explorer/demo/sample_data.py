# cursor_cost_explorer/demo/sample_data.py
"""Deterministic sample usage for the ``demo`` command."""

import random
from datetime import datetime, timedelta, timezone
from typing import List

from cursor_cost_explorer.ingest.models import UsageEvent

DEMO_START = datetime(2025, 11, 1, tzinfo=timezone.utc)
DEMO_DAYS = 30
DEMO_SEED = 42

# (model, share of requests, cost per million tokens)
DEMO_MODELS = [
    ("composer-1", 0.40, 6.0),
    ("grok-code-fast-1", 0.25, 2.5),
    ("claude-4.5-sonnet", 0.20, 9.0),
    ("claude-4.5-sonnet-thinking", 0.10, 12.0),
    ("claude-4-opus", 0.05, 45.0),
]


def _pick_model(rng: random.Random):
    roll = rng.random()
    cumulative = 0.0
    for model in DEMO_MODELS:
        cumulative += model[1]
        if roll < cumulative:
            return model
    return DEMO_MODELS[-1]


def build_demo_events(seed: int = DEMO_SEED) -> List[UsageEvent]:
    """A month of evening-heavy usage with a couple of sprint days."""
    rng = random.Random(seed)
    events = []

    for day in range(DEMO_DAYS):
        date = DEMO_START + timedelta(days=day)
        requests = rng.randint(15, 30)
        if day in (9, 22):
            requests *= 4

        for _ in range(requests):
            hour = rng.choice([10, 11, 14, 15, 19, 20, 21, 22])
            timestamp = date + timedelta(hours=hour, minutes=rng.randint(0, 59))
            model, _, cost_per_million = _pick_model(rng)

            cache_read = rng.randint(20_000, 120_000)
            input_tokens = rng.randint(5_000, 40_000)
            output_tokens = rng.randint(500, 6_000)
            total_tokens = cache_read + input_tokens + output_tokens

            roll = rng.random()
            if roll < 0.05:
                kind = "Errored, Not Charged"
            elif roll < 0.85:
                kind = "Included"
            else:
                kind = "On-Demand"

            events.append(UsageEvent(
                timestamp=timestamp,
                kind=kind,
                model=model,
                cost=round(total_tokens / 1_000_000 * cost_per_million, 4),
                total_tokens=total_tokens,
                cache_read_tokens=cache_read,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            ))

    events.sort(key=lambda e: e.timestamp)
    return events

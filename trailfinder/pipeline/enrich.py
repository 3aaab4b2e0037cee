"""Resumable AI enrichment of trail records.

Trails that already carry an ``ai`` payload are skipped, so the stage can be
stopped and rerun at any point and picks up where it left off.
"""

from __future__ import annotations

import json
import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from trailfinder.common.config_loader import EnrichConfig
from trailfinder.common.errors import ConfigError, PipelineError
from trailfinder.common.fs import append_csv_row
from trailfinder.common.geo import safe_float
from trailfinder.common.http import HttpClient, TimeoutConfig
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import AiEnrichment, TrailRecord
from trailfinder.common.time_utils import utc_timestamp_iso
from trailfinder.search.store import TrailStore

USAGE_HEADERS = ["slug", "input_tokens", "output_tokens", "total_tokens", "cost_usd", "timestamp"]

SYSTEM_PROMPT = "Output concise JSON ONLY. No markdown."

RESPONSE_SHAPE = """{
  "summary": string,
  "terrain_summary": string,
  "safety_notes": string,
  "recommended_gear": string[],
  "best_seasons": string,
  "seo": {
    "title": string,
    "meta_description": string,
    "h1": string
  }
}"""


class EnrichmentError(PipelineError):
    error_code = "ENRICHMENT_ERROR"


@dataclass(frozen=True)
class EnrichmentReply:
    ai: AiEnrichment
    input_tokens: int
    output_tokens: int


def build_prompt(trail: TrailRecord) -> str:
    themes = ", ".join(trail.themes) if trail.themes else "none"
    return (
        "Return ONLY valid JSON:\n\n"
        f"{RESPONSE_SHAPE}\n\n"
        "Hike details:\n"
        f"Name: {trail.name}\n"
        f"Region: {trail.region or 'Unknown'}\n"
        f"Country: {trail.country or 'Unknown'}\n"
        f"Distance (km): {trail.distance_km}\n"
        f"Difficulty: {trail.difficulty or 'Unknown'}\n"
        f"Themes: {themes}"
    )


def estimate_cost(input_tokens: int, output_tokens: int, cfg: EnrichConfig) -> float:
    return input_tokens / 1_000_000 * cfg.cost_input_per_m + output_tokens / 1_000_000 * cfg.cost_output_per_m


def _token_count(usage: dict, key: str) -> int:
    raw = usage.get(key)
    if raw is None:
        return 0
    count = safe_float(raw)
    if count is None or not math.isfinite(count) or count < 0:
        raise EnrichmentError(f"usage.{key} is not a token count: {raw!r}")
    return int(count)


def parse_completion(payload: dict) -> EnrichmentReply:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as exc:
        raise EnrichmentError("completion has no message content") from exc
    if not content:
        raise EnrichmentError("empty completion")
    try:
        ai = AiEnrichment.from_dict(json.loads(content))
    except (json.JSONDecodeError, ValueError) as exc:
        raise EnrichmentError(f"completion is not an enrichment object: {exc}") from exc

    usage = payload.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    return EnrichmentReply(
        ai=ai,
        input_tokens=_token_count(usage, "prompt_tokens"),
        output_tokens=_token_count(usage, "completion_tokens"),
    )


class EnrichmentClient:
    def __init__(self, cfg: EnrichConfig, api_key: str, http_client: HttpClient) -> None:
        if not api_key:
            raise ConfigError(f"{cfg.api_key_env} is missing")
        self.cfg = cfg
        self.api_key = api_key
        self.http_client = http_client

    def enrich(self, trail: TrailRecord) -> EnrichmentReply:
        payload = self.http_client.post_json(
            self.cfg.endpoint,
            source_type="enrichment",
            body={
                "model": self.cfg.model,
                "response_format": {"type": "json_object"},
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": build_prompt(trail)},
                ],
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=TimeoutConfig(connect=20, read=120),
        )
        return parse_completion(payload)


def run_enrich(
    store: TrailStore,
    client: EnrichmentClient,
    cfg: EnrichConfig,
    usage_path: Path,
    *,
    sleep: Callable[[float], None] = time.sleep,
    logger: logging.Logger | None = None,
) -> dict:
    logger = get_logger(logger)
    corpus = store.load_all()
    pending = [trail for trail in corpus.trails if trail.ai is None]
    batch = pending[: cfg.max_per_run]

    processed = 0
    failed = 0
    total_input = 0
    total_output = 0

    for position, trail in enumerate(batch, start=1):
        try:
            reply = client.enrich(trail)
        except PipelineError as exc:
            failed += 1
            log_event(
                logger,
                f"[{position}/{len(batch)}] enrichment failed: {exc}",
                level=logging.WARNING,
                stage="enrich",
                event="ENRICH_FAIL",
                status="error",
                error_code=exc.error_code,
                slug=trail.slug,
            )
        else:
            store.save(trail.with_enrichment(reply.ai))
            cost = estimate_cost(reply.input_tokens, reply.output_tokens, cfg)
            append_csv_row(
                usage_path,
                USAGE_HEADERS,
                {
                    "slug": trail.slug,
                    "input_tokens": reply.input_tokens,
                    "output_tokens": reply.output_tokens,
                    "total_tokens": reply.input_tokens + reply.output_tokens,
                    "cost_usd": f"{cost:.6f}",
                    "timestamp": utc_timestamp_iso(),
                },
            )
            processed += 1
            total_input += reply.input_tokens
            total_output += reply.output_tokens
            log_event(
                logger,
                f"[{position}/{len(batch)}] enriched, cost ${cost:.6f}",
                stage="enrich",
                event="ENRICHED",
                status="ok",
                slug=trail.slug,
            )

        if cfg.delay_ms > 0 and position < len(batch):
            sleep(cfg.delay_ms / 1000)

    return {
        "total": len(corpus.trails),
        "pending_before": len(pending),
        "processed": processed,
        "failed": failed,
        "remaining": len(pending) - processed,
        "input_tokens": total_input,
        "output_tokens": total_output,
        "cost_usd": round(estimate_cost(total_input, total_output, cfg), 6),
    }

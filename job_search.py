"""Job board search backed by the completion model."""

from __future__ import annotations

import logging

import prompts
from interfaces import CompletionClient
from llm import parse_json
from models import DiscoveredJob

logger = logging.getLogger(__name__)


class LlmJobSearchProvider:
    """Asks the model for live postings; any failure yields an empty list."""

    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def search(self, query: str, limit: int = 8) -> list[DiscoveredJob]:
        query = query.strip()
        if not query:
            return []
        try:
            text = self._client.complete(prompts.search_prompt(query, limit), json_output=True)
        except Exception as exc:
            logger.warning("job search failed (%s): %s", getattr(exc, "code", type(exc).__name__), exc)
            return []

        jobs: list[DiscoveredJob] = []
        seen: set[tuple[str, str, str]] = set()
        for item in parse_json(text, []):
            job = DiscoveredJob.from_dict(item)
            if job is None:
                continue
            key = (job.title.lower(), job.company.lower(), job.url)
            if key in seen:
                continue
            seen.add(key)
            jobs.append(job)
        logger.info("job search for %r returned %d posting(s)", query, len(jobs))
        return jobs[:limit]

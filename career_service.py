"""Model-backed career operations: extraction, matching, roadmap, resume edits.

Transport failures from the completion client propagate as
``CompletionError`` so task drivers can record them. Malformed model output
never raises; each operation substitutes a safe default instead.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict
from typing import Any, Optional

import prompts
from interfaces import CompletionClient
from llm import parse_json
from models import (
    CareerRoadmap,
    CoverLetterStyle,
    Job,
    MarketInsights,
    MatchResult,
    ResumeContent,
    ResumeMutation,
    RoadmapStep,
    UserProfile,
)

logger = logging.getLogger(__name__)

PLATFORMS = ("LinkedIn", "Indeed", "Wellfound", "Other")
DEMAND_TRENDS = ("High", "Stable", "Decreasing")


def _int(value: Any, default: int, lo: int = 0, hi: int = 100) -> int:
    try:
        return max(lo, min(hi, int(round(float(value)))))
    except (TypeError, ValueError, OverflowError):
        return default


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


class CareerService:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def extract_job(self, text: str) -> Job:
        data = parse_json(self._client.complete(prompts.extract_job_prompt(text), json_output=True), {})
        platform = str(data.get("platform", "Other"))
        return Job(
            id=uuid.uuid4().hex[:9],
            title=str(data.get("title", "")) or "Unknown role",
            company=str(data.get("company", "")) or "Unknown company",
            description=str(data.get("description", "")),
            location=str(data.get("location", "")),
            skills=_strings(data.get("skills")),
            apply_url=str(data.get("apply_url", "")) or (text if text.lower().startswith("http") else ""),
            platform=platform if platform in PLATFORMS else "Other",
        )

    def calculate_match(self, job: Job, profile: UserProfile) -> MatchResult:
        job_json = json.dumps(asdict(job), ensure_ascii=False)
        data = parse_json(self._client.complete(prompts.match_prompt(job_json, profile), json_output=True), {})
        return MatchResult(
            score=_int(data.get("score"), 0),
            reasoning=str(data.get("reasoning", "")),
            missing_skills=_strings(data.get("missing_skills")),
        )

    def generate_roadmap(self, profile: UserProfile) -> CareerRoadmap:
        data = parse_json(self._client.complete(prompts.roadmap_prompt(profile), json_output=True), {})
        steps = []
        for item in data.get("steps") or []:
            if not isinstance(item, dict):
                continue
            steps.append(
                RoadmapStep(
                    period=str(item.get("period", "")),
                    goal=str(item.get("goal", "")),
                    action_items=_strings(item.get("action_items")),
                    skill_gain=_strings(item.get("skill_gain")),
                )
            )
        return CareerRoadmap(
            current_market_value=str(data.get("current_market_value", "")),
            target_market_value=str(data.get("target_market_value", "")),
            gap_analysis=str(data.get("gap_analysis", "")),
            steps=steps,
        )

    def mutate_resume(self, job: Job, profile: UserProfile) -> ResumeMutation:
        job_json = json.dumps(asdict(job), ensure_ascii=False)
        text = self._client.complete(prompts.mutation_prompt(job_json, profile), json_output=True)
        data = parse_json(text, {})
        resume = data.get("mutated_resume")
        if not isinstance(resume, dict) or not resume:
            logger.warning("resume mutation unusable, keeping the base resume")
            return ResumeMutation(
                resume=profile.primary_resume,
                reordering_justification="Fallback used",
                ats_score_estimate=50,
            )
        report = data.get("report") if isinstance(data.get("report"), dict) else {}
        return ResumeMutation(
            resume=ResumeContent.from_dict(resume),
            keywords_injected=_strings(report.get("keywords_injected")),
            reordering_justification=str(report.get("reordering_justification", "")),
            ats_score_estimate=_int(report.get("ats_score_estimate"), 50),
        )

    def improve_resume(self, profile: UserProfile, instruction: str) -> ResumeContent:
        data = parse_json(
            self._client.complete(prompts.improve_prompt(profile, instruction), json_output=True), {}
        )
        if not data:
            logger.warning("resume improvement unusable, keeping the current resume")
            return profile.primary_resume
        return ResumeContent.from_dict(data)

    def generate_cover_letter(
        self,
        job: Job,
        profile: UserProfile,
        style: CoverLetterStyle = CoverLetterStyle.CHILL_PROFESSIONAL,
    ) -> str:
        text = self._client.complete(
            prompts.cover_letter_prompt(job.title, job.company, profile, style),
            system="You are a world-class career strategist.",
        )
        return text.strip()

    def market_insights(self, role: str) -> Optional[MarketInsights]:
        """Best-effort enrichment; returns None on any failure."""
        try:
            data = parse_json(self._client.complete(prompts.insights_prompt(role), json_output=True), {})
        except Exception as exc:
            logger.debug("market insights unavailable for %r: %s", role, exc)
            return None
        if not data:
            return None
        trend = str(data.get("demand_trend", "Stable"))
        return MarketInsights(
            salary_range=str(data.get("salary_range", "")),
            demand_trend=trend if trend in DEMAND_TRENDS else "Stable",
            top_skills=_strings(data.get("top_skills")),
        )

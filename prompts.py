"""Prompt templates and JSON output schemas for the model calls."""

from __future__ import annotations

import json

from models import CoverLetterStyle, UserProfile

COMMAND_SYSTEM = (
    "You are the career assistant command interpreter. Parse the user's natural "
    "language instruction into a single JSON command. Return only raw JSON."
)

COMMAND_SCHEMA = {
    "type": "object",
    "properties": {
        "action": {
            "type": "string",
            "enum": [
                "switch_tab",
                "search_jobs",
                "improve_resume",
                "start_interview",
                "update_profile",
                "status",
                "find_gigs",
                "blocked",
            ],
        },
        "goal": {"type": "string"},
        "reason": {"type": "string"},
        "params": {
            "type": "object",
            "properties": {
                "target_tab": {
                    "type": "string",
                    "enum": ["discover", "resume", "roadmap", "interview", "history", "profile"],
                },
                "query": {"type": "string"},
                "improvement_prompt": {"type": "string"},
                "profile_updates": {
                    "type": "object",
                    "properties": {
                        "full_name": {"type": "string"},
                        "email": {"type": "string"},
                        "phone": {"type": "string"},
                        "linkedin": {"type": "string"},
                        "portfolio": {"type": "string"},
                    },
                },
                "preferences_updates": {
                    "type": "object",
                    "properties": {
                        "target_roles": {"type": "array", "items": {"type": "string"}},
                        "min_salary": {"type": "string"},
                        "locations": {"type": "array", "items": {"type": "string"}},
                        "remote_only": {"type": "boolean"},
                        "match_threshold": {"type": "integer", "minimum": 0, "maximum": 100},
                        "preferred_platforms": {"type": "array", "items": {"type": "string"}},
                    },
                },
            },
        },
    },
    "required": ["action"],
}

JOB_LIST_SCHEMA = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "company": {"type": "string"},
            "location": {"type": "string"},
            "url": {"type": "string"},
            "source": {"type": "string"},
            "salary": {"type": "string"},
        },
        "required": ["title", "company", "url", "source"],
    },
}

JOB_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "company": {"type": "string"},
        "location": {"type": "string"},
        "skills": {"type": "array", "items": {"type": "string"}},
        "description": {"type": "string"},
        "apply_url": {"type": "string"},
        "platform": {"type": "string", "enum": ["LinkedIn", "Indeed", "Wellfound", "Other"]},
    },
    "required": ["title", "company", "description"],
}

MATCH_SCHEMA = {
    "type": "object",
    "properties": {
        "score": {"type": "number"},
        "reasoning": {"type": "string"},
        "missing_skills": {"type": "array", "items": {"type": "string"}},
    },
    "required": ["score", "reasoning", "missing_skills"],
}

_RESUME_SCHEMA = {
    "type": "object",
    "properties": {
        "summary": {"type": "string"},
        "skills": {"type": "array", "items": {"type": "string"}},
        "experience": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "company": {"type": "string"},
                    "role": {"type": "string"},
                    "duration": {"type": "string"},
                    "achievements": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
        "projects": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "description": {"type": "string"},
                    "technologies": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
}

MUTATION_SCHEMA = {
    "type": "object",
    "properties": {
        "mutated_resume": _RESUME_SCHEMA,
        "report": {
            "type": "object",
            "properties": {
                "keywords_injected": {"type": "array", "items": {"type": "string"}},
                "reordering_justification": {"type": "string"},
                "ats_score_estimate": {"type": "number"},
            },
        },
    },
    "required": ["mutated_resume", "report"],
}

IMPROVE_SCHEMA = _RESUME_SCHEMA

ROADMAP_SCHEMA = {
    "type": "object",
    "properties": {
        "current_market_value": {"type": "string"},
        "target_market_value": {"type": "string"},
        "gap_analysis": {"type": "string"},
        "steps": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "period": {"type": "string"},
                    "goal": {"type": "string"},
                    "action_items": {"type": "array", "items": {"type": "string"}},
                    "skill_gain": {"type": "array", "items": {"type": "string"}},
                },
            },
        },
    },
    "required": ["current_market_value", "target_market_value", "gap_analysis", "steps"],
}

INSIGHTS_SCHEMA = {
    "type": "object",
    "properties": {
        "salary_range": {"type": "string"},
        "demand_trend": {"type": "string", "enum": ["High", "Stable", "Decreasing"]},
        "top_skills": {"type": "array", "items": {"type": "string"}},
    },
}

STYLE_PROMPTS = {
    CoverLetterStyle.ULTRA_CONCISE: "Be brutally brief. 1-2 punchy sentences max. High signal, zero noise.",
    CoverLetterStyle.RESULTS_DRIVEN: "Focus entirely on metrics and ROI that match the profile and the job.",
    CoverLetterStyle.FOUNDER_FRIENDLY: "Use a high-agency, let's-build tone. Focus on ownership and mission alignment.",
    CoverLetterStyle.TECHNICAL_DEEP_CUT: "Get into the tech stack: frameworks, architecture choices, trade-offs.",
    CoverLetterStyle.CHILL_PROFESSIONAL: "Relaxed, modern tone but extremely competent. Avoid corporate jargon.",
}


def with_schema(instruction: str, schema: dict) -> str:
    """Append the output schema to an instruction for JSON-mode calls."""
    return (
        f"{instruction}\n\n"
        "Respond with JSON only, matching this JSON schema exactly:\n"
        f"{json.dumps(schema, ensure_ascii=False)}"
    )


def resume_json(profile: UserProfile) -> str:
    return json.dumps(profile.primary_resume.to_dict(), ensure_ascii=False)


def interview_instructions(profile: UserProfile) -> str:
    roles = ", ".join(profile.preferences.target_roles) or "software engineering roles"
    name = profile.full_name or "the candidate"
    return (
        f"You are a high-level technical hiring manager for the following candidate: {name}.\n"
        f"Their goal roles are: {roles}.\n"
        "Be professional, challenging, and conduct a realistic 5-minute technical interview. "
        "Ask one question at a time and wait for the answer.\n"
        f"Focus on their experience: {resume_json(profile)}."
    )


def command_prompt(text: str) -> str:
    return with_schema(
        "Interpret the instruction below and convert it into a structured system command.\n"
        "Supported actions: switch_tab (params.target_tab), search_jobs (params.query), "
        "improve_resume (params.improvement_prompt), start_interview, "
        "update_profile (params.profile_updates / params.preferences_updates), status, "
        "find_gigs (params.query).\n"
        "If the instruction is unsafe, unrelated or cannot be mapped, use action \"blocked\" "
        "and explain why in \"reason\". Put the user's overall intent in \"goal\".\n\n"
        f'Input: "{text}"',
        COMMAND_SCHEMA,
    )


def search_prompt(query: str, limit: int) -> str:
    return with_schema(f"Find {limit} active job openings for: {query}.", JOB_LIST_SCHEMA)


def extract_job_prompt(text: str) -> str:
    return with_schema(f"Extract detailed job information from this input: {text}", JOB_SCHEMA)


def match_prompt(job_json: str, profile: UserProfile) -> str:
    return with_schema(
        "Compare this job with this candidate profile. Score from 0 to 100.\n"
        f"Job: {job_json}\nProfile: {resume_json(profile)}",
        MATCH_SCHEMA,
    )


def roadmap_prompt(profile: UserProfile) -> str:
    roles = ", ".join(profile.preferences.target_roles)
    return with_schema(
        "Build a market-driven career evolution roadmap with a gap analysis and "
        "3 to 5 time-boxed steps.\n"
        f"Target roles: {roles}\nMinimum salary: {profile.preferences.min_salary}\n"
        f"Resume: {resume_json(profile)}",
        ROADMAP_SCHEMA,
    )


def mutation_prompt(job_json: str, profile: UserProfile) -> str:
    return with_schema(
        "You are an ATS optimization agent. Rewrite the candidate's resume for the job below.\n"
        "1. Mirror the job description's terminology without inventing experience.\n"
        "2. Weave in 5-10 missing technical keywords from the job description.\n"
        "3. Move the most relevant experience and projects to the top.\n"
        "4. Keep the resume structure identical.\n"
        f"Job: {job_json}\nBase resume: {resume_json(profile)}",
        MUTATION_SCHEMA,
    )


def improve_prompt(profile: UserProfile, instruction: str) -> str:
    return with_schema(
        f"Improve this resume following the instruction: {instruction}\n"
        f"Resume: {resume_json(profile)}",
        IMPROVE_SCHEMA,
    )


def cover_letter_prompt(title: str, company: str, profile: UserProfile, style: CoverLetterStyle) -> str:
    name = profile.full_name or "the candidate"
    return (
        f"Write a cover letter from {name} for {title} at {company}.\n"
        f"Style: {STYLE_PROMPTS[style]}\n"
        f"Resume: {resume_json(profile)}"
    )


def insights_prompt(role: str) -> str:
    return with_schema(f"Summarize the current job market for the role: {role}.", INSIGHTS_SCHEMA)

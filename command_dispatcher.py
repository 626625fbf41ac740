"""Natural-language command interpretation.

``interpret`` always returns exactly one ``CommandResult``. Remote failures,
unparseable output, unknown actions and actions missing the params they need
all come back as the blocked variant with a reason. The dispatcher performs
no side effects; the caller routes on the action.
"""

from __future__ import annotations

import logging
from typing import Any

import prompts
from errors import COMMAND_BLOCKED, LLM_PARSE_ERROR, user_message
from interfaces import CompletionClient
from llm import parse_json
from models import TABS, CommandAction, CommandResult

logger = logging.getLogger(__name__)

MAX_COMMAND_CHARS = 2000


def _text(params: dict, key: str) -> str:
    value = params.get(key)
    return value.strip() if isinstance(value, str) else ""


def _mapping(params: dict, key: str) -> dict:
    value = params.get(key)
    return value if isinstance(value, dict) else {}


def normalize(data: Any) -> CommandResult:
    """Validate a decoded model response into a ``CommandResult``."""
    if not isinstance(data, dict):
        return CommandResult.blocked(user_message(LLM_PARSE_ERROR))
    try:
        action = CommandAction(str(data.get("action", "")).strip())
    except ValueError:
        return CommandResult.blocked(f"Unsupported action: {data.get('action')!r}")

    goal = str(data.get("goal") or "").strip()
    reason = str(data.get("reason") or "").strip()
    raw = _mapping(data, "params")

    if action == CommandAction.BLOCKED:
        return CommandResult.blocked(reason or user_message(COMMAND_BLOCKED))

    params: dict[str, Any] = {}
    if action == CommandAction.SWITCH_TAB:
        tab = _text(raw, "target_tab").lower()
        if tab not in TABS:
            return CommandResult.blocked(f"Unknown tab: {tab or 'none given'}")
        params["target_tab"] = tab
    elif action == CommandAction.SEARCH_JOBS:
        query = _text(raw, "query") or goal
        if not query:
            return CommandResult.blocked("No search query given")
        params["query"] = query
    elif action == CommandAction.FIND_GIGS:
        query = _text(raw, "query")
        if query:
            params["query"] = query
    elif action == CommandAction.IMPROVE_RESUME:
        instruction = _text(raw, "improvement_prompt") or goal
        if not instruction:
            return CommandResult.blocked("No resume improvement instruction given")
        params["improvement_prompt"] = instruction
    elif action == CommandAction.UPDATE_PROFILE:
        profile_updates = _mapping(raw, "profile_updates")
        preferences_updates = _mapping(raw, "preferences_updates")
        if not profile_updates and not preferences_updates:
            return CommandResult.blocked("No profile changes given")
        params["profile_updates"] = profile_updates
        params["preferences_updates"] = preferences_updates

    return CommandResult(action=action, goal=goal, reason=reason, params=params)


class CommandDispatcher:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def interpret(self, text: str) -> CommandResult:
        text = (text or "").strip()
        if not text:
            return CommandResult.blocked("Empty command")
        if len(text) > MAX_COMMAND_CHARS:
            return CommandResult.blocked("Command is too long")
        try:
            raw = self._client.complete(
                prompts.command_prompt(text), system=prompts.COMMAND_SYSTEM, json_output=True
            )
        except Exception as exc:
            code = getattr(exc, "code", COMMAND_BLOCKED)
            logger.error("command interpretation failed %s: %s", code, exc)
            return CommandResult.blocked(user_message(code, str(exc)))

        result = normalize(parse_json(raw, None))
        if result.is_blocked:
            logger.info("command blocked: %s", result.reason)
        else:
            logger.info("command %r -> %s", text, result.action.value)
        return result

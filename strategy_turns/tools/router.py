"""Action router - maps a loosely spelled ``action`` onto a validated handler call."""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from pydantic import BaseModel, ValidationError
from thefuzz import fuzz

from strategy_turns.systems.errors import StrategyError


logger = logging.getLogger("strategy-turns.router")

ALIAS_SIMILARITY = 95


@dataclass
class ActionDefinition:
    """One action of a consolidated tool."""
    schema: type[BaseModel]
    handler: Callable[[Any], dict[str, Any]]
    aliases: list[str] = field(default_factory=list)
    description: str = ""


@dataclass
class ActionMatch:
    action: str
    similarity: int
    exact: bool


def normalize(raw: str) -> str:
    return raw.strip().lower().replace("-", "_").replace(" ", "_")


class ActionRouter:
    """Exact name, then alias, then fuzzy match on the action name.

    The matched action's schema validates the whole argument dict; the handler
    receives the parsed model. Handler failures come back as error payloads,
    never as exceptions.
    """

    def __init__(self, definitions: dict[str, ActionDefinition], threshold: int = 60):
        self.definitions = definitions
        self.threshold = threshold
        self._aliases: dict[str, str] = {}
        for action, definition in definitions.items():
            for alias in definition.aliases:
                self._aliases[normalize(alias)] = action

    @property
    def actions(self) -> list[str]:
        return list(self.definitions)

    def match(self, raw: str) -> Optional[ActionMatch]:
        normalized = normalize(raw)
        if normalized in self.definitions:
            return ActionMatch(normalized, 100, True)

        if normalized in self._aliases:
            return ActionMatch(self._aliases[normalized], ALIAS_SIMILARITY, False)

        best_match = None
        best_score = 0
        for action in self.definitions:
            score = fuzz.ratio(normalized, action)
            if score > best_score and score >= self.threshold:
                best_score = score
                best_match = action

        if best_match is None:
            return None
        return ActionMatch(best_match, best_score, False)

    def suggestions(self, raw: str, limit: int = 3) -> list[dict[str, Any]]:
        normalized = normalize(raw)
        scored = [{"action": a, "similarity": fuzz.ratio(normalized, a)} for a in self.definitions]
        scored.sort(key=lambda s: s["similarity"], reverse=True)
        return scored[:limit]

    def route(self, args: dict[str, Any]) -> dict[str, Any]:
        raw = args.get("action")
        if not isinstance(raw, str):
            return {
                "error": True,
                "code": "InvalidAction",
                "message": 'Missing or invalid "action" parameter',
                "validActions": self.actions,
            }

        matched = self.match(raw)
        if matched is None:
            suggestions = self.suggestions(raw)
            return {
                "error": True,
                "code": "UnknownAction",
                "message": f'Unknown action "{raw}". Did you mean: {", ".join(s["action"] for s in suggestions)}?',
                "suggestions": suggestions,
                "validActions": self.actions,
            }

        action = matched.action
        definition = self.definitions[action]

        try:
            params = definition.schema.model_validate(args)
        except ValidationError as e:
            return {
                "error": True,
                "code": "ValidationError",
                "actionType": action,
                "message": f"Invalid parameters for {action}",
                "fields": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in e.errors()
                ],
            }

        try:
            result = definition.handler(params)
        except StrategyError as e:
            logger.info("%s failed: %s", action, e.message)
            data = e.to_dict()
            data["actionType"] = action
            return data
        except Exception as e:
            logger.exception("Unexpected error in %s", action)
            return {
                "error": True,
                "code": "InternalError",
                "actionType": action,
                "message": str(e) or type(e).__name__,
            }

        result.setdefault("actionType", action)
        if not result.get("error"):
            result.setdefault("success", True)
        if not matched.exact:
            result["_fuzzyMatch"] = {
                "requested": raw,
                "resolved": action,
                "similarity": matched.similarity,
            }
        return result

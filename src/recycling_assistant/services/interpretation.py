"""Recycling interpretation of vision labels: LLMs first, rules last."""

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from pydantic import ValidationError

from recycling_assistant.domain.errors import (
    InterpreterError,
    InterpreterHttpError,
    InterpreterParseError,
)
from recycling_assistant.domain.interpretation import Interpretation
from recycling_assistant.domain.vision import VisionLabel

_logger = logging.getLogger(__name__)

PROMPT_LABEL_LIMIT = 10

LOCAL_RULES = (
    "Terre Haute accepts: plastic bottles #1-7, aluminum cans, glass bottles, "
    "paper, cardboard.\n"
    "Does NOT accept: plastic bags, styrofoam, electronics (need special "
    "disposal), batteries (hazardous waste).\n"
    "Food scraps and yard waste can be composted (Green bin)."
)

_EXAMPLE_RESPONSE = (
    '{"item_name":"Plastic Water Bottle","is_recyclable":true,"bin_color":"Blue",'
    '"disposal_method":"Place in recycling bin",'
    '"preparation":"Rinse clean and remove cap","confidence":0.95}'
)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class LLMClient(Protocol):
    """Interface for text completion backends used as interpreters."""

    name: str

    async def complete(self, prompt: str) -> str:
        """Return the raw model output for the prompt."""


def build_prompt(labels: Sequence[VisionLabel], limit: int = PROMPT_LABEL_LIMIT) -> str:
    """Build the interpretation prompt from the most confident labels."""
    top_labels = ", ".join(
        f"{label.name} ({label.confidence * 100:.0f}%)" for label in labels[:limit]
    )
    return (
        "You are a recycling expert for Terre Haute, Indiana. Based on these image "
        "recognition labels, provide recycling instructions.\n\n"
        f"Image contains: {top_labels}\n\n"
        "Respond with a JSON object containing:\n"
        "- item_name: specific name of the item\n"
        "- is_recyclable: true/false\n"
        '- bin_color: "Blue" for recycling, "Green" for compost, '
        '"Black" for trash, "Special" for hazardous\n'
        "- disposal_method: brief instruction\n"
        "- preparation: how to prepare item (empty string if none)\n"
        "- special_instructions: only if needed (optional)\n"
        "- confidence: 0.0-1.0 how confident you are\n\n"
        f"{LOCAL_RULES}\n\n"
        f"Example response:\n{_EXAMPLE_RESPONSE}"
    )


def parse_interpretation(interpreter: str, raw: str) -> Interpretation:
    """Parse model output into an interpretation, tolerating surrounding prose."""
    match = _JSON_OBJECT.search(raw or "")
    if match is None:
        raise InterpreterParseError(interpreter, "No JSON object in response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as exc:
        raise InterpreterParseError(interpreter, f"Invalid JSON: {exc}") from exc
    try:
        return Interpretation.model_validate(payload)
    except ValidationError as exc:
        raise InterpreterParseError(interpreter, f"Invalid interpretation: {exc}") from exc


@dataclass(frozen=True)
class _Rule:
    pattern: re.Pattern[str]
    item_name: str
    preparation: str


def _rule(pattern: str, item_name: str, preparation: str = "") -> _Rule:
    return _Rule(re.compile(pattern), item_name, preparation)


_RECYCLABLE_RULES = [
    _rule(r"plastic bottle|water bottle", "Plastic Bottle", "Rinse clean and remove cap"),
    _rule(r"aluminum can|soda can|beer can", "Aluminum Can", "Rinse clean"),
    _rule(r"cardboard|box", "Cardboard Box", "Flatten and remove tape"),
    _rule(r"paper(?! towel)|newspaper|magazine", "Paper", "Keep dry and clean"),
    _rule(r"glass bottle|jar", "Glass Container", "Rinse clean and remove lid"),
]

_COMPOST_RULES = [
    _rule(
        r"food waste|organic|fruit|vegetable|apple|banana",
        "Food Waste",
        "Remove stickers and packaging",
    ),
    _rule(r"yard waste|leaves|grass clippings", "Yard Waste", "Keep free of plastic"),
]

_TRASH_RULES = [
    _rule(r"styrofoam|polystyrene", "Styrofoam"),
    _rule(r"plastic bag", "Plastic Bag", "Return to store drop-off"),
    _rule(r"diaper", "Diaper"),
    _rule(r"tissue|napkin|paper towel", "Used Paper Product"),
]


@dataclass(frozen=True)
class _Facility:
    name: str
    address: str
    phone: str


HAZARDOUS_WASTE_CENTER = _Facility(
    name="Vigo County Household Hazardous Waste Center",
    address="3025 S 4 1/2 St, Terre Haute, IN 47802",
    phone="(812) 462-3370",
)
ELECTRONICS_DROP_OFF = _Facility(
    name="Best Buy - Electronics Recycling",
    address="3401 US-41, Terre Haute, IN 47802",
    phone="(812) 234-2617",
)

_SPECIAL_RULES: list[tuple[_Rule, _Facility]] = [
    (
        _rule(r"battery", "Battery", "Take to hazardous waste center"),
        HAZARDOUS_WASTE_CENTER,
    ),
    (
        _rule(r"electronic|computer|phone", "Electronics", "Take to e-waste recycling"),
        ELECTRONICS_DROP_OFF,
    ),
    (
        _rule(r"paint|chemical", "Hazardous Material", "Take to hazardous waste center"),
        HAZARDOUS_WASTE_CENTER,
    ),
    (
        _rule(r"light bulb|fluorescent", "Light Bulb", "Take to special recycling"),
        HAZARDOUS_WASTE_CENTER,
    ),
]


def interpret_with_rules(labels: Sequence[VisionLabel]) -> Interpretation:
    """Rule-table interpretation that always produces an answer."""
    text = " ".join(label.name.lower() for label in labels)

    for rule in _RECYCLABLE_RULES:
        if rule.pattern.search(text):
            return Interpretation(
                item_name=rule.item_name,
                is_recyclable=True,
                bin_color="Blue",
                disposal_method="Place in recycling bin",
                preparation=rule.preparation,
                disposal_location="Curbside recycling",
                confidence=0.8,
            )

    for rule in _COMPOST_RULES:
        if rule.pattern.search(text):
            return Interpretation(
                item_name=rule.item_name,
                is_recyclable=False,
                bin_color="Green",
                disposal_method="Compost bin or organic waste",
                preparation=rule.preparation,
                disposal_location="Compost bin or organic waste collection",
                confidence=0.8,
            )

    for rule in _TRASH_RULES:
        if rule.pattern.search(text):
            return Interpretation(
                item_name=rule.item_name,
                is_recyclable=False,
                bin_color="Black",
                disposal_method="Place in regular trash",
                preparation=rule.preparation,
                confidence=0.8,
            )

    for rule, facility in _SPECIAL_RULES:
        if rule.pattern.search(text):
            return Interpretation(
                item_name=rule.item_name,
                is_recyclable=False,
                bin_color="Special",
                disposal_method=rule.preparation,
                preparation="",
                special_instructions="Do not put in regular trash or recycling",
                disposal_location=facility.name,
                disposal_address=facility.address,
                disposal_phone=facility.phone,
                confidence=0.8,
            )

    return Interpretation(
        item_name=labels[0].name if labels else "Unknown Item",
        is_recyclable=False,
        bin_color="Black",
        disposal_method="When in doubt, throw it out (regular trash)",
        preparation="",
        confidence=0.5,
    )


@dataclass
class InterpretationService:
    """Runs LLM interpreters in priority order, ending with the rule table."""

    clients: Sequence[LLMClient] = field(default_factory=list)

    async def interpret(
        self, labels: Sequence[VisionLabel]
    ) -> tuple[Interpretation, str]:
        """Return an interpretation and the name of the interpreter that made it."""
        prompt = build_prompt(labels)
        for client in self.clients:
            try:
                raw = await self._complete(client, prompt)
                return parse_interpretation(client.name, raw), client.name
            except InterpreterError as exc:
                _logger.warning("Interpreter %s failed, falling back: %s", client.name, exc)
        interpreter = "rules-fallback" if self.clients else "rules"
        return interpret_with_rules(labels), interpreter

    @staticmethod
    async def _complete(client: LLMClient, prompt: str) -> str:
        try:
            return await client.complete(prompt)
        except InterpreterError:
            raise
        except Exception as exc:
            raise InterpreterHttpError(client.name, str(exc)) from exc

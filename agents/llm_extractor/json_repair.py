"""
Recovery of a JSON object from a model reply.

Stages run in order until one yields a dict. A stage never raises: it
returns None and the next stage gets the untouched reply.
"""

import json
import re
from typing import Any, Dict, List, Optional
import structlog

logger = structlog.get_logger()

# Fields worth salvaging from a reply that cannot be parsed at all
SALVAGE_FIELDS = [
    "destination", "destinations", "start_date", "startDate", "end_date", "endDate",
    "duration", "adults", "children", "budget", "pace", "interests",
    "modification_request", "modificationRequest",
]


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        value = json.loads(text)
    except (ValueError, TypeError):
        return None
    return value if isinstance(value, dict) else None


class RepairStage:
    name = "stage"

    def attempt(self, text: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError


class StrictParseStage(RepairStage):
    name = "strict"

    def attempt(self, text: str) -> Optional[Dict[str, Any]]:
        return _load_object(text.strip())


class BalancedBlockStage(RepairStage):
    """The last well-formed {...} block in the reply"""
    name = "balanced_block"

    def attempt(self, text: str) -> Optional[Dict[str, Any]]:
        for block in reversed(self.find_blocks(text)):
            parsed = _load_object(block)
            if parsed is not None:
                return parsed
        return None

    @staticmethod
    def find_blocks(text: str) -> List[str]:
        blocks = []
        depth = 0
        start = None
        in_string = False
        escaped = False

        for index, char in enumerate(text):
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue

            if char == '"':
                in_string = True
            elif char == "{":
                if depth == 0:
                    start = index
                depth += 1
            elif char == "}" and depth > 0:
                depth -= 1
                if depth == 0 and start is not None:
                    blocks.append(text[start:index + 1])
                    start = None
        return blocks


class TextualRepairStage(RepairStage):
    """Common formatting mistakes: fences, bare keys, single quotes, comma problems"""
    name = "textual_repair"

    def attempt(self, text: str) -> Optional[Dict[str, Any]]:
        return _load_object(self.repair(text))

    @staticmethod
    def repair(text: str) -> str:
        text = re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE)

        first, last = text.find("{"), text.rfind("}")
        if first != -1 and last > first:
            text = text[first:last + 1]

        # Single-quoted keys and values
        text = re.sub(r"'([^'\"\n]*)'", r'"\1"', text)
        # Bare keys
        text = re.sub(r'([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:', r'\1"\2":', text)
        # Python literals
        text = re.sub(r'\bNone\b', 'null', text)
        text = re.sub(r'\bTrue\b', 'true', text)
        text = re.sub(r'\bFalse\b', 'false', text)
        # Missing commas between a value and the next key or element
        text = re.sub(r'("|\d|true|false|null|\]|\})(\s*\n\s*)(")', r'\1,\2\3', text)
        text = re.sub(r'\}(\s*)\{', r'},\1{', text)
        # Duplicate and trailing commas
        text = re.sub(r',\s*,+', ',', text)
        text = re.sub(r',\s*([}\]])', r'\1', text)
        return text


class FieldSalvageStage(RepairStage):
    """Pull known fields out one by one with regular expressions"""
    name = "field_salvage"

    def attempt(self, text: str) -> Optional[Dict[str, Any]]:
        salvaged: Dict[str, Any] = {}
        for field_name in SALVAGE_FIELDS:
            key = rf'["\']?{field_name}["\']?\s*:\s*'
            string_match = re.search(key + r'["\']([^"\'\n]*)["\']', text)
            number_match = re.search(key + r'(-?\d+)\b', text)
            list_match = re.search(key + r'\[([^\]]*)\]', text)

            if list_match:
                items = re.findall(r'["\']([^"\']+)["\']', list_match.group(1))
                if items:
                    salvaged[field_name] = items
            elif string_match and string_match.group(1).strip():
                salvaged[field_name] = string_match.group(1).strip()
            elif number_match:
                salvaged[field_name] = int(number_match.group(1))
        return salvaged or None


class JSONRepairChain:
    def __init__(self, stages: Optional[List[RepairStage]] = None):
        self.stages = stages or [
            StrictParseStage(),
            BalancedBlockStage(),
            TextualRepairStage(),
            FieldSalvageStage(),
        ]

    def parse(self, text: Optional[str]) -> Optional[Dict[str, Any]]:
        if not text or not text.strip():
            return None

        for stage in self.stages:
            try:
                result = stage.attempt(text)
            except Exception as e:
                logger.warning("JSON repair stage failed", category="json_repair", stage=stage.name, error=str(e))
                continue
            if result is not None:
                if stage.name != "strict":
                    logger.info("Recovered model JSON", category="json_repair", stage=stage.name)
                return result

        logger.warning("Could not recover JSON from model reply", category="json_repair", preview=text[:200])
        return None

import asyncio
import re
from datetime import date
from typing import Any, Dict, List, Optional

from agents.base_agent import BaseAgent
from agents.llm_extractor.json_repair import JSONRepairChain
from agents.llm_extractor.prompts import SYSTEM_INSTRUCTIONS, build_extraction_prompt, build_simple_prompt
from agents.pattern_extractor.extension import apply_extension, is_extension_request
from config.llm_config import LLMConfig
from models.intent_models import ParsedIntent, overlay_intent
from services.llm_client import LLMClient, get_default_llm_client

BUDGET_TIERS = ("budget", "mid", "luxury")
PACES = ("relaxed", "moderate", "packed")


class LLMExtractorAgent(BaseAgent):
    """
    Model-assisted intent extraction.

    Only called when the pattern engine left destination, duration or dates
    empty. Whatever goes wrong with the model (timeout, network, quota,
    unparseable reply) the pattern result comes back unchanged.
    """

    def __init__(self, llm_client: Optional[LLMClient] = None, today: Optional[date] = None,
                 timeout_seconds: Optional[float] = None):
        super().__init__("LLMExtractorAgent")
        self.llm_client = llm_client if llm_client is not None else get_default_llm_client()
        self.today = today or date.today()
        self.timeout_seconds = timeout_seconds if timeout_seconds is not None else LLMConfig.TIMEOUT
        self.repair_chain = JSONRepairChain()

    @property
    def ai_available(self) -> bool:
        return self.llm_client is not None

    async def execute(self, input_data: Dict[str, Any], session_id: str) -> Dict[str, Any]:
        self.validate_input(input_data, ["message"])

        prior_intent = ParsedIntent(**(input_data.get("prior_intent") or {}))
        pattern_result = ParsedIntent(**(input_data.get("pattern_result") or {}))

        intent = await self.extract_with_model(input_data["message"], prior_intent, pattern_result)
        return self.format_output(
            {"intent": intent.model_dump(exclude_none=True)},
            metadata={"ai_available": self.ai_available},
        )

    async def extract_with_model(self, message: str, prior_intent: Optional[ParsedIntent] = None,
                                 pattern_result: Optional[ParsedIntent] = None) -> ParsedIntent:
        pattern_result = pattern_result or ParsedIntent()

        if not self.ai_available:
            self.log("⚠️  LLM not available - using pattern extraction only")
            return pattern_result

        # CRITICAL: Remove any PII before sending to LLM
        sanitized_message = self._sanitize_pii(message)
        is_extension = bool(prior_intent and prior_intent.destination and is_extension_request(message))

        prompt = build_extraction_prompt(sanitized_message, self.today, prior_intent, is_extension)
        try:
            reply = await self._complete(prompt, LLMConfig.TEMPERATURE, LLMConfig.MAX_TOKENS)
        except asyncio.TimeoutError:
            self.log("⏱️  LLM extraction timed out - using pattern results", timeout_seconds=self.timeout_seconds)
            return pattern_result
        except Exception as e:
            self.log(f"⚠️  LLM extraction failed: {str(e)} - using pattern results")
            return pattern_result

        extracted = self.repair_chain.parse(reply)
        if extracted is None:
            self.log("🔄 Unparseable LLM reply, retrying with simple prompt")
            extracted = await self._retry_with_simple_prompt(sanitized_message)
            if extracted is None:
                self.log("⚠️  Simple prompt also failed - using pattern results")
                return pattern_result

        cleaned = self.validate_extracted_intent(extracted)

        if is_extension:
            cleaned = self._apply_extension(cleaned, prior_intent, message)

        merged = overlay_intent(pattern_result, cleaned)
        self.log("✅ Merged pattern and LLM results",
                 pattern=pattern_result.summary(),
                 model=cleaned.summary(),
                 merged=merged.summary())
        return merged

    async def _complete(self, prompt: str, temperature: float, max_tokens: int) -> str:
        return await asyncio.wait_for(
            self.llm_client.complete(SYSTEM_INSTRUCTIONS, prompt, temperature=temperature, max_tokens=max_tokens),
            timeout=self.timeout_seconds,
        )

    async def _retry_with_simple_prompt(self, sanitized_message: str) -> Optional[Dict[str, Any]]:
        prompt = build_simple_prompt(sanitized_message, self.today)
        try:
            reply = await self._complete(prompt, LLMConfig.RETRY_TEMPERATURE, LLMConfig.RETRY_MAX_TOKENS)
        except Exception as e:
            self.log(f"⚠️  Simple prompt call failed: {str(e)}")
            return None
        return self.repair_chain.parse(reply)

    def _apply_extension(self, cleaned: ParsedIntent, prior_intent: ParsedIntent, message: str) -> ParsedIntent:
        """The model was asked for the addition only; fold it into the prior trip"""
        fields = apply_extension(prior_intent, cleaned.destination_list(), cleaned.duration, message)
        data = cleaned.model_dump()
        # The end date was derived from the addend, recompute it from the new total
        data["duration"] = None
        data["end_date"] = None
        data.update(fields)
        self.log("🔄 Extension request applied",
                 destinations=fields.get("destinations"),
                 duration=fields.get("duration"))
        return ParsedIntent(**data).with_derived_fields()

    def validate_extracted_intent(self, data: Dict[str, Any]) -> ParsedIntent:
        """Keep only well-typed values; accepts snake_case or camelCase keys"""
        if not isinstance(data, dict):
            return ParsedIntent()

        def pick(*keys):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        result: Dict[str, Any] = {}

        destinations = pick("destinations")
        if isinstance(destinations, list):
            names = [d.strip() for d in destinations if isinstance(d, str) and d.strip()]
            if names:
                result["destinations"] = names
        destination = pick("destination")
        if "destinations" not in result and isinstance(destination, str) and destination.strip():
            names = [part.strip() for part in destination.split(",") if part.strip()]
            result["destinations"] = names

        duration = self._to_int(pick("duration"))
        if duration is not None and 0 < duration <= 365:
            result["duration"] = duration

        for field_name, keys in (("start_date", ("start_date", "startDate")),
                                 ("end_date", ("end_date", "endDate"))):
            value = pick(*keys)
            if isinstance(value, str) and self._valid_iso_date(value.strip()):
                result[field_name] = value.strip()

        travelers = pick("travelers")
        if not isinstance(travelers, dict) and (data.get("adults") is not None or data.get("children") is not None):
            travelers = {"adults": data.get("adults"), "children": data.get("children")}
        if isinstance(travelers, dict):
            adults = self._to_int(travelers.get("adults"))
            children = self._to_int(travelers.get("children"))
            if (adults is not None and adults >= 0) or (children is not None and children >= 0):
                result["travelers"] = {
                    "adults": adults if adults is not None and adults >= 0 else 0,
                    "children": children if children is not None and children >= 0 else 0,
                }

        preferences = pick("preferences")
        if not isinstance(preferences, dict):
            preferences = {key: data[key] for key in ("budget", "pace", "interests") if key in data}
        cleaned_preferences = self._clean_preferences(preferences)
        if cleaned_preferences:
            result["preferences"] = cleaned_preferences

        modification = pick("modification_request", "modificationRequest")
        if isinstance(modification, str) and modification.strip():
            result["modification_request"] = modification.strip()

        return ParsedIntent(**result).with_derived_fields()

    def _clean_preferences(self, preferences: Dict[str, Any]) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}

        budget = preferences.get("budget")
        if isinstance(budget, str) and budget.lower() in BUDGET_TIERS:
            cleaned["budget"] = budget.lower()

        pace = preferences.get("pace")
        if isinstance(pace, str) and pace.lower() in PACES:
            cleaned["pace"] = pace.lower()

        for field_name, keys in (("interests", ("interests",)),
                                 ("must_see", ("must_see", "mustSee")),
                                 ("avoid", ("avoid",))):
            for key in keys:
                items = self._string_list(preferences.get(key))
                if items:
                    cleaned[field_name] = [item.lower() for item in items] if field_name == "interests" else items
                    break

        if "interests" in cleaned:
            cleaned["interests"] = list(dict.fromkeys(cleaned["interests"]))
        return cleaned

    @staticmethod
    def _string_list(value: Any) -> List[str]:
        if not isinstance(value, list):
            return []
        return [item.strip() for item in value if isinstance(item, str) and item.strip()]

    @staticmethod
    def _to_int(value: Any) -> Optional[int]:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, str):
            match = re.match(r'^\s*(-?\d+)', value)
            if match:
                return int(match.group(1))
        return None

    @staticmethod
    def _valid_iso_date(value: str) -> bool:
        if not re.fullmatch(r'\d{4}-\d{2}-\d{2}', value):
            return False
        try:
            date.fromisoformat(value)
        except ValueError:
            return False
        return True

    def _sanitize_pii(self, user_request: str) -> str:
        """Remove PII information from user request before sending to LLM"""
        if not user_request:
            return user_request

        # Remove email addresses
        sanitized = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL]', user_request)

        # Remove credit card numbers before phone numbers swallow their digits
        sanitized = re.sub(r'\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b', '[CARD]', sanitized)

        # Remove phone numbers (various formats)
        sanitized = re.sub(r'(?<!\w)(\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b', '[PHONE]', sanitized)

        # Remove passport numbers (basic pattern)
        sanitized = re.sub(r'\b[A-Z]{1,2}\d{6,9}\b', '[PASSPORT]', sanitized)

        # Remove SSN patterns
        sanitized = re.sub(r'\b\d{3}-\d{2}-\d{4}\b', '[SSN]', sanitized)

        return sanitized

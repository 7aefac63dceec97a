"""
Gemini-written recommendation lines for the best suggestions.

The model gets a short list of places and answers with a JSON object
mapping each place id to one sentence. Anything that goes wrong (no key,
API error, unparsable reply) yields an empty mapping and the heuristic
reasons stay in place.
"""

import json
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage

from ..utils.exceptions import GeminiError
from ..utils.logger import get_logger
from .llm_config import LLMProvider, llm_provider as default_provider

logger = get_logger(__name__)

ENHANCER_SYSTEM_PROMPT = """You are a charismatic local travel guide.
Task: Write ONE short, emotional recommendation (max 12 words) for each place in {language}.
IMPORTANT: DO NOT start with "Recommended because..." or "Based on your interests...".
Be creative!
Example: "Perfect spot for your morning coffee with a stunning view!" or "Since you love history, this museum is a hidden gem you can't miss."
Return ONLY a valid JSON object where keys are the IDs provided."""

# Preferences at or above this weight are mentioned to the model
STRONG_PREFERENCE_WEIGHT = 0.5


def clean_place_id(value: Any) -> str:
    """Strip the `google:`/`internal:` prefix and normalize case."""
    text = str(value if value is not None else "").strip().lower()
    return text.replace("google:", "").replace("internal:", "").strip()


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse the first balanced `{...}` object found in `text`.

    Braces inside JSON strings are skipped. Returns None when no object
    parses.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(text[start:i + 1])
                    except ValueError:
                        break
                    return parsed if isinstance(parsed, dict) else None
        start = text.find("{", start + 1)
    return None


def _response_text(response: Any) -> str:
    content = getattr(response, "content", response)
    if isinstance(content, list):
        # Gemini may return content parts
        return "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return content if isinstance(content, str) else ""


class GeminiEnhancer:
    """Asks Gemini for one catchy line per place."""

    def __init__(self, provider: LLMProvider = None):
        self.provider = provider or default_provider

    def enhance_places(
        self,
        places: List[Dict[str, Any]],
        preferences: Dict[str, Any],
        trip_context: str,
        locale: str = "en",
    ) -> Dict[str, str]:
        """
        Write a recommendation for each place.

        Args:
            places: dicts with external_id (or id), name, category, distance, rating
            preferences: category weights of the group
            trip_context: e.g. "Trip to Kraków"
            locale: "pl" for Polish, anything else for English

        Returns:
            Mapping of place id to recommendation; {} on any failure
        """
        if not places or not self.provider.available:
            return {}

        messages = self._build_messages(places, preferences, trip_context, locale)

        try:
            response = self.provider.invoke(messages)
        except Exception as e:
            # LangChain surfaces provider failures as many unrelated types
            logger.error("gemini_enhance_failed", error=str(e), error_type=type(e).__name__)
            return {}

        text = _response_text(response)
        parsed = extract_json_object(text)
        if parsed is None:
            err = GeminiError("Gemini reply had no JSON object", context={"reply": text[:200]})
            logger.warning("gemini_enhance_unparsable", error=err.message, context=err.context)
            return {}

        reasons = {
            clean_place_id(key): value.strip()
            for key, value in parsed.items()
            if isinstance(value, str) and value.strip()
        }
        logger.info("gemini_enhance_completed", requested=len(places), received=len(reasons))
        return reasons

    @staticmethod
    def _build_messages(
        places: List[Dict[str, Any]],
        preferences: Dict[str, Any],
        trip_context: str,
        locale: str,
    ) -> List[Any]:
        language = "Polish" if locale == "pl" else "English"

        lines = []
        for place in places:
            place_id = clean_place_id(place.get("external_id") or place.get("id"))
            lines.append(
                f'- ID: "{place_id}", Name: "{place.get("name", "")}", '
                f'Category: "{place.get("category") or ""}"'
            )

        top_preferences = []
        for key, weight in (preferences or {}).items():
            try:
                if float(weight) >= STRONG_PREFERENCE_WEIGHT:
                    top_preferences.append(str(key))
            except (TypeError, ValueError):
                continue

        human = (
            f"Trip: {trip_context}\n"
            f"Group favourite categories: {', '.join(top_preferences) or 'none'}\n"
            f"Places:\n" + "\n".join(lines)
        )
        return [
            SystemMessage(content=ENHANCER_SYSTEM_PROMPT.format(language=language)),
            HumanMessage(content=human),
        ]

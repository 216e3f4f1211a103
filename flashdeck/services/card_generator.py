import json
import logging
from typing import Dict, List, Optional, Protocol

from openai import OpenAI, OpenAIError

from flashdeck.core.errors import OperationFailedError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write study flashcards. Answer with a JSON object of the form "
    '{"cards": [{"front": "...", "back": "..."}]}. '
    "Fronts are short questions or prompts, backs are concise answers. "
    "Each side stays under 1000 characters."
)


class CardGenerator(Protocol):
    def generate(self, name: str, description: str, count: int) -> List[Dict[str, str]]:
        ...


class OpenAICardGenerator:
    """
    Génération de cartes via OpenAI (chat completions, sortie JSON).
    Sans OPENAI_API_KEY le service est indisponible.
    """

    def __init__(self, api_key: Optional[str] = None, model: str = "gpt-4o-mini"):
        self.model = model
        self._client = OpenAI(api_key=api_key) if api_key else None

    def generate(self, name: str, description: str, count: int) -> List[Dict[str, str]]:
        if self._client is None:
            raise OperationFailedError("AI generation is not configured")

        prompt = (
            f"Create {count} flashcards for a deck named \"{name}\".\n"
            f"Deck description: {description}"
        )
        try:
            comp = self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.4,
            )
            text = (comp.choices[0].message.content or "").strip()
            data = json.loads(text)
        except OpenAIError as e:
            logger.warning("OpenAI error: %s", e)
            raise OperationFailedError("Failed to generate cards") from e
        except json.JSONDecodeError as e:
            logger.warning("OpenAI returned invalid JSON: %s", e)
            raise OperationFailedError("Failed to generate cards") from e

        items = data.get("cards", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            return []
        return [
            {"front": str(i.get("front", "")).strip(), "back": str(i.get("back", "")).strip()}
            for i in items
            if isinstance(i, dict)
        ]

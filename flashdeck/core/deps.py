from fastapi import Depends

from flashdeck.core.config import Settings, get_settings
from flashdeck.services.card_generator import CardGenerator, OpenAICardGenerator
from flashdeck.services.entitlements import CapabilityResolver, PlanCapabilityResolver


def get_settings_dep() -> Settings:
    return get_settings()


def get_capabilities() -> CapabilityResolver:
    """
    Fournit le résolveur de droits (DI, remplacé dans les tests).
    """
    return PlanCapabilityResolver()


def get_card_generator(settings: Settings = Depends(get_settings_dep)) -> CardGenerator:
    """
    Fournit le générateur de cartes IA en dépendance (DI).
    """
    return OpenAICardGenerator(api_key=settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL)

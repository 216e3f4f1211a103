from __future__ import annotations

from typing import Dict, FrozenSet, Optional, Protocol

from flashdeck.core.security import Identity

UNLIMITED_DECKS = "unlimited_decks"
AI_GENERATION = "ai_flashcard_generation"

# ============================================================
# Entitlements (source de vérité des droits par plan)
# ============================================================
PLAN_FEATURES: Dict[str, FrozenSet[str]] = {
    "free": frozenset(),
    "pro": frozenset({UNLIMITED_DECKS, AI_GENERATION}),
}


class CapabilityResolver(Protocol):
    def has(self, identity: Optional[Identity], feature: str) -> bool:
        ...


class PlanCapabilityResolver:
    """
    Droits = features explicites du token + features par défaut du plan.
    """

    def __init__(self, plan_features: Optional[Dict[str, FrozenSet[str]]] = None):
        self.plan_features = plan_features or PLAN_FEATURES

    def has(self, identity: Optional[Identity], feature: str) -> bool:
        if identity is None:
            return False
        if feature in identity.features:
            return True
        return feature in self.plan_features.get(identity.plan, frozenset())


def compute_entitlements(resolver: CapabilityResolver, identity: Optional[Identity], free_deck_limit: int) -> dict:
    unlimited = resolver.has(identity, UNLIMITED_DECKS)
    return {
        "plan": identity.plan if identity else "free",
        "has_unlimited_decks": unlimited,
        "deck_limit": None if unlimited else free_deck_limit,
        "has_ai_generation": resolver.has(identity, AI_GENERATION),
    }

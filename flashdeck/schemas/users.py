from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from flashdeck.schemas.flash import DeckSummaryOut, StudySessionHistoryOut


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    external_id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime


class EntitlementsOut(BaseModel):
    plan: str = "free"
    has_unlimited_decks: bool = False
    deck_limit: Optional[int] = None
    has_ai_generation: bool = False


class MeOut(EntitlementsOut):
    user: UserOut


class DeckStatsOut(BaseModel):
    total_decks: int = 0
    total_cards: int = 0
    decks_with_cards: int = 0
    empty_decks: int = 0
    average_cards_per_deck: float = 0.0
    completion_rate: int = 0


class SessionStatsOut(BaseModel):
    total_sessions: int = 0
    total_correct: int = 0
    total_incorrect: int = 0
    average_accuracy: int = 0


class DashboardOut(EntitlementsOut):
    user: UserOut
    decks: List[DeckSummaryOut]
    deck_stats: DeckStatsOut
    session_stats: SessionStatsOut
    recent_sessions: List[StudySessionHistoryOut]


# -------------------
# Identity provider (Clerk) payloads
# -------------------
class ProviderEmail(BaseModel):
    id: str
    email_address: str


class ProviderUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email_addresses: List[ProviderEmail] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    def primary_email(self) -> Optional[str]:
        for e in self.email_addresses:
            if e.id == self.primary_email_address_id:
                return e.email_address
        return None


class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str
    data: dict = Field(default_factory=dict)


class UserSyncIn(BaseModel):
    users: List[ProviderUser] = Field(min_length=1, max_length=500)


class UserSyncOut(BaseModel):
    created: int = 0
    updated: int = 0
    skipped: int = 0

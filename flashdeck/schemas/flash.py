from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


NAME_MAX = 100
DESCRIPTION_MAX = 500
CARD_TEXT_MAX = 1000


class _Out(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


# -------------------
# Decks
# -------------------
class DeckCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class DeckUpdateIn(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX)
    description: Optional[str] = Field(default=None, max_length=DESCRIPTION_MAX)

    @field_validator("description")
    @classmethod
    def strip_description(cls, v: Optional[str]) -> Optional[str]:
        return _blank_to_none(v)


class DeckOut(_Out):
    id: str
    name: str
    description: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class DeckSummaryOut(DeckOut):
    cards_count: int = 0


# -------------------
# Cards
# -------------------
class CardIn(BaseModel):
    front: str = Field(min_length=1, max_length=CARD_TEXT_MAX)
    back: str = Field(min_length=1, max_length=CARD_TEXT_MAX)


class CardOut(_Out):
    id: str
    deck_id: str
    front: str
    back: str
    created_at: datetime
    updated_at: datetime


class GeneratedCard(BaseModel):
    front: str = Field(min_length=1, max_length=CARD_TEXT_MAX)
    back: str = Field(min_length=1, max_length=CARD_TEXT_MAX)


class GenerateCardsOut(BaseModel):
    count: int
    cards: List[CardOut]


# -------------------
# Study
# -------------------
class StudyDeckOut(BaseModel):
    deck: DeckOut
    cards: List[CardOut]


class StudySessionIn(BaseModel):
    deck_id: UUID
    correct_count: int = Field(ge=0)
    incorrect_count: int = Field(ge=0)
    total_cards: int = Field(ge=1)
    accuracy_percentage: int = Field(ge=0, le=100)


class StudySessionOut(_Out):
    id: str
    deck_id: str
    correct_count: int
    incorrect_count: int
    total_cards: int
    accuracy_percentage: int
    completed_at: datetime


class StudySessionHistoryOut(StudySessionOut):
    deck_name: str

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from flashdeck.core.security import Identity
from flashdeck.db.models import Deck, StudySession
from flashdeck.schemas.flash import StudySessionHistoryOut
from flashdeck.schemas.users import DashboardOut, DeckStatsOut, SessionStatsOut, UserOut
from flashdeck.services import decks as deck_service
from flashdeck.services.authorization import resolve_user
from flashdeck.services.entitlements import CapabilityResolver, compute_entitlements
from flashdeck.services.scoring import rounded_ratio
from flashdeck.services.results import service_operation


def _history(db: Session, user_id: str, limit: Optional[int] = None) -> List[StudySessionHistoryOut]:
    stmt = (
        select(StudySession, Deck.name)
        .join(Deck, Deck.id == StudySession.deck_id)
        .where(StudySession.user_id == user_id)
        .order_by(desc(StudySession.completed_at), StudySession.id)
    )
    if limit:
        stmt = stmt.limit(limit)

    out = []
    for s, deck_name in db.execute(stmt).all():
        out.append(StudySessionHistoryOut(
            id=s.id,
            deck_id=s.deck_id,
            deck_name=deck_name,
            correct_count=s.correct_count,
            incorrect_count=s.incorrect_count,
            total_cards=s.total_cards,
            accuracy_percentage=s.accuracy_percentage,
            completed_at=s.completed_at,
        ))
    return out


def session_stats(db: Session, user_id: str) -> SessionStatsOut:
    total, correct, incorrect, accuracy_sum = db.execute(
        select(
            func.count(StudySession.id),
            func.coalesce(func.sum(StudySession.correct_count), 0),
            func.coalesce(func.sum(StudySession.incorrect_count), 0),
            func.coalesce(func.sum(StudySession.accuracy_percentage), 0),
        ).where(StudySession.user_id == user_id)
    ).one()

    return SessionStatsOut(
        total_sessions=int(total),
        total_correct=int(correct),
        total_incorrect=int(incorrect),
        average_accuracy=rounded_ratio(int(accuracy_sum), int(total)),
    )


@service_operation("load study sessions")
def list_study_sessions(
    db: Session,
    identity: Optional[Identity],
    limit: Optional[int] = None,
) -> List[StudySessionHistoryOut]:
    user = resolve_user(db, identity)
    return _history(db, user.id, limit)


@service_operation("load dashboard")
def dashboard(
    db: Session,
    identity: Optional[Identity],
    capabilities: CapabilityResolver,
    free_deck_limit: int = 3,
    recent_limit: int = 10,
) -> DashboardOut:
    """
    Vue d'ensemble: decks (avec nb de cartes), statistiques et dernières sessions.
    """
    user = resolve_user(db, identity)

    listed = deck_service.list_decks(db, identity)
    if not listed.success:
        return listed
    decks = listed.data

    total_decks = len(decks)
    total_cards = sum(d.cards_count for d in decks)
    decks_with_cards = sum(1 for d in decks if d.cards_count > 0)

    entitlements = compute_entitlements(capabilities, identity, free_deck_limit)

    return DashboardOut(
        user=UserOut.model_validate(user),
        decks=decks,
        deck_stats=DeckStatsOut(
            total_decks=total_decks,
            total_cards=total_cards,
            decks_with_cards=decks_with_cards,
            empty_decks=total_decks - decks_with_cards,
            average_cards_per_deck=round(total_cards / total_decks, 1) if total_decks else 0.0,
            completion_rate=rounded_ratio(100 * decks_with_cards, total_decks),
        ),
        session_stats=session_stats(db, user.id),
        recent_sessions=_history(db, user.id, recent_limit),
        **entitlements,
    )

"""Saved calculator scenarios.

A scenario is the calculator form as submitted, stored per anonymous
session token. Results are never stored; the page recomputes them, so a
saved scenario always reflects the current engine. Any SQLAlchemy URL
works, SQLite is used when none is configured.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Column, DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///scenario_data.sqlite3"


class SavedScenarioModel(Base):
    __tablename__ = "saved_scenarios"

    id = Column(String(64), primary_key=True)
    user_token = Column(String(64), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    inputs = Column(JSON, nullable=False)
    # insertion order; created_at alone can tie within one clock tick
    sequence = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class ScenarioStore:
    """Scenario inputs keyed by session token, newest ``max_per_user`` kept."""

    def __init__(self, url: str, *, max_per_user: int = 10) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)
        self._max_per_user = max_per_user

    def list_scenarios(self, user_token: Optional[str]) -> List[Dict[str, Any]]:
        if not user_token:
            return []
        with self._session_factory() as session:
            rows = session.execute(self._user_query(user_token).order_by(SavedScenarioModel.sequence)).scalars()
            return [_to_dict(row) for row in rows]

    def get_scenario(self, user_token: Optional[str], scenario_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = _owned(session, user_token, scenario_id)
            return None if row is None else _to_dict(row)

    def add_scenario(self, user_token: Optional[str], scenario_id: str, name: str, inputs: Dict[str, Any]) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            last = session.execute(
                self._user_query(user_token).order_by(SavedScenarioModel.sequence.desc()).limit(1)
            ).scalar_one_or_none()
            session.add(
                SavedScenarioModel(
                    id=scenario_id,
                    user_token=user_token,
                    name=name,
                    inputs=inputs,
                    sequence=0 if last is None else last.sequence + 1,
                )
            )
            session.flush()
            self._trim(session, user_token)
            session.commit()

    def remove_scenario(self, user_token: Optional[str], scenario_id: str) -> None:
        with self._session_factory() as session:
            row = _owned(session, user_token, scenario_id)
            if row is not None:
                session.delete(row)
                session.commit()

    def clear_scenarios(self, user_token: Optional[str]) -> None:
        if not user_token:
            return
        with self._session_factory() as session:
            session.execute(delete(SavedScenarioModel).where(SavedScenarioModel.user_token == user_token))
            session.commit()

    @staticmethod
    def _user_query(user_token: str):
        return select(SavedScenarioModel).where(SavedScenarioModel.user_token == user_token)

    def _trim(self, session: Session, user_token: str) -> None:
        if self._max_per_user <= 0:
            return
        stale = session.execute(
            self._user_query(user_token)
            .order_by(SavedScenarioModel.sequence.desc())
            .offset(self._max_per_user)
        ).scalars().all()
        for row in stale:
            session.delete(row)
        if stale:
            logger.debug("Dropped %d old scenarios for %s", len(stale), user_token)


def _owned(session: Session, user_token: Optional[str], scenario_id: str) -> Optional[SavedScenarioModel]:
    if not user_token or not scenario_id:
        return None
    row = session.get(SavedScenarioModel, scenario_id)
    if row is None or row.user_token != user_token:
        return None
    return row


def _to_dict(row: SavedScenarioModel) -> Dict[str, Any]:
    return {
        "id": row.id,
        "name": row.name,
        "inputs": row.inputs,
        "created_at": row.created_at.isoformat(),
    }


def create_store_from_env(url: Optional[str], max_per_user: int = 10) -> ScenarioStore:
    return ScenarioStore(url or DEFAULT_DATABASE_URL, max_per_user=max_per_user)

"""Persistence layer for named simulation runs.

Simulations are stored per user email under a generated identifier, together
with the input that produced them and the serialized result. It defaults to
SQLite for local development, but accepts any SQLAlchemy-compatible URL (e.g.
PostgreSQL/MySQL) for shared deployments.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import Boolean, Column, DateTime, String, Text, create_engine, delete, select
from sqlalchemy.orm import declarative_base, sessionmaker

logger = logging.getLogger(__name__)

Base = declarative_base()


class SimulationModel(Base):
    __tablename__ = "simulations"

    id = Column(String(64), primary_key=True)
    user_email = Column(String(255), index=True, nullable=False)
    name = Column(String(255), nullable=False)
    input_json = Column(Text, nullable=False)
    result_json = Column(Text, nullable=False)
    is_base_scenario = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SimulationStore:
    """Database-backed simulation store."""

    def __init__(self, url: str, *, max_per_user: Optional[int] = None) -> None:
        engine = create_engine(url, future=True)
        Base.metadata.create_all(engine)
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False, future=True)
        # None or 0 keeps every simulation
        self.max_per_user = max_per_user if max_per_user and max_per_user > 0 else None
        logger.debug("Simulation store ready on %s (cap=%s)", engine.url, self.max_per_user)

    def list_simulations(self, user_email: str) -> List[Dict[str, Any]]:
        """Return the user's simulations, newest first."""
        if not user_email:
            return []
        with self._sessions() as session:
            rows: Iterable[SimulationModel] = session.execute(
                select(SimulationModel)
                .where(SimulationModel.user_email == user_email)
                .order_by(SimulationModel.created_at.desc())
            ).scalars()
            return [self._to_dict(row) for row in rows]

    def get_simulation(self, user_email: str, simulation_id: str) -> Optional[Dict[str, Any]]:
        if not user_email:
            return None
        with self._sessions() as session:
            row = session.get(SimulationModel, simulation_id)
            if row is None or row.user_email != user_email:
                return None
            return self._to_dict(row)

    def add_simulation(
        self,
        user_email: str,
        simulation_id: str,
        name: str,
        simulation_data: dict,
        results: dict,
        is_base_scenario: bool = False,
    ) -> Optional[Dict[str, Any]]:
        if not user_email:
            return None
        row = SimulationModel(
            id=simulation_id,
            user_email=user_email,
            name=name,
            input_json=json.dumps(simulation_data),
            result_json=json.dumps(results),
            is_base_scenario=bool(is_base_scenario),
            created_at=datetime.utcnow(),
        )
        with self._sessions() as session:
            session.add(row)
            session.commit()
            stored = self._to_dict(row)
        logger.info("Stored simulation %s for %s", simulation_id, user_email)
        self._trim_user(user_email)
        return stored

    def remove_simulation(self, user_email: str, simulation_id: str) -> bool:
        if not user_email:
            return False
        with self._sessions() as session:
            row = session.get(SimulationModel, simulation_id)
            if row is None or row.user_email != user_email:
                return False
            session.delete(row)
            session.commit()
        logger.info("Removed simulation %s for %s", simulation_id, user_email)
        return True

    def clear_simulations(self, user_email: str) -> int:
        """Delete every simulation of ``user_email`` and return how many went."""
        if not user_email:
            return 0
        statement = delete(SimulationModel).where(SimulationModel.user_email == user_email)
        with self._sessions() as session:
            removed = session.execute(statement).rowcount
            session.commit()
        logger.info("Cleared %d simulations for %s", removed, user_email)
        return removed

    def _trim_user(self, user_email: str) -> None:
        """Drop the user's oldest simulations beyond ``max_per_user``."""
        if self.max_per_user is None:
            return
        overflow = (
            select(SimulationModel.id)
            .where(SimulationModel.user_email == user_email)
            .order_by(SimulationModel.created_at.desc())
            .offset(self.max_per_user)
        )
        with self._sessions() as session:
            stale_ids = session.execute(overflow).scalars().all()
            if not stale_ids:
                return
            session.execute(delete(SimulationModel).where(SimulationModel.id.in_(stale_ids)))
            session.commit()
        logger.info("Trimmed %d old simulations for %s", len(stale_ids), user_email)

    @staticmethod
    def _to_dict(row: SimulationModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "user_email": row.user_email,
            "name": row.name,
            "simulation_data": json.loads(row.input_json),
            "results": json.loads(row.result_json),
            "is_base_scenario": row.is_base_scenario,
            "created_at": row.created_at.isoformat(),
        }


def create_store_from_env(url: str | None, max_per_user: Optional[int] = None) -> SimulationStore:
    return SimulationStore(url or "sqlite:///simulation_data.sqlite3", max_per_user=max_per_user)

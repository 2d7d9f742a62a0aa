"""
Goal Store - Persistence for user goal weights.

The set_goals tool only depends on the GoalStore interface; the SQL
implementation upserts into one table per goal kind.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from trainer_agent.core.logging import get_logger
from trainer_agent.models.goal import UserCategoryGoal, UserMuscleGoal

logger = get_logger(__name__)

CATEGORY_TABLE = UserCategoryGoal.__tablename__
MUSCLE_TABLE = UserMuscleGoal.__tablename__


class GoalStore(ABC):
    """Key-value persistence used by the goal tool."""
    
    @abstractmethod
    async def upsert(
        self,
        table: str,
        key: Dict[str, Any],
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Insert a row or update the row matching ``key`` (last write wins).
        
        Args:
            table: Target table name
            key: Columns forming the unique key, e.g. user_id + category
            fields: Columns to write
            
        Returns:
            The stored row as a dict
        """
        pass


class SqlGoalStore(GoalStore):
    """
    PostgreSQL-backed goal store.
    
    Each upsert runs in its own savepoint so one failed row does not
    abort the surrounding transaction.
    """
    
    TABLES = {
        CATEGORY_TABLE: UserCategoryGoal,
        MUSCLE_TABLE: UserMuscleGoal,
    }
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def upsert(
        self,
        table: str,
        key: Dict[str, Any],
        fields: Dict[str, Any],
    ) -> Dict[str, Any]:
        model = self.TABLES.get(table)
        if model is None:
            raise ValueError(f"Unknown goal table '{table}'")
        
        stmt = insert(model).values(**key, **fields)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key.keys()),
            set_={**fields, "updated_at": func.now()},
        )
        
        async with self.db.begin_nested():
            await self.db.execute(stmt)
        
        logger.debug("Upserted goal", table=table, key=list(key.keys()))
        
        return {**key, **fields}

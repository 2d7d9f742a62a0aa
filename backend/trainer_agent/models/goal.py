"""
Goal weight database models.
One row per (user, category) and per (user, muscle); written by the set_goals tool.
"""
import uuid
from datetime import datetime
from sqlalchemy import String, Float, DateTime, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from trainer_agent.core.database import Base


class UserCategoryGoal(Base):
    """Priority weight a user assigns to a training category."""
    
    __tablename__ = "user_category_and_weight"
    
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        onupdate=func.now()
    )
    
    __table_args__ = (
        UniqueConstraint("user_id", "category", name="uq_user_category"),
    )
    
    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"category": self.category, "weight": self.weight}


class UserMuscleGoal(Base):
    """Priority weight a user assigns to a muscle."""
    
    __tablename__ = "user_muscle_and_weight"
    
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    muscle: Mapped[str] = mapped_column(String(100), nullable=False)
    weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=func.now(),
        onupdate=func.now()
    )
    
    __table_args__ = (
        UniqueConstraint("user_id", "muscle", name="uq_user_muscle"),
    )
    
    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {"muscle": self.muscle, "weight": self.weight}

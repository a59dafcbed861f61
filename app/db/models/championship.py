# app/db/models/championship.py
from datetime import datetime
from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from typing import List, TYPE_CHECKING
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.championship_member import ChampionshipMember
    from app.db.models.scoring_rule import ScoringRule

class Championship(Base):
    __tablename__ = "championships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    # Código para unirse (ej: "X9A-2B1")
    invitation_code: Mapped[str] = mapped_column(String, unique=True, nullable=False)
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)
    admin_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relaciones
    season: Mapped["Season"] = relationship("Season", back_populates="championships")
    admin: Mapped["User"] = relationship("User")
    members: Mapped[List["ChampionshipMember"]] = relationship(
        "ChampionshipMember", back_populates="championship", cascade="all, delete-orphan"
    )
    scoring: Mapped["ScoringRule | None"] = relationship(
        "ScoringRule", back_populates="championship", uselist=False, cascade="all, delete-orphan"
    )

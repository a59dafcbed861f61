from sqlalchemy import String, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from typing import List, TYPE_CHECKING
from app.db.session import Base
from datetime import datetime

if TYPE_CHECKING:
    from app.db.models.championship_member import ChampionshipMember
    from app.db.models.prediction import Prediction

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String, unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, default="user")
    country: Mapped[str | None] = mapped_column(String, nullable=True)
    profile_pic: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relaciones
    memberships: Mapped[List["ChampionshipMember"]] = relationship("ChampionshipMember", back_populates="user")
    predictions: Mapped[List["Prediction"]] = relationship("Prediction", back_populates="user")

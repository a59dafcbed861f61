from sqlalchemy import Boolean, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship
from typing import List, TYPE_CHECKING
from app.db.session import Base

if TYPE_CHECKING:
    from app.db.models.race import Race
    from app.db.models.team import Team
    from app.db.models.championship import Championship

class Season(Base):
    __tablename__ = "seasons"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relaciones
    races: Mapped[List["Race"]] = relationship("Race", back_populates="season", order_by="Race.round_number")
    teams: Mapped[List["Team"]] = relationship("Team", back_populates="season")
    championships: Mapped[List["Championship"]] = relationship("Championship", back_populates="season")

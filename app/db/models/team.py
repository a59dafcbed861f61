# app/db/models/team.py
from sqlalchemy import String, Integer, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class Team(Base):
    """Escudería real de F1 (Ferrari, McLaren...) dentro de una temporada."""
    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    color: Mapped[str] = mapped_column(String, default="#000000")
    season_id: Mapped[int] = mapped_column(Integer, ForeignKey("seasons.id"), nullable=False)

    # Relaciones
    season: Mapped["Season"] = relationship("Season", back_populates="teams")
    drivers: Mapped[list["Driver"]] = relationship("Driver", back_populates="team")

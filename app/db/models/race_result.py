# app/db/models/race_result.py
from sqlalchemy import Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class RaceResult(Base):
    """Una fila por piloto con algo que puntuar en la carrera."""
    __tablename__ = "race_results"
    __table_args__ = (
        UniqueConstraint("race_id", "driver_id", name="uq_race_driver"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    race_id: Mapped[int] = mapped_column(Integer, ForeignKey("races.id"), nullable=False, index=True)
    driver_id: Mapped[int] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)  # None = sin posición puntuable
    is_pole: Mapped[bool] = mapped_column(Boolean, default=False)
    fastest_lap: Mapped[bool] = mapped_column(Boolean, default=False)
    is_last_place: Mapped[bool] = mapped_column(Boolean, default=False)

    # Relaciones
    race: Mapped["Race"] = relationship("Race", back_populates="results")
    driver: Mapped["Driver"] = relationship("Driver")

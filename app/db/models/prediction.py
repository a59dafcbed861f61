# app/db/models/prediction.py
from sqlalchemy import Integer, ForeignKey, UniqueConstraint, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func
from app.db.session import Base
from datetime import datetime

class Prediction(Base):
    __tablename__ = "predictions"
    __table_args__ = (
        # Un usuario solo puede hacer 1 predicción por carrera y campeonato
        UniqueConstraint("championship_id", "race_id", "user_id", name="uq_championship_race_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    championship_id: Mapped[int] = mapped_column(Integer, ForeignKey("championships.id"), nullable=False)
    race_id: Mapped[int] = mapped_column(Integer, ForeignKey("races.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    # Ids de piloto; cualquiera puede ir vacío hasta que se completa
    position_1: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    position_2: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    position_3: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    position_4: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    position_5: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    position_6: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    pole: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    fastest_lap: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)
    last_place: Mapped[int | None] = mapped_column(Integer, ForeignKey("drivers.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

    # Relaciones
    user: Mapped["User"] = relationship("User", back_populates="predictions")
    race: Mapped["Race"] = relationship("Race", back_populates="predictions")

# app/db/models/race_point.py
from sqlalchemy import Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base

class RacePoint(Base):
    """
    Puntos de un usuario en una carrera de un campeonato.
    Tabla derivada: solo la escribe el recálculo, nunca se edita a mano.
    """
    __tablename__ = "race_points"
    __table_args__ = (
        UniqueConstraint("championship_id", "race_id", "user_id", name="uq_race_point"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    championship_id: Mapped[int] = mapped_column(Integer, ForeignKey("championships.id"), nullable=False, index=True)
    race_id: Mapped[int] = mapped_column(Integer, ForeignKey("races.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    prediction_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("predictions.id"), nullable=True)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    guessed_p1: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_p2: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_p3: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_p4: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_p5: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_p6: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_pole: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_fastest_lap: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    guessed_last_place: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Relaciones
    user: Mapped["User"] = relationship("User")

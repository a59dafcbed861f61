from sqlalchemy import Integer, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from app.db.session import Base


class ChampionshipMember(Base):
    __tablename__ = "championship_members"
    __table_args__ = (
        UniqueConstraint("championship_id", "user_id", name="uq_championship_user"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    championship_id: Mapped[int] = mapped_column(Integer, ForeignKey("championships.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Campos derivados: solo los escribe el recálculo de clasificación
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    position: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Relaciones
    championship: Mapped["Championship"] = relationship("Championship", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

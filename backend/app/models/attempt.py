import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db import Base

if TYPE_CHECKING:
    from app.models.content_unit import ContentUnit


class Attempt(Base):
    __tablename__ = "attempts"
    __table_args__ = (Index("attempts_user_id_finished_at_idx", "user_id", "finished_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    # Identity lives outside this service; no FK to a users table.
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    content_unit_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("content_units.id", name="attempts_content_unit_id_fkey", ondelete="RESTRICT"),
        nullable=False,
    )
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    correct_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), nullable=True
    )

    content_unit: Mapped["ContentUnit"] = relationship("ContentUnit", lazy="joined")

import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, Integer, String, UniqueConstraint, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.db import Base


class ContentKind(str, enum.Enum):
    EXAM = "EXAM"
    PRACTICE = "PRACTICE"


class ContentUnit(Base):
    __tablename__ = "content_units"
    __table_args__ = (
        UniqueConstraint("kind", "number", name="content_units_kind_number_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    kind: Mapped[ContentKind] = mapped_column(
        Enum(ContentKind, name="content_kind"), nullable=False
    )
    number: Mapped[int] = mapped_column(Integer, nullable=False)
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime, server_default=text("CURRENT_TIMESTAMP"), nullable=True
    )

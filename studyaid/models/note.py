import uuid

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from studyaid.db.base_class import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class Note(Base):
    __tablename__ = "notes"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    title: Mapped[str | None] = mapped_column(String(512), nullable=True)
    original_content: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # pending|processing|completed|error
    processing_status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending", index=True)

    # generated outputs: all set together on completion, otherwise all null
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    key_points_json: Mapped[str | None] = mapped_column(Text, nullable=True)        # JSON string: ["..."]
    flashcards_json: Mapped[str | None] = mapped_column(Text, nullable=True)        # JSON string: [{front,back}]
    qa_json: Mapped[str | None] = mapped_column(Text, nullable=True)                # JSON string: [{question,answer}]

    error: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[str] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[str] = mapped_column(DateTime(timezone=True), onupdate=func.now(), server_default=func.now())

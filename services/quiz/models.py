import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class CtqScale(str, enum.Enum):
    emotional_abuse = "emotional_abuse"
    physical_abuse = "physical_abuse"
    sexual_abuse = "sexual_abuse"
    emotional_neglect = "emotional_neglect"
    physical_neglect = "physical_neglect"
    # Auxiliary scale: counted, never banded
    minimization_denial = "minimization_denial"


class Severity(str, enum.Enum):
    none = "None"
    low = "Low"
    moderate = "Moderate"
    severe = "Severe"


class ResultCategory(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"
    unknown = "Unknown"


class Quiz(Base):
    __tablename__ = "quizzes"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    slug: Mapped[str] = mapped_column(String, unique=True, index=True)
    title: Mapped[str] = mapped_column(String)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    questions: Mapped[list["Question"]] = relationship(back_populates="quiz", order_by="Question.order")


class Question(Base):
    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    quiz_id: Mapped[str] = mapped_column(String, ForeignKey("quizzes.id"), index=True)
    # Instrument item number (1..28 for the CTQ-SF); scoring tables key on this
    item_number: Mapped[int] = mapped_column(Integer)
    text: Mapped[str] = mapped_column(Text)
    order: Mapped[int] = mapped_column(Integer, default=0)

    __table_args__ = (UniqueConstraint("quiz_id", "item_number", name="uq_quiz_item"),)

    quiz: Mapped[Quiz] = relationship(back_populates="questions")
    answer_options: Mapped[list["AnswerOption"]] = relationship(
        back_populates="question", order_by="AnswerOption.value"
    )


class AnswerOption(Base):
    __tablename__ = "answer_options"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    question_id: Mapped[str] = mapped_column(String, ForeignKey("questions.id"), index=True)
    text: Mapped[str] = mapped_column(String)
    value: Mapped[int] = mapped_column(Integer)

    question: Mapped[Question] = relationship(back_populates="answer_options")

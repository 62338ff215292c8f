"""Seed the CTQ-SF quiz (28 items, five Likert options each)."""
import json
import os

from sqlalchemy.orm import Session

from services.quiz import models
from services.quiz.db import SessionLocal, init_db
from services.quiz.scoring_config import get_scoring_config

CTQ_SLUG = "ctq-sf"

LIKERT_OPTIONS = [
    ("Never True", 1),
    ("Rarely True", 2),
    ("Sometimes True", 3),
    ("Often True", 4),
    ("Very Often True", 5),
]


def _load_item_texts() -> dict[int, str]:
    # The licensed item wording is deployed separately; placeholders are used without it.
    path = os.getenv("CTQ_ITEM_TEXTS_PATH")
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return {int(k): v for k, v in json.load(f).items()}


def seed_ctq_quiz(db: Session, item_texts: dict[int, str] | None = None) -> models.Quiz:
    existing = db.query(models.Quiz).filter(models.Quiz.slug == CTQ_SLUG).first()
    if existing:
        print("CTQ-SF quiz already seeded")
        return existing

    texts = item_texts if item_texts is not None else _load_item_texts()
    quiz = models.Quiz(
        slug=CTQ_SLUG,
        title="Childhood Trauma Questionnaire (Short Form)",
        description="A 28-item self-report screening. This is a screening, not a diagnosis.",
    )
    db.add(quiz)
    db.flush()

    for item in get_scoring_config().question_ids:
        question = models.Question(
            quiz_id=quiz.id,
            item_number=item,
            text=texts.get(item, f"CTQ-SF item {item}"),
            order=item,
        )
        db.add(question)
        db.flush()
        for text, value in LIKERT_OPTIONS:
            db.add(models.AnswerOption(question_id=question.id, text=text, value=value))

    db.commit()
    print(f"Seeded CTQ-SF quiz: {quiz.id}")
    return quiz


def main():
    init_db()
    db = SessionLocal()
    try:
        seed_ctq_quiz(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()

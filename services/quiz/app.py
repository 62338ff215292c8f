import logging
import os
from datetime import datetime

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from services.quiz.ctq import CtqResult
from services.quiz.db import get_db, init_db
from services.quiz.quiz_runner import (
    IncompleteAnswerSetError,
    QuizAttempt,
    QuizLoadError,
    QuizNotFoundError,
    QuizView,
    load_quiz,
)
from services.quiz.schemas import (
    AnswerOptionResponse,
    CtqResultCreate,
    CtqResultResponse,
    QuestionResponse,
    QuizResponse,
    QuizSubmission,
    ScaleResultResponse,
    SubmissionResponse,
)
from services.quiz.scoring_config import get_scoring_config
from services.quiz.submission import score_submission

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create tables (dev-only). The production store is provisioned separately.
init_db()

# Broken scoring rules must stop the service here, not surface at scoring time.
scoring_config = get_scoring_config()

app = FastAPI(title="CTQ Quiz API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def unhandled_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"message": str(exc) or "An internal server error occurred"})


def _quiz_response(quiz: QuizView) -> QuizResponse:
    return QuizResponse(
        id=quiz.id,
        slug=quiz.slug,
        title=quiz.title,
        description=quiz.description,
        questions=[
            QuestionResponse(
                id=q.id,
                item_number=q.item_number,
                text=q.text,
                order=q.order,
                answer_options=[AnswerOptionResponse(id=o.id, text=o.text, value=o.value) for o in q.options],
            )
            for q in quiz.questions
        ],
    )


def _result_response(slug: str, result: CtqResult) -> CtqResultResponse:
    return CtqResultResponse(
        quiz_slug=slug,
        rules_version=result.rules_version,
        scales={
            scale.value: ScaleResultResponse(score=r.score, severity=r.severity.value, positive=r.positive)
            for scale, r in result.scales.items()
        },
        minimization_score=result.minimization_score,
        total_score=result.total_score,
        highest_severity=result.highest_severity.value,
        needs_support=result.needs_support,
        support_level=result.support_level,
    )


def _load_or_raise(db: Session, slug: str) -> QuizView:
    try:
        return load_quiz(db, slug)
    except QuizNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except QuizLoadError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/", response_class=PlainTextResponse, tags=["Monitoring"])
def root():
    return "Quiz App Backend is running!"


@app.get("/health", tags=["Monitoring"])
def get_health():
    return {"status": "ok"}


@app.get("/version", tags=["Monitoring"])
def get_version():
    return {
        "service": "ctq-quiz-api",
        "version": "0.1.0",
        "scoring_rules": scoring_config.version,
        "time": datetime.utcnow().isoformat(),
    }


@app.post("/api/quiz/submit", response_model=SubmissionResponse, tags=["Submission"])
def submit_quiz(payload: QuizSubmission, db: Session = Depends(get_db)):
    logger.info(f"Received submission for quiz {payload.quizId} with {len(payload.answers or [])} answers")
    if not payload.quizId or not payload.answers:
        return JSONResponse(status_code=400, content={"message": "Missing quizId or answers in request body"})

    score, category = score_submission(db, payload)
    return SubmissionResponse(score=score, result_category=category.value)


@app.get("/quizzes/{slug}", response_model=QuizResponse, tags=["Quiz"])
def get_quiz(slug: str, db: Session = Depends(get_db)):
    return _quiz_response(_load_or_raise(db, slug))


@app.post("/quizzes/{slug}/results", response_model=CtqResultResponse, tags=["Quiz"])
def create_result(slug: str, payload: CtqResultCreate, db: Session = Depends(get_db)):
    attempt = QuizAttempt(_load_or_raise(db, slug), config=scoring_config)
    for item_number, value in payload.answers.items():
        try:
            attempt.answer(item_number, value)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    try:
        result = attempt.finalize()
    except IncompleteAnswerSetError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _result_response(slug, result)

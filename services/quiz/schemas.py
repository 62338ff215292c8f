from pydantic import BaseModel, Field


# ------------------------------
# Quiz store
# ------------------------------


class AnswerOptionResponse(BaseModel):
    id: str
    text: str
    value: int


class QuestionResponse(BaseModel):
    id: str
    item_number: int
    text: str
    order: int
    answer_options: list[AnswerOptionResponse]


class QuizResponse(BaseModel):
    id: str
    slug: str
    title: str
    description: str | None = None
    questions: list[QuestionResponse]


# ------------------------------
# Simplified submission path
# ------------------------------


class SubmittedAnswer(BaseModel):
    question_id: str | int
    selected_option_id: str | int


class QuizSubmission(BaseModel):
    # camelCase kept for wire compatibility with existing clients
    quizId: str | int | None = None
    answers: list[SubmittedAnswer] | None = None


class SubmissionResponse(BaseModel):
    score: int
    result_category: str


# ------------------------------
# CTQ-SF results
# ------------------------------


class CtqResultCreate(BaseModel):
    answers: dict[int, int] = Field(description="Instrument item number -> raw response (1-5)")


class ScaleResultResponse(BaseModel):
    score: int
    severity: str
    positive: bool


class CtqResultResponse(BaseModel):
    quiz_slug: str
    rules_version: str
    scales: dict[str, ScaleResultResponse]
    minimization_score: int
    total_score: int
    highest_severity: str
    needs_support: bool
    support_level: str

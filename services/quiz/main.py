# Entrypoint for `uvicorn services.quiz.main:app`.

from services.quiz.app import app  # noqa: F401

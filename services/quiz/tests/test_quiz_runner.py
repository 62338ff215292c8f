import pytest

from services.quiz import models
from services.quiz.ctq import compute_result
from services.quiz.quiz_runner import (
    IncompleteAnswerSetError,
    QuizAttempt,
    QuizLoadError,
    QuizNotFoundError,
    UnansweredQuestionError,
    load_quiz,
)
from services.quiz.seed_quiz import CTQ_SLUG, seed_ctq_quiz


@pytest.fixture
def seeded_db(test_db_session):
    seed_ctq_quiz(test_db_session)
    return test_db_session


@pytest.fixture
def quiz(seeded_db):
    return load_quiz(seeded_db, CTQ_SLUG)


def test_load_quiz_orders_questions_and_options(quiz):
    assert len(quiz.questions) == 28
    assert [q.item_number for q in quiz.questions] == list(range(1, 29))
    for q in quiz.questions:
        assert [o.value for o in q.options] == [1, 2, 3, 4, 5]
        assert q.options[0].text == "Never True"
        assert q.options[-1].text == "Very Often True"


def test_load_quiz_sorts_rows_stored_out_of_order(test_db_session):
    db = test_db_session
    quiz = models.Quiz(slug="shuffled", title="Shuffled")
    db.add(quiz)
    db.flush()
    second = models.Question(quiz_id=quiz.id, item_number=7, text="second", order=2)
    first = models.Question(quiz_id=quiz.id, item_number=4, text="first", order=1)
    db.add_all([second, first])
    db.flush()
    for question in (second, first):
        for value in (3, 1, 2):
            db.add(models.AnswerOption(question_id=question.id, text=f"v{value}", value=value))
    db.commit()

    loaded = load_quiz(db, "shuffled")
    assert [q.text for q in loaded.questions] == ["first", "second"]
    assert [q.item_number for q in loaded.questions] == [4, 7]
    for q in loaded.questions:
        assert [o.value for o in q.options] == [1, 2, 3]


def test_seed_is_idempotent(seeded_db):
    seed_ctq_quiz(seeded_db)
    assert seeded_db.query(models.Quiz).count() == 1
    assert seeded_db.query(models.Question).count() == 28


def test_seed_uses_supplied_item_texts(test_db_session):
    seed_ctq_quiz(test_db_session, item_texts={1: "First item"})
    quiz = load_quiz(test_db_session, CTQ_SLUG)
    assert quiz.questions[0].text == "First item"
    assert quiz.questions[1].text == "CTQ-SF item 2"


def test_missing_quiz(test_db_session):
    with pytest.raises(QuizNotFoundError):
        load_quiz(test_db_session, "nope")


def test_quiz_without_questions_is_rejected(test_db_session):
    test_db_session.add(models.Quiz(slug="empty", title="Empty"))
    test_db_session.commit()
    with pytest.raises(QuizLoadError, match="incomplete"):
        load_quiz(test_db_session, "empty")


def test_question_without_options_is_rejected(test_db_session):
    quiz = models.Quiz(slug="broken", title="Broken")
    test_db_session.add(quiz)
    test_db_session.flush()
    test_db_session.add(models.Question(quiz_id=quiz.id, item_number=1, text="q", order=1))
    test_db_session.commit()
    with pytest.raises(QuizLoadError, match="incomplete"):
        load_quiz(test_db_session, "broken")


def test_finalize_rejects_incomplete_answer_set(quiz):
    attempt = QuizAttempt(quiz)
    attempt.answer(1, 3)
    with pytest.raises(IncompleteAnswerSetError) as exc:
        attempt.finalize()
    assert exc.value.remaining == 27
    assert str(exc.value) == "Please answer all 28 questions. You have 27 remaining."
    assert attempt.result is None


def test_next_requires_an_answer(quiz):
    attempt = QuizAttempt(quiz)
    with pytest.raises(UnansweredQuestionError):
        attempt.next()
    assert attempt.current_index == 0


def test_answer_validates_question_and_value(quiz):
    attempt = QuizAttempt(quiz)
    with pytest.raises(ValueError):
        attempt.answer(29, 3)
    with pytest.raises(ValueError):
        attempt.answer(1, 6)
    assert attempt.answered_count == 0


def test_full_run_scores_once_at_the_end(quiz):
    attempt = QuizAttempt(quiz)
    for i in range(28):
        attempt.answer(attempt.current_question.item_number, 5)
        result = attempt.next()
        if i < 27:
            assert result is None
    assert attempt.is_complete
    assert result is attempt.result
    assert result == compute_result({q: 5 for q in range(1, 29)})


def test_previous_clears_result(quiz):
    attempt = QuizAttempt(quiz)
    for q in quiz.questions:
        attempt.answer(q.item_number, 2)
    attempt.current_index = 27
    attempt.next()
    assert attempt.result is not None

    attempt.previous()
    assert attempt.current_index == 26
    assert attempt.result is None


def test_changing_an_answer_replaces_it(quiz):
    attempt = QuizAttempt(quiz)
    attempt.answer(1, 2)
    attempt.answer(1, 4)
    assert attempt.answers[1] == 4
    assert attempt.remaining == 27


def test_answers_view_is_read_only(quiz):
    attempt = QuizAttempt(quiz)
    attempt.answer(1, 2)
    with pytest.raises(TypeError):
        attempt.answers[2] = 3


def test_select_option_records_its_value(quiz):
    attempt = QuizAttempt(quiz)
    option = quiz.questions[4].options[3]
    attempt.select_option(option.id)
    assert attempt.answers == {5: 4}
    with pytest.raises(ValueError):
        attempt.select_option("missing")


def test_reset_discards_answers(quiz):
    attempt = QuizAttempt(quiz)
    for q in quiz.questions:
        attempt.answer(q.item_number, 1)
    attempt.finalize()
    attempt.reset()
    assert attempt.answered_count == 0
    assert attempt.result is None
    assert attempt.current_index == 0

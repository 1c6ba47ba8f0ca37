from __future__ import annotations

import asyncio
import itertools
from datetime import UTC, datetime

import pytest

from lms.core.errors import ValidationFailed
from lms.services.questions import (
    MAX_QUESTIONS_PER_UPLOAD,
    QuestionBankService,
    QuestionFilter,
    QuestionImportError,
    QuizNotFound,
)
from lms.stores.document_store import InMemoryDocumentStore


def _clock() -> datetime:
    return datetime(2024, 5, 1, 9, 30, tzinfo=UTC)


def _question(**overrides):
    record = {
        "question": "What is 2 + 2?",
        "options": ["3", "4", "5"],
        "correctOption": 1,
        "subject": "Math",
        "topic": "Arithmetic",
        "difficulty": "beginner",
    }
    record.update(overrides)
    return record


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def bank(store) -> QuestionBankService:
    return QuestionBankService(store, clock=_clock)


def _seed(bank: QuestionBankService) -> None:
    payload = {
        "questions": [
            _question(),
            _question(difficulty="Advanced", topic="Algebra"),
            _question(subject="Physics", topic="Motion", difficulty="intermediate"),
        ]
    }
    asyncio.run(bank.import_questions(payload, "Mixed set", actor="admin@example.com"))


def test_import_writes_questions_and_quiz_summary(bank, store) -> None:
    counter = itertools.count(1)
    quiz = asyncio.run(
        bank.import_questions(
            {"questions": [_question(), _question(difficulty="ADVANCED")]},
            "  Week 1  ",
            "Warm-up",
            actor="admin@example.com",
            id_factory=lambda: f"id{next(counter)}",
        )
    )
    assert quiz.id == "id1"
    assert quiz.title == "Week 1"
    assert quiz.question_count == 2
    assert quiz.difficulty_breakdown.beginner == 1
    assert quiz.difficulty_breakdown.advanced == 1
    assert quiz.created_by == "admin@example.com"

    stored = asyncio.run(store.get("questions/id3"))
    assert stored.data["difficulty"] == "advanced"
    assert stored.data["quizId"] == "id1"
    assert stored.data["setTitle"] == "Week 1"
    assert stored.data["createdAt"] == "2024-05-01T09:30:00.000Z"
    assert asyncio.run(store.get("quizzes/id1")).data["questionCount"] == 2


@pytest.mark.parametrize(
    "bad",
    [
        {"options": []},
        {"correctOption": "1"},
        {"correctOption": 1.5},
        {"correctOption": True},
        {"subject": "   "},
        {"difficulty": "expert"},
        {"question": None},
    ],
)
def test_one_bad_record_rejects_whole_batch(bank, store, bad) -> None:
    payload = {"questions": [_question(), _question(**bad)]}
    with pytest.raises(QuestionImportError) as exc:
        asyncio.run(bank.import_questions(payload, "Broken"))
    assert "index 1" in exc.value.message
    assert asyncio.run(store.query("questions")) == []
    assert asyncio.run(store.query("quizzes")) == []


@pytest.mark.parametrize(
    ("payload", "title"),
    [
        ({"questions": [_question()]}, "  "),
        ({"items": []}, "Set"),
        ([_question()], "Set"),
        ({"questions": []}, "Set"),
        ({"questions": ["not a record"]}, "Set"),
    ],
)
def test_malformed_uploads_are_rejected(bank, payload, title) -> None:
    with pytest.raises(QuestionImportError):
        asyncio.run(bank.import_questions(payload, title))


def test_filters_treat_blank_and_all_as_unset() -> None:
    f = QuestionFilter.from_params("all", " ", "Beginner")
    assert f.subject is None
    assert f.topic is None
    assert f.difficulty == "Beginner"
    assert f.label("subject") == "all"


def test_list_questions_filters(bank) -> None:
    _seed(bank)
    assert len(asyncio.run(bank.list_questions())) == 3
    math = asyncio.run(bank.list_questions(QuestionFilter(subject="Math")))
    assert {q.topic for q in math} == {"Arithmetic", "Algebra"}
    advanced = asyncio.run(bank.list_questions(QuestionFilter(difficulty="ADVANCED")))
    assert [q.topic for q in advanced] == ["Algebra"]


def test_statistics(bank) -> None:
    _seed(bank)
    stats = asyncio.run(bank.statistics())
    assert stats.total == 3
    assert stats.by_subject == {"Math": 2, "Physics": 1}
    assert stats.by_difficulty.intermediate == 1


def test_export_round_trips_authoring_fields(bank) -> None:
    _seed(bank)
    export = asyncio.run(bank.export_questions(QuestionFilter(subject="Physics")))
    assert export.filename == "questions-Physics-all-all-2024-05-01T09:30:00.000Z.json"
    assert export.payload == {
        "questions": [
            {
                "question": "What is 2 + 2?",
                "options": ["3", "4", "5"],
                "correctOption": 1,
                "subject": "Physics",
                "topic": "Motion",
                "difficulty": "intermediate",
            }
        ]
    }


def test_delete_questions_by_filter(bank) -> None:
    _seed(bank)
    deleted = asyncio.run(bank.delete_questions(QuestionFilter(subject="Math")))
    assert deleted == 2
    remaining = asyncio.run(bank.list_questions())
    assert [q.subject for q in remaining] == ["Physics"]
    assert asyncio.run(bank.delete_questions(QuestionFilter(subject="Math"))) == 0


def test_quizzes_list_export_and_delete(bank) -> None:
    _seed(bank)
    asyncio.run(bank.import_questions({"questions": [_question()]}, "Easy only"))
    quizzes = asyncio.run(bank.list_quizzes())
    assert {q.title for q in quizzes} == {"Mixed set", "Easy only"}

    advanced = asyncio.run(bank.export_quizzes("advanced"))
    assert advanced.filename.startswith("quizzes-advanced-")
    [mixed] = advanced.payload
    assert mixed["title"] == "Mixed set"
    assert [q["topic"] for q in mixed["questions"]] == ["Algebra"]
    assert mixed["questionCount"] == 3

    everything = asyncio.run(bank.export_quizzes())
    assert sorted(len(q["questions"]) for q in everything.payload) == [1, 3]

    with pytest.raises(ValidationFailed):
        asyncio.run(bank.export_quizzes("expert"))

    easy = next(q for q in quizzes if q.title == "Easy only")
    asyncio.run(bank.delete_quiz(easy.id))
    assert [q.title for q in asyncio.run(bank.list_quizzes())] == ["Mixed set"]
    with pytest.raises(QuizNotFound):
        asyncio.run(bank.delete_quiz(easy.id))


def test_whole_number_float_is_an_index(bank, store) -> None:
    asyncio.run(bank.import_questions({"questions": [_question(correctOption=2.0)]}, "Set"))
    [doc] = asyncio.run(store.query("questions"))
    assert doc.data["correctOption"] == 2
    assert isinstance(doc.data["correctOption"], int)


def test_oversized_upload_is_rejected_before_writing(bank, store) -> None:
    payload = {"questions": [_question()] * (MAX_QUESTIONS_PER_UPLOAD + 1)}
    with pytest.raises(QuestionImportError) as exc:
        asyncio.run(bank.import_questions(payload, "Too big"))
    assert f"at most {MAX_QUESTIONS_PER_UPLOAD}" in exc.value.message
    assert asyncio.run(store.query("questions")) == []


def test_largest_upload_fits_one_batch_and_deletes_in_several(bank) -> None:
    payload = {"questions": [_question()] * MAX_QUESTIONS_PER_UPLOAD}
    asyncio.run(bank.import_questions(payload, "Part 1"))
    asyncio.run(bank.import_questions(payload, "Part 2"))
    assert asyncio.run(bank.statistics()).total == 2 * MAX_QUESTIONS_PER_UPLOAD

    assert asyncio.run(bank.delete_questions()) == 2 * MAX_QUESTIONS_PER_UPLOAD
    assert asyncio.run(bank.list_questions()) == []

import json

import pytest

from quiz_prep.core.errors import EmptyBankError, QuizImportError, QuizParseError
from quiz_prep.core.quiz_importer import load_bank_from_file, parse_bank_text


def _quiz(quiz_id, *question_ids, **extra):
    return {
        "id": quiz_id,
        "title": f"Quiz {quiz_id}",
        "totalMarks": len(question_ids),
        "duration": 5,
        "questions": [
            {
                "id": qid,
                "statement": f"Q{qid}",
                "option1": "a",
                "option2": "b",
                "option3": "c",
                "option4": "d",
                "marks": 1.0,
                "correctOption": 2,
            }
            for qid in question_ids
        ],
        **extra,
    }


def test_parse_single_object(sample_quiz_json):
    bank = parse_bank_text(sample_quiz_json)
    assert [q.id for q in bank.questions] == [1, 2]
    assert bank.sources[0].title == "Physics"
    assert bank.metadata().review_after_attempt is True

    power = bank.find(2)
    assert [o.index for o in power.options()] == [1, 2, 3]
    assert power.correct_option == 3
    assert power.source_quiz_id == 3


def test_parse_array():
    text = json.dumps([_quiz(1, 10, 11), _quiz(2, 20)])
    bank = parse_bank_text(text)
    assert [q.id for q in bank.questions] == [10, 11, 20]
    assert bank.metadata().total_marks == 3
    assert bank.metadata().duration_minutes == 10


def test_parse_concatenated_objects():
    text = json.dumps(_quiz(1, 10)) + json.dumps(_quiz(2, 20)) + "\n" + json.dumps(_quiz(3, 30))
    bank = parse_bank_text(text)
    assert [s.id for s in bank.sources] == [1, 2, 3]


def test_concatenated_objects_with_braces_inside_strings():
    first = _quiz(1, 10)
    first["questions"][0]["statement"] = "Which set is {x | x > 0}?"
    bank = parse_bank_text(json.dumps(first) + json.dumps(_quiz(2, 20)))
    assert bank.find(10).statement == "Which set is {x | x > 0}?"


def test_concatenated_skips_unparseable_object():
    text = json.dumps(_quiz(1, 10)) + '{"id": 2, "questions": [ broken }' + json.dumps(_quiz(3, 30))
    bank = parse_bank_text(text)
    assert [s.id for s in bank.sources] == [1, 3]


def test_malformed_records_are_skipped():
    bad_question = {"id": 99, "statement": "no answer key", "option1": "a", "option2": "b"}
    wrong_key = {
        "id": 98,
        "statement": "points at empty slot",
        "option1": "a",
        "option2": "b",
        "option3": "",
        "correctOption": 3,
    }
    quiz = _quiz(1, 10)
    quiz["questions"].extend([bad_question, wrong_key])
    text = json.dumps([quiz, {"title": "no id"}, "not an object"])
    bank = parse_bank_text(text)
    assert [q.id for q in bank.questions] == [10]


def test_negative_marking_is_parsed_not_applied():
    bank = parse_bank_text(json.dumps(_quiz(1, 10, negativeMarks=1, negative=True)))
    assert bank.metadata().negative_marking_declared is True
    assert bank.sources[0].negative_marks == 1


def test_no_quiz_data_raises_parse_error():
    with pytest.raises(QuizParseError):
        parse_bank_text("not json at all")
    with pytest.raises(QuizParseError):
        parse_bank_text("   ")
    with pytest.raises(QuizParseError):
        parse_bank_text("42")


def test_quizzes_without_questions_raise_empty_bank():
    with pytest.raises(EmptyBankError):
        parse_bank_text(json.dumps(_quiz(1)))


def test_load_from_file(tmp_path, sample_quiz_json):
    path = tmp_path / "bank.json"
    path.write_text(sample_quiz_json, encoding="utf-8")
    imported = load_bank_from_file(path)
    assert imported.source_path == path
    assert imported.quiz_count == 1
    assert len(imported.bank) == 2


def test_missing_file_raises_import_error(tmp_path):
    with pytest.raises(QuizImportError):
        load_bank_from_file(tmp_path / "missing.json")

"""
Test: Model parsing, grade maps and answer (de)serialization.
"""
from coursework.models import (
    Assignment, ChoiceAnswer, MatchAnswer, Question, Submission, TextAnswer, UploadedFile,
    deserialize_answer, is_answered, normalize_grades, parse_answers, parse_uploaded_files,
    serialize_answer,
)


class TestNormalizeGrades:
    def test_string_keys(self):
        assert normalize_grades({"1": 2, "0": "3.5"}) == {0: 3.5, 1: 2.0}

    def test_map_entries(self):
        assert normalize_grades([["2", 1], ["0", 4]]) == {0: 4.0, 2: 1.0}

    def test_ordered_by_index(self):
        assert list(normalize_grades({"10": 1, "2": 1, "0": 1})) == [0, 2, 10]

    def test_junk_dropped(self):
        assert normalize_grades({"x": 1, "0": None, "1": "abc", "2": True, "3": 0}) == {3: 0.0}

    def test_empty(self):
        assert normalize_grades(None) == {}
        assert normalize_grades("nonsense") == {}


class TestModelParsing:
    def test_assignment_aliases(self, quiz_data):
        quiz_data.update({"isTimedQuiz": True, "quizTimeLimit": 20, "showCorrectAnswers": None})
        assignment = Assignment.model_validate(quiz_data)
        assert assignment.id == "a1"
        assert assignment.course == "c1"
        assert assignment.is_timed_quiz
        assert assignment.quiz_time_limit == 20
        assert assignment.show_correct_answers is False
        assert len(assignment.question_list()) == 3

    def test_upload_only(self):
        assignment = Assignment.model_validate({"_id": "a2", "title": "Essay"})
        assert not assignment.has_questions
        assert assignment.question_list() == []

    def test_negative_points_clamped(self):
        assert Question.model_validate({"type": "text", "points": -4}).points == 0

    def test_matching_ids_compared_as_strings(self, quiz_data):
        question = Assignment.model_validate(quiz_data).question_list()[1]
        assert question.right_item_for(question.left_items[0]).text == "Protein synthesis"

    def test_submission_defaults(self):
        submission = Submission.model_validate({"_id": "s1", "feedback": None, "answers": None})
        assert submission.feedback == ""
        assert submission.answers == {}
        assert submission.question_grades == {}
        assert submission.show_correct_answers is None

    def test_submission_grade_maps(self):
        submission = Submission.model_validate({
            "id": "s1",
            "student": {"_id": "u1", "name": "Ada"},
            "questionGrades": {"1": 2},
            "autoQuestionGrades": [["0", 5]],
        })
        assert submission.student == "u1"
        assert submission.question_grades == {1: 2.0}
        assert submission.auto_question_grades == {0: 5.0}


class TestAnswers:
    def test_matching_from_json_text(self):
        answer = deserialize_answer("matching", '{"0": "A", "2": "C"}')
        assert answer == MatchAnswer(pairs={0: "A", 2: "C"})

    def test_matching_from_dict(self):
        assert deserialize_answer("matching", {"1": "B"}).pairs == {1: "B"}

    def test_malformed_matching_kept_raw(self):
        answer = deserialize_answer("matching", "{broken")
        assert answer == MatchAnswer(raw="{broken")
        assert serialize_answer(answer) == "{broken"
        assert is_answered(answer)

    def test_blank_matching_is_empty(self):
        assert deserialize_answer("matching", "  ") == MatchAnswer()

    def test_matching_serializes_to_json_text(self):
        assert serialize_answer(MatchAnswer(pairs={0: "A"})) == '{"0": "A"}'

    def test_text_and_choice(self):
        assert deserialize_answer("text", None) == TextAnswer(value="")
        assert deserialize_answer("multiple-choice", "B") == ChoiceAnswer(value="B")

    def test_is_answered(self):
        assert not is_answered(None)
        assert not is_answered(TextAnswer(value="   "))
        assert is_answered(ChoiceAnswer(value="B"))
        assert not is_answered(MatchAnswer(pairs={0: ""}))
        assert is_answered(MatchAnswer(pairs={0: "", 1: "X"}))

    def test_parse_answers_fills_every_question(self, quiz_data):
        questions = Assignment.model_validate(quiz_data).question_list()
        answers = parse_answers(questions, {"2": "essay", "7": "extra", "bad": "x"})
        assert answers[0] == ChoiceAnswer()
        assert answers[1] == MatchAnswer()
        assert answers[2] == TextAnswer(value="essay")
        assert answers[7] == TextAnswer(value="extra")
        assert "bad" not in answers


class TestUploadedFile:
    def test_submission_shape(self):
        uploaded = UploadedFile(name="notes.pdf", url="/uploads/123-notes.pdf")
        assert uploaded.to_submission_file() == {
            "url": "/uploads/123-notes.pdf", "name": "notes.pdf", "originalname": "notes.pdf",
        }

    def test_name_fallback(self):
        assert UploadedFile().to_submission_file()["name"] == "file"

    def test_parse_entries(self):
        files = parse_uploaded_files([
            "/uploads/a.png",
            {"url": "/uploads/b.pdf", "name": "b.pdf", "originalname": "b.pdf"},
            {"name": ["bad"], "url": "/uploads/c"},
            None,
        ])
        assert [(f.name, f.url) for f in files] == [("", "/uploads/a.png"), ("b.pdf", "/uploads/b.pdf")]

    def test_parse_non_list(self):
        assert parse_uploaded_files({"url": "/x"}) == []

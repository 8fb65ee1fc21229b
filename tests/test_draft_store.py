"""
Test: Draft persistence - autosave, restore and delete of in-progress work.
"""
import json

from coursework.models import Assignment, ChoiceAnswer, MatchAnswer, TextAnswer, UploadedFile
from coursework.services.draft_store import (
    DraftPersistence, JsonFileStore, MemoryStore, draft_key,
)


def _questions(quiz_data):
    return Assignment.model_validate(quiz_data).question_list()


def _answers():
    return {
        0: ChoiceAnswer(value="Mitochondria"),
        1: MatchAnswer(pairs={0: "Protein synthesis", 2: "Packaging"}),
        2: TextAnswer(value="Diffusion of water"),
    }


class TestDraftKey:
    def test_key_format(self):
        assert draft_key("a1", "u1") == "assignment_draft_a1_u1"


class TestDraftRoundTrip:
    def test_answers_and_files_restored(self, store, quiz_data):
        drafts = DraftPersistence(store, "a1", "u1")
        files = [UploadedFile(name="essay.pdf", url="/uploads/essay.pdf", size=1200)]
        assert drafts.save(answers=_answers(), uploaded_files=files)

        draft = drafts.load(_questions(quiz_data))
        assert draft.answers == _answers()
        assert draft.uploaded_files == files

    def test_matching_stored_as_json_text(self, store):
        DraftPersistence(store, "a1", "u1").save(answers=_answers())
        stored = json.loads(store.get("assignment_draft_a1_u1"))
        assert json.loads(stored["answers"]["1"]) == {"0": "Protein synthesis", "2": "Packaging"}

    def test_other_user_sees_nothing(self, store, quiz_data):
        DraftPersistence(store, "a1", "u1").save(answers=_answers())
        assert DraftPersistence(store, "a1", "u2").load(_questions(quiz_data)) is None
        assert DraftPersistence(store, "a2", "u1").load(_questions(quiz_data)) is None

    def test_no_draft(self, store, quiz_data):
        assert DraftPersistence(store, "a1", "u1").load(_questions(quiz_data)) is None


class TestDraftMerge:
    def test_saving_files_keeps_answers(self, store, quiz_data):
        drafts = DraftPersistence(store, "a1", "u1")
        drafts.save(answers=_answers())
        drafts.save(uploaded_files=[UploadedFile(name="a.txt", url="/uploads/a.txt")])

        draft = drafts.load(_questions(quiz_data))
        assert draft.answers[2].value == "Diffusion of water"
        assert [f.name for f in draft.uploaded_files] == ["a.txt"]

    def test_string_file_entries(self, store, quiz_data):
        store.set("assignment_draft_a1_u1", json.dumps({"uploadedFiles": ["/uploads/old.png"]}))
        draft = DraftPersistence(store, "a1", "u1").load(_questions(quiz_data))
        assert draft.uploaded_files[0].url == "/uploads/old.png"
        assert draft.uploaded_files[0].to_submission_file()["name"] == "old.png"


class TestDraftFailures:
    def test_corrupt_draft_ignored(self, store, quiz_data):
        store.set("assignment_draft_a1_u1", "{not json")
        assert DraftPersistence(store, "a1", "u1").load(_questions(quiz_data)) is None

    def test_corrupt_draft_replaced_on_save(self, store, quiz_data):
        store.set("assignment_draft_a1_u1", "{not json")
        drafts = DraftPersistence(store, "a1", "u1")
        assert drafts.save(answers={2: TextAnswer(value="hi")})
        assert drafts.load(_questions(quiz_data)).answers[2].value == "hi"

    def test_unparseable_matching_answer_kept(self, store, quiz_data):
        store.set("assignment_draft_a1_u1", json.dumps({"answers": {"1": "half-typed {"}}))
        draft = DraftPersistence(store, "a1", "u1").load(_questions(quiz_data))
        assert draft.answers[1] == MatchAnswer(raw="half-typed {")

    def test_invalid_file_entries_skipped(self, store, quiz_data):
        store.set("assignment_draft_a1_u1", json.dumps({
            "answers": {"2": "kept"},
            "uploadedFiles": [{"name": 7, "url": "/u/x"}, 42, {"name": "ok.txt", "url": "/u/ok"}],
        }))
        draft = DraftPersistence(store, "a1", "u1").load(_questions(quiz_data))
        assert draft.answers[2].value == "kept"
        assert [f.name for f in draft.uploaded_files] == ["ok.txt"]

    def test_quota_exceeded_returns_false(self, quiz_data):
        drafts = DraftPersistence(MemoryStore(max_bytes=10), "a1", "u1")
        assert drafts.save(answers=_answers()) is False
        assert drafts.load(_questions(quiz_data)) is None

    def test_unanswered_questions_filled(self, store, quiz_data):
        drafts = DraftPersistence(store, "a1", "u1")
        drafts.save(answers={2: TextAnswer(value="only this")})
        answers = drafts.load(_questions(quiz_data)).answers
        assert answers[0] == ChoiceAnswer()
        assert answers[1] == MatchAnswer()


class TestDraftClear:
    def test_clear_removes_only_own_key(self, store):
        DraftPersistence(store, "a1", "u1").save(answers=_answers())
        DraftPersistence(store, "a1", "u2").save(answers=_answers())
        assert DraftPersistence(store, "a1", "u1").clear()
        assert store.keys() == ["assignment_draft_a1_u2"]


class TestJsonFileStore:
    def test_persists_across_instances(self, tmp_path, quiz_data):
        path = tmp_path / "drafts" / "storage.json"
        DraftPersistence(JsonFileStore(path), "a1", "u1").save(answers=_answers())

        draft = DraftPersistence(JsonFileStore(path), "a1", "u1").load(_questions(quiz_data))
        assert draft.answers == _answers()

    def test_clear(self, tmp_path):
        store = JsonFileStore(tmp_path / "storage.json")
        store.set("k", "v")
        store.clear("k")
        assert store.get("k") is None

    def test_unreadable_file_does_not_raise(self, tmp_path, quiz_data):
        path = tmp_path / "storage.json"
        path.write_text("garbage")
        drafts = DraftPersistence(JsonFileStore(path), "a1", "u1")
        assert drafts.load(_questions(quiz_data)) is None
        assert drafts.save(answers=_answers()) is False

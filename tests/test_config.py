from gate_prep.config import AppConfig
from gate_prep.storage.serialization import question_from_dict, user_answers_from_raw
from gate_prep.domain.answers import MultiChoiceAnswer
from gate_prep.domain.enums import QuestionKind


def test_config_defaults(monkeypatch):
    for name in ("GEMINI_API_KEY", "GEMINI_MODEL", "QUIZ_MAX_GENERATION_ATTEMPTS", "QUIZ_DATA_DIR",
                 "QUIZ_LOG_LEVEL", "QUIZ_POINTS_PER_CORRECT"):
        monkeypatch.delenv(name, raising=False)

    cfg = AppConfig.from_env()
    assert cfg.gemini.api_key == ""
    assert cfg.gemini.model == "gemini-2.0-flash"
    assert cfg.max_generation_attempts == 5
    assert cfg.data_dir == "data"
    assert cfg.points_per_correct == 10


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", " secret ")
    monkeypatch.setenv("QUIZ_MAX_GENERATION_ATTEMPTS", "3")
    monkeypatch.setenv("QUIZ_LOG_LEVEL", "debug")

    cfg = AppConfig.from_env()
    assert cfg.gemini.api_key == "secret"
    assert cfg.max_generation_attempts == 3
    assert cfg.log_level == "DEBUG"


def test_legacy_comma_joined_multi_choice_answer_is_read():
    q = question_from_dict({
        "question": "Pick linear structures",
        "type": "MSQ",
        "options": ["Stack", "Queue", "Heap", "Trie"],
        "correctAnswer": "Stack,Queue",
        "difficulty": "Easy",
    })
    assert q.kind is QuestionKind.MULTI_CHOICE
    assert q.correct_answer == MultiChoiceAnswer(frozenset({"Stack", "Queue"}))


def test_user_answers_accept_list_or_mapping():
    assert user_answers_from_raw(["A", None, "C"]) == {0: "A", 2: "C"}
    assert user_answers_from_raw({"1": "B"}) == {1: "B"}
    assert user_answers_from_raw(None) == {}

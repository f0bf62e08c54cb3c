"""System tests that need no API calls: config, models, similarity and decoders."""
import json
import logging

import pytest
from pydantic import ValidationError

from config.env_config import EnvConfig
from config.llm_config import LLMConfig
from models import (
    OptimizePromptRequest,
    PromptHistory,
    PromptIteration,
    StepEvaluation,
    TestCase,
    TestCaseOptions,
)
from utils.logging_utils import StructuredFormatter, get_session_id, reset_session_id, set_session_id
from utils.reply_decoder import (
    decode_json_array,
    decode_json_object,
    decode_judge_reply,
    decode_rewrite_reply,
    repair_json,
)
from utils.similarity import calculate_similarity, levenshtein_distance, normalize_text


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def test_env_config_empty_value_falls_back_to_default():
    config = EnvConfig(values={"AI_MODEL": "", "SAVE_STEPS": "TRUE", "MAX_ITERATIONS": "three"})

    assert config.get("AI_MODEL", "gpt-4o-mini") == "gpt-4o-mini"
    assert config.get("MISSING") == ""
    assert config.get_bool("SAVE_STEPS") is True
    assert config.get_bool("MISSING", default=True) is True
    assert config.get_number("MAX_ITERATIONS", 5) == 5
    assert config.get_number("MISSING", 0.9) == 0.9


def test_base_url_accepts_full_chat_completions_url(monkeypatch):
    monkeypatch.setattr(LLMConfig, "AI_API_URL", "https://llm.example.com/v1/chat/completions/")
    assert LLMConfig.get_base_url() == "https://llm.example.com/v1"

    monkeypatch.setattr(LLMConfig, "AI_API_URL", "https://llm.example.com/v1")
    assert LLMConfig.get_base_url() == "https://llm.example.com/v1"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

def test_structured_formatter_emits_context_and_session_id():
    token = set_session_id("session-123")
    record = logging.LogRecord(
        name="prompt_optimizer",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Judge verdict",
        args=(),
        exc_info=None,
    )
    record.is_better = True

    try:
        data = json.loads(StructuredFormatter().format(record))
        assert get_session_id() == "session-123"
    finally:
        reset_session_id(token)

    assert data["message"] == "Judge verdict"
    assert data["level"] == "INFO"
    assert data["is_better"] is True
    assert data["session_id"] == "session-123"


# ---------------------------------------------------------------------------
# Similarity
# ---------------------------------------------------------------------------

def test_normalize_text_casefolds_and_collapses_whitespace():
    assert normalize_text("  Hello \n\t WORLD  ") == "hello world"


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0


def test_similarity_of_identical_texts_is_one():
    assert calculate_similarity("", "") == 1.0
    assert calculate_similarity("Hello   World", "hello world") == 1.0


def test_similarity_against_empty_text_is_zero():
    assert calculate_similarity("abc", "") == 0.0
    assert calculate_similarity("", "   abc ") == 0.0


def test_similarity_is_symmetric_and_bounded():
    pairs = [("kitten", "sitting"), ("Paris", "paris, France"), ("a", "xyz")]
    for a, b in pairs:
        score = calculate_similarity(a, b)
        assert 0.0 <= score <= 1.0
        assert score == calculate_similarity(b, a)

    assert calculate_similarity("kitten", "sitting") == pytest.approx(1 - 3 / 7)


def test_levenshtein_triangle_inequality():
    words = ["", "flaw", "lawn", "flown", "Lawn  chair"]
    for a in words:
        for b in words:
            for c in words:
                assert levenshtein_distance(a, c) <= levenshtein_distance(a, b) + levenshtein_distance(b, c)


# ---------------------------------------------------------------------------
# JSON array decoding
# ---------------------------------------------------------------------------

def test_decode_json_array_slices_surrounding_prose():
    reply = 'Here are the test cases:\n[{"input": "hi", "expectedOutput": "hello"}]\nHope this helps!'
    result = decode_json_array(reply)

    assert result.ok
    assert result.strategy == "strict"
    assert result.value == [{"input": "hi", "expectedOutput": "hello"}]


def test_decode_json_array_repairs_common_mistakes():
    reply = "[{input: 'Book a table', expectedOutput: 'For how many?', finalOutput: {guests: 2,},},]"
    result = decode_json_array(reply)

    assert result.ok
    assert result.strategy == "repair"
    assert result.value == [
        {"input": "Book a table", "expectedOutput": "For how many?", "finalOutput": {"guests": 2}}
    ]


def test_repair_keeps_double_quoted_strings_intact():
    content = '[{"input": "I\'d like a table: for two, please",}]'
    assert json.loads(repair_json(content)) == [{"input": "I'd like a table: for two, please"}]


@pytest.mark.parametrize("reply, strategy", [
    ("", "none"),
    ("   ", "none"),
    ("[]", "strict"),
    ('{"input": "hi"}', "strict"),
    ("no json at all", "repair"),
])
def test_decode_json_array_failures(reply, strategy):
    result = decode_json_array(reply)
    assert not result.ok
    assert result.strategy == strategy
    assert result.error


def test_decode_json_object():
    assert decode_json_object(' {"destination": "Paris"} ').value == {"destination": "Paris"}

    prose = decode_json_object('Sure: {"destination": "Paris"}')
    assert not prose.ok and prose.strategy == "none"

    broken = decode_json_object("{destination: Paris}")
    assert not broken.ok and broken.strategy == "strict"


# ---------------------------------------------------------------------------
# Rewrite and judge decoding
# ---------------------------------------------------------------------------

def test_decode_rewrite_reply_follows_protocol():
    reply = """EVALUATION:
{
  "passRate": 80,
  "improvements": ["Asks for the date"],
  "issues": ["Ambiguous cities"]
}

OPTIMIZED_PROMPT:
  Ask for destination and date, then output JSON.
"""
    decoded = decode_rewrite_reply(reply, fallback_prompt="old")

    assert decoded.followed_protocol
    assert decoded.error is None
    assert decoded.optimized_prompt == "Ask for destination and date, then output JSON."
    assert decoded.evaluation == StepEvaluation(
        pass_rate=80,
        improvements=["Asks for the date"],
        issues=["Ambiguous cities"],
    )


def test_decode_rewrite_reply_without_markers_uses_raw_reply():
    decoded = decode_rewrite_reply("Just a better prompt.", fallback_prompt="old")

    assert decoded.strategy == "raw"
    assert decoded.optimized_prompt == "Just a better prompt."
    assert decoded.evaluation == StepEvaluation()


def test_decode_rewrite_reply_with_markers_reversed_uses_raw_reply():
    reply = 'OPTIMIZED_PROMPT:\nNew prompt\n\nEVALUATION:\n{"passRate": 90}'
    decoded = decode_rewrite_reply(reply, fallback_prompt="old")

    assert decoded.strategy == "raw"
    assert decoded.optimized_prompt == reply
    assert decoded.evaluation.pass_rate == 0


def test_decode_rewrite_reply_blank_keeps_fallback():
    decoded = decode_rewrite_reply("  \n", fallback_prompt="old")

    assert decoded.strategy == "empty"
    assert decoded.optimized_prompt == "old"
    assert decoded.evaluation == StepEvaluation()


@pytest.mark.parametrize("evaluation_block", [
    "{passRate: 80}",
    '{"passRate": 80,}',
])
def test_decode_rewrite_reply_unparseable_evaluation_degrades(evaluation_block):
    reply = f"EVALUATION:\n{evaluation_block}\n\nOPTIMIZED_PROMPT:\nNew prompt"
    decoded = decode_rewrite_reply(reply, fallback_prompt="old")

    assert decoded.strategy == "raw"
    assert decoded.error
    assert decoded.optimized_prompt == reply
    assert decoded.evaluation == StepEvaluation()


@pytest.mark.parametrize("evaluation_block, expected", [
    ('{"passRate": "95%"}', StepEvaluation(pass_rate=95)),
    ('{"passRate": 180}', StepEvaluation(pass_rate=100)),
    ('{"passRate": -5}', StepEvaluation(pass_rate=0)),
    ('{"passRate": "high"}', StepEvaluation(pass_rate=0)),
    ('{"passRate": 80, "improvements": "one"}', StepEvaluation(pass_rate=80, improvements=["one"])),
    (
        '{"passRate": 90, "improvements": [{"area": "dates"}, 3], "issues": [null, "vague"]}',
        StepEvaluation(pass_rate=90, improvements=['{"area": "dates"}', "3"], issues=["vague"]),
    ),
])
def test_decode_rewrite_reply_misshaped_evaluation_is_coerced(evaluation_block, expected):
    reply = f"EVALUATION:\n{evaluation_block}\n\nOPTIMIZED_PROMPT:\nNew prompt"
    decoded = decode_rewrite_reply(reply, fallback_prompt="old")

    assert decoded.strategy == "lenient"
    assert decoded.followed_protocol
    assert decoded.error
    assert decoded.optimized_prompt == "New prompt"
    assert decoded.evaluation == expected


@pytest.mark.parametrize("reply, expected", [
    ("yes", True),
    ("  YES \n", True),
    ("Yes", True),
    ("Yes.", False),
    ("yes, it is better", False),
    ("no", False),
    ("", False),
])
def test_decode_judge_reply(reply, expected):
    assert decode_judge_reply(reply) is expected


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

def test_test_case_accepts_camel_case_and_coerces_values():
    test_case = TestCase.model_validate({
        "input": "Book a flight",
        "expectedOutput": {"destination": "Paris"},
        "conversation": [{"role": "User", "content": "Book a flight"}],
        "finalOutput": None,
        "difficulty": "hard",
    })

    assert test_case.expected_output == '{"destination":"Paris"}'
    assert test_case.conversation[0].role == "user"
    assert test_case.final_output == {}
    assert test_case.to_wire()["difficulty"] == "hard"
    assert "expectedOutput" in test_case.to_wire()


def test_test_case_rejects_unknown_role():
    with pytest.raises(ValidationError):
        TestCase.model_validate({"input": "hi", "conversation": [{"role": "system", "content": "x"}]})


def test_test_case_options_treat_none_as_empty():
    options = TestCaseOptions.model_validate({"exampleTestCases": None, "testCasePrompt": None})
    assert options.example_test_cases == []
    assert options.test_case_prompt == ""


@pytest.mark.parametrize("field", ["global_prompt", "prompt_to_optimize"])
def test_request_rejects_blank_prompts(field):
    values = {"global_prompt": "Context", "prompt_to_optimize": "Prompt"}
    values[field] = "   "
    with pytest.raises(ValidationError):
        OptimizePromptRequest(**values)


def test_step_evaluation_pass_rate_bounds():
    with pytest.raises(ValidationError):
        StepEvaluation(pass_rate=101)
    with pytest.raises(ValidationError):
        StepEvaluation(pass_rate=-1)


def test_prompt_history_is_read_only_after_finalize():
    history = PromptHistory(id="s1", global_prompt="g", original_prompt="p", final_prompt="p")
    history.add_iteration(PromptIteration(iteration_number=1, prompt="p1"))

    finalized = history.finalize("p1")

    assert finalized.is_finalized
    assert finalized.final_prompt == "p1"
    assert len(finalized.iterations) == 1
    assert not history.is_finalized
    with pytest.raises(ValueError):
        finalized.add_iteration(PromptIteration(iteration_number=2, prompt="p2"))


# ---------------------------------------------------------------------------
# Prompt files
# ---------------------------------------------------------------------------

def test_read_prompt_file(tmp_path):
    from utils.prompt_files import read_prompt_file

    path = tmp_path / "global-prompt.txt"
    path.write_text("You are a booking assistant.\n", encoding="utf-8")

    assert read_prompt_file(path) == "You are a booking assistant.\n"
    with pytest.raises(FileNotFoundError):
        read_prompt_file(tmp_path / "missing.txt")


def test_load_test_case_options_accepts_single_example(tmp_path):
    from utils.prompt_files import load_test_case_options

    instructions = tmp_path / "test-case-prompt.txt"
    instructions.write_text("Cover late-night bookings.", encoding="utf-8")
    examples = tmp_path / "example-test-cases.json"
    examples.write_text(json.dumps({"input": "Table for two", "expectedOutput": "What time?"}), encoding="utf-8")

    options = load_test_case_options(instructions, examples)

    assert options.test_case_prompt == "Cover late-night bookings."
    assert [tc.input for tc in options.example_test_cases] == ["Table for two"]
    assert load_test_case_options() == TestCaseOptions()


# ---------------------------------------------------------------------------
# Metrics
# ---------------------------------------------------------------------------

def test_metrics_export_writes_summary(tmp_path):
    from utils.metrics import MetricsCollector

    collector = MetricsCollector(storage_path=tmp_path / "metrics")
    collector.increment("optimization.started")
    collector.gauge("optimization.iteration.reported_pass_rate", 60, tags={"iteration": "2"})
    collector.gauge("optimization.iteration.reported_pass_rate", 40, tags={"iteration": "1"})
    collector.histogram("llm.duration", 0.5)
    collector.histogram("llm.duration", 1.5)

    with open(collector.export(), encoding="utf-8") as f:
        exported = json.load(f)
    summary = exported["summary"]

    assert summary["counters"] == {"optimization.started": 1}
    assert summary["gauges"] == {"optimization.iteration.reported_pass_rate": 40}
    assert list(summary["rounds"]) == ["1", "2"]
    assert summary["histograms"]["llm.duration"] == {"count": 2, "min": 0.5, "max": 1.5, "avg": 1.0}
    assert len(exported["samples"]) == 5


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

def test_handle_errors_counts_and_reraises(clean_metrics):
    from utils.error_handling import ErrorSeverity, OracleError, handle_errors

    @handle_errors(severity=ErrorSeverity.HIGH)
    def failing():
        raise OracleError("down")

    @handle_errors(log_error=False, reraise=False)
    def swallowed():
        raise ValueError("bad")

    with pytest.raises(OracleError):
        failing()
    assert swallowed() is None
    assert clean_metrics.get_counter("errors") == 2

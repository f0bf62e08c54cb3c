"""Decoders for semi-structured oracle replies.

Every strategy returns a ``DecodeResult`` instead of raising, so callers can
compose them into a fixed fallback chain (strict parse, then repair, then a
default value) and each strategy can be tested on its own.
"""
import json
import math
from dataclasses import dataclass
from typing import Any, List, Optional
from pydantic import ValidationError
from models.evaluation import StepEvaluation

EVALUATION_MARKER = "EVALUATION:"
OPTIMIZED_PROMPT_MARKER = "OPTIMIZED_PROMPT:"


@dataclass(frozen=True)
class DecodeResult:
    """Outcome of one decoding strategy."""
    ok: bool
    value: Any = None
    error: Optional[str] = None
    strategy: str = ""

    @classmethod
    def success(cls, value: Any, strategy: str) -> "DecodeResult":
        return cls(ok=True, value=value, strategy=strategy)

    @classmethod
    def failure(cls, error: str, strategy: str) -> "DecodeResult":
        return cls(ok=False, error=error, strategy=strategy)


@dataclass(frozen=True)
class RewriteDecoding:
    """Parsed two-section rewrite reply."""
    optimized_prompt: str
    evaluation: StepEvaluation
    strategy: str
    error: Optional[str] = None

    @property
    def followed_protocol(self) -> bool:
        return self.strategy in ("protocol", "lenient")


# ---------------------------------------------------------------------------
# JSON array (test case batches)
# ---------------------------------------------------------------------------

def extract_array_slice(text: str) -> str:
    """Slice from the first '[' to the last ']' when both are present."""
    if "[" in text and "]" in text:
        start = text.index("[")
        end = text.rindex("]") + 1
        if start < end:
            return text[start:end]
    return text


def strict_parse(text: str) -> DecodeResult:
    """Plain json.loads."""
    try:
        return DecodeResult.success(json.loads(text), "strict")
    except json.JSONDecodeError as e:
        return DecodeResult.failure(str(e), "strict")


def repair_json(content: str) -> str:
    """
    Best-effort repair of common model JSON mistakes.

    Outside of double-quoted strings: single-quoted strings become
    double-quoted, bare object keys get quoted and trailing commas before
    a closing bracket or brace are dropped. Double-quoted strings are copied
    verbatim, so apostrophes and colons inside them survive.
    """
    out = []
    last_significant = ""
    i = 0
    n = len(content)

    while i < n:
        char = content[i]

        if char == '"':
            end = _string_end(content, i, '"')
            out.append(content[i:end + 1])
            last_significant = '"'
            i = end + 1
            continue

        if char == "'":
            end = _string_end(content, i, "'")
            body = content[i + 1:end].replace("\\'", "'")
            body = _escape_bare_double_quotes(body)
            out.append(f'"{body}"')
            last_significant = '"'
            i = end + 1
            continue

        if char == ",":
            lookahead = i + 1
            while lookahead < n and content[lookahead].isspace():
                lookahead += 1
            if lookahead < n and content[lookahead] in "}]":
                i += 1
                continue

        if char.isalpha() or char == "_":
            end = i
            while end < n and (content[end].isalnum() or content[end] == "_"):
                end += 1
            word = content[i:end]
            after = end
            while after < n and content[after].isspace():
                after += 1
            if last_significant in ("{", ",") and after < n and content[after] == ":":
                out.append(f'"{word}"')
            else:
                out.append(word)
            last_significant = word[-1]
            i = end
            continue

        out.append(char)
        if not char.isspace():
            last_significant = char
        i += 1

    return "".join(out)


def _string_end(content: str, start: int, quote: str) -> int:
    """Index of the closing quote (or the last index when unterminated)."""
    i = start + 1
    while i < len(content):
        if content[i] == "\\":
            i += 2
            continue
        if content[i] == quote:
            return i
        i += 1
    return len(content) - 1


def _escape_bare_double_quotes(body: str) -> str:
    out = []
    escaped = False
    for char in body:
        if char == '"' and not escaped:
            out.append('\\"')
        else:
            out.append(char)
        escaped = char == "\\" and not escaped
    return "".join(out)


def repair_parse(text: str) -> DecodeResult:
    """json.loads after repair_json."""
    try:
        return DecodeResult.success(json.loads(repair_json(text)), "repair")
    except json.JSONDecodeError as e:
        return DecodeResult.failure(str(e), "repair")


def decode_json_array(text: str) -> DecodeResult:
    """
    Reduce a reply to a non-empty JSON array.

    Chain: slice the outermost brackets, strict parse, repair parse. Only a
    non-empty list counts as success.
    """
    if not text or not text.strip():
        return DecodeResult.failure("empty reply", "none")

    candidate = extract_array_slice(text)
    result = strict_parse(candidate)
    if not result.ok:
        result = repair_parse(candidate)
        if not result.ok:
            return result

    if not isinstance(result.value, list):
        return DecodeResult.failure(f"expected a JSON array, got {type(result.value).__name__}", result.strategy)
    if not result.value:
        return DecodeResult.failure("JSON array is empty", result.strategy)
    return result


def decode_json_object(text: str) -> DecodeResult:
    """Parse a reply that is exactly one JSON object (after trimming)."""
    stripped = (text or "").strip()
    if not (stripped.startswith("{") and stripped.endswith("}")):
        return DecodeResult.failure("reply is not a JSON object", "none")

    result = strict_parse(stripped)
    if result.ok and not isinstance(result.value, dict):
        return DecodeResult.failure("reply is not a JSON object", "strict")
    return result


# ---------------------------------------------------------------------------
# Rewrite protocol
# ---------------------------------------------------------------------------

def _coerce_pass_rate(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, str):
        try:
            value = float(value.strip().rstrip("%").strip())
        except ValueError:
            return 0.0
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return 0.0
    return min(max(float(value), 0.0), 100.0)


def _coerce_text_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, list):
        return [str(value)]
    items = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, str):
            items.append(item)
        elif isinstance(item, (dict, list)):
            items.append(json.dumps(item, ensure_ascii=False))
        else:
            items.append(str(item))
    return items


def coerce_step_evaluation(data: Any) -> StepEvaluation:
    """
    Build a StepEvaluation from a loosely shaped evaluation object.

    Pass rates given as strings ("95%") are parsed and clamped to 0-100,
    list entries that are not strings are stringified and a lone string
    becomes a one-item list. Anything unusable counts as zero or empty.
    """
    if not isinstance(data, dict):
        return StepEvaluation()
    raw_rate = data.get("passRate", data.get("pass_rate"))
    return StepEvaluation(
        pass_rate=_coerce_pass_rate(raw_rate),
        improvements=_coerce_text_list(data.get("improvements")),
        issues=_coerce_text_list(data.get("issues")),
    )


def decode_rewrite_reply(reply: str, fallback_prompt: str) -> RewriteDecoding:
    """
    Parse the EVALUATION / OPTIMIZED_PROMPT reply of the rewriter.

    The evaluation is the brace-delimited block between the two markers,
    parsed strictly (no repair). Missing markers or an evaluation block that
    is not JSON degrade to a zeroed evaluation with the raw reply as the
    prompt. Valid JSON of the wrong shape keeps the extracted prompt and is
    coerced by coerce_step_evaluation (strategy "lenient", error set). A
    blank reply keeps ``fallback_prompt``.
    """
    if not reply or not reply.strip():
        return RewriteDecoding(
            optimized_prompt=fallback_prompt,
            evaluation=StepEvaluation(),
            strategy="empty",
        )

    eval_index = reply.find(EVALUATION_MARKER)
    prompt_index = reply.find(OPTIMIZED_PROMPT_MARKER)
    if eval_index == -1 or prompt_index == -1 or prompt_index < eval_index:
        return RewriteDecoding(
            optimized_prompt=reply,
            evaluation=StepEvaluation(),
            strategy="raw",
        )

    between = reply[eval_index + len(EVALUATION_MARKER):prompt_index]
    optimized_prompt = reply[prompt_index + len(OPTIMIZED_PROMPT_MARKER):].strip()

    evaluation = StepEvaluation()
    start = between.find("{")
    end = between.rfind("}")
    if start != -1 and end > start:
        try:
            data = json.loads(between[start:end + 1])
        except json.JSONDecodeError as e:
            return RewriteDecoding(
                optimized_prompt=reply,
                evaluation=StepEvaluation(),
                strategy="raw",
                error=str(e),
            )
        try:
            evaluation = StepEvaluation.model_validate(data)
        except ValidationError as e:
            return RewriteDecoding(
                optimized_prompt=optimized_prompt,
                evaluation=coerce_step_evaluation(data),
                strategy="lenient",
                error=str(e),
            )

    return RewriteDecoding(
        optimized_prompt=optimized_prompt,
        evaluation=evaluation,
        strategy="protocol",
    )


# ---------------------------------------------------------------------------
# Judge
# ---------------------------------------------------------------------------

def decode_judge_reply(reply: str) -> bool:
    """True only for a bare "yes" (any casing, surrounding whitespace ignored)."""
    return (reply or "").strip().lower() == "yes"

"""Parameter extractor - pulls structured parameters out of a user message."""
from typing import Any, Dict
from utils.llm_client import CompletionOracle
from utils.logging_utils import setup_logging
from utils.reply_decoder import decode_json_object

logger = setup_logging()

EXTRACTION_INSTRUCTIONS = """Extract parameters from the user input and return a JSON object.
If you can't extract all parameters, return what you can and indicate what's missing."""


class ParameterExtractor:
    """Single-shot extraction of a parameters object."""

    def __init__(self, oracle: CompletionOracle):
        self.oracle = oracle

    def extract_parameters(
        self,
        global_prompt: str,
        extraction_prompt: str,
        user_input: str
    ) -> Dict[str, Any]:
        """
        Extract parameters from user input.

        Returns:
            The reply parsed as a JSON object, or {} when the reply is not one
        """
        system_prompt = f"{global_prompt}\n\n{extraction_prompt}\n\n{EXTRACTION_INSTRUCTIONS}"
        response = self.oracle.get_completion(system_prompt, user_input)

        decoded = decode_json_object(response)
        if decoded.ok:
            logger.info("Extracted parameters", parameter_count=len(decoded.value))
            return decoded.value

        if decoded.strategy == "strict":
            logger.warning(f"Failed to parse response as JSON: {decoded.error}")
        return {}

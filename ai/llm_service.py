"""
LLM Service - Model Gateway over the Gemini API

This service is the single point of contact with the language model:
- ``send_turn`` sends the full conversation window together with a
  persona's tool declarations and instructions, and returns the response
  partitioned into function calls and text (a ModelTurn)
- ``call_llm`` is a plain one-shot text call, used for session titles
- Langfuse tracing and token usage tracking when enabled

Every failure surfaces as ModelGatewayError. There is no automatic retry:
a failed turn ends the stream and the user decides whether to try again.
"""

import time
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from google.generativeai.types import GenerationConfig, HarmCategory, HarmBlockThreshold

from config import (
    GOOGLE_API_KEY,
    GEMINI_MODEL,
    TEMPERATURE,
    MAX_TOKENS,
    TOP_P,
    TOP_K,
)
from core.cancellation import CancellationToken
from core.errors import ModelGatewayError
from core.models import ModelTurn, ToolCall
from .observability import traced, record_generation

logger = logging.getLogger(__name__)

# ============================================================================
# INITIALIZATION
# ============================================================================

_configured = False


def _ensure_configured() -> None:
    """Configure the Gemini client on first use so imports never need a key."""
    global _configured
    if _configured:
        return
    if not GOOGLE_API_KEY:
        raise ModelGatewayError("GOOGLE_API_KEY is not set")
    genai.configure(api_key=GOOGLE_API_KEY)
    _configured = True


# ============================================================================
# SAFETY SETTINGS
# ============================================================================

SAFETY_SETTINGS = {
    HarmCategory.HARM_CATEGORY_HARASSMENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_HATE_SPEECH: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
    HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT: HarmBlockThreshold.BLOCK_MEDIUM_AND_ABOVE,
}


# ============================================================================
# GENERATION CONFIGURATION
# ============================================================================

def get_generation_config(
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> GenerationConfig:
    """
    Create a generation configuration for Gemini API calls.

    Args:
        temperature: Sampling temperature (0.0 - 2.0). Defaults to config value.
        max_tokens: Maximum tokens to generate. Defaults to config value.

    Returns:
        GenerationConfig object
    """
    return GenerationConfig(
        temperature=TEMPERATURE if temperature is None else temperature,
        max_output_tokens=max_tokens or MAX_TOKENS,
        top_p=TOP_P,
        top_k=TOP_K,
    )


# ============================================================================
# RESPONSE PARSING
# ============================================================================

def _to_plain(value: Any) -> Any:
    """Convert proto map/list composites (function call args) into plain dicts and lists."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return value
    if hasattr(value, "items"):
        return {str(k): _to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)) or hasattr(value, "__iter__"):
        return [_to_plain(v) for v in value]
    return value


def parse_response(response: Any) -> ModelTurn:
    """
    Partition a Gemini response into function calls and text parts.

    Only the first candidate is read. A response without candidates or
    parts yields an empty ModelTurn. Parts that are neither a named
    function call nor text are still counted in ``part_count``; deciding
    what either case means is up to the caller.
    """
    function_calls: List[ToolCall] = []
    texts: List[str] = []

    candidates = getattr(response, "candidates", None)
    if not candidates:
        logger.warning("⚠️  Gemini returned no candidates")
        return ModelTurn()

    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) if content is not None else None
    if not parts:
        logger.warning("⚠️  Gemini returned a candidate without parts")
        return ModelTurn()

    for part in parts:
        func_call = getattr(part, "function_call", None)
        if func_call and getattr(func_call, "name", None):
            function_calls.append(ToolCall(
                name=func_call.name,
                args=_to_plain(func_call.args) or {},
            ))
            continue

        text = getattr(part, "text", None)
        if text:
            texts.append(text)

    return ModelTurn.from_parts(function_calls, texts, part_count=len(parts))


def _usage_of(response: Any) -> Optional[Dict[str, int]]:
    usage = getattr(response, "usage_metadata", None)
    if usage is None:
        return None
    return {
        "input": usage.prompt_token_count,
        "output": usage.candidates_token_count,
        "total": usage.total_token_count,
    }


# ============================================================================
# MODEL GATEWAY
# ============================================================================

@traced("send_turn", as_type="generation")
def send_turn(
    window: List[Dict[str, Any]],
    tool_schema: List[Dict[str, Any]],
    persona_instructions: str,
    cancel_token: Optional[CancellationToken] = None,
    model_name: Optional[str] = None,
    temperature: Optional[float] = None,
) -> ModelTurn:
    """
    Send the conversation window to the model and return its next turn.

    Args:
        window: Ordered Gemini contents (user/model/function messages)
        tool_schema: Function declarations of the persona's tools
        persona_instructions: System instruction of the persona
        cancel_token: Checked before the call and again once it returns
        model_name: Model to use (overrides default)
        temperature: Sampling temperature (overrides default)

    Returns:
        ModelTurn with function calls, texts and the control signal

    Raises:
        ModelGatewayError: On missing configuration or any API failure
        OperationCancelled: If the client disconnected meanwhile
    """
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()
    if not window:
        raise ModelGatewayError("Cannot send an empty conversation window")

    _ensure_configured()
    model_name = model_name or GEMINI_MODEL

    try:
        model = genai.GenerativeModel(
            model_name=model_name,
            generation_config=get_generation_config(temperature),
            safety_settings=SAFETY_SETTINGS,
            system_instruction=persona_instructions,
            tools=[{"function_declarations": tool_schema}] if tool_schema else None,
        )

        start_time = time.time()
        response = model.generate_content(window)
        latency = time.time() - start_time
    except Exception as e:
        logger.error(f"❌ Gemini call failed: {type(e).__name__}: {e}")
        raise ModelGatewayError(f"Model call failed: {e}") from e

    # A response that arrives after the disconnect is discarded
    if cancel_token is not None:
        cancel_token.raise_if_cancelled()

    turn = parse_response(response)

    usage = _usage_of(response)
    record_generation(model_name, usage, {"messages": len(window), "tools": len(tool_schema or [])})
    logger.debug(
        f"🔧 Model turn: {len(turn.function_calls)} function calls, "
        f"{len(turn.texts)} text parts, ⏱️  {latency:.2f}s"
    )
    return turn


@traced("call_llm", as_type="generation")
def call_llm(
    prompt: str,
    system_instruction: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    model_name: Optional[str] = None,
) -> str:
    """
    Make a basic one-shot LLM call without tools.

    Args:
        prompt: The user prompt/query
        system_instruction: System prompt to set agent behavior
        temperature: Sampling temperature (overrides default)
        max_tokens: Max output tokens (overrides default)
        model_name: Model to use (overrides default)

    Returns:
        Generated text response

    Raises:
        ModelGatewayError: If the API call fails or returns no text
    """
    _ensure_configured()
    model_name = model_name or GEMINI_MODEL

    try:
        model = genai.GenerativeModel(
            model_name=model_name,
            generation_config=get_generation_config(temperature, max_tokens),
            safety_settings=SAFETY_SETTINGS,
            system_instruction=system_instruction,
        )
        response = model.generate_content(prompt)
    except Exception as e:
        logger.error(f"❌ call_llm failed: {type(e).__name__}: {e}")
        raise ModelGatewayError(f"Model call failed: {e}") from e

    turn = parse_response(response)
    if not turn.has_text:
        raise ModelGatewayError("No text returned from Gemini API")

    record_generation(model_name, _usage_of(response))
    return turn.text


# ============================================================================
# HEALTH CHECK
# ============================================================================

def health_check() -> Dict[str, Any]:
    """
    Report gateway configuration without spending a model call.

    Returns:
        Dict with service status information
    """
    from .observability import tracing_enabled

    return {
        "gemini_api": "✅ configured" if GOOGLE_API_KEY else "❌ missing API key",
        "langfuse": "✅ enabled" if tracing_enabled() else "➖ disabled",
        "model": GEMINI_MODEL,
    }

import enum
import json
import logging
import re
from typing import Any, Dict, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI
from langfuse import get_client, observe
from openai import APITimeoutError, RateLimitError

from plancache.config import (
    LANGFUSE_ENABLED, LLM_API_KEY, LLM_MODEL as OVERRIDE_MODEL, LLM_PROVIDER, MODEL_CONFIG, OLLAMA_URL,
)

logger = logging.getLogger(__name__)

langfuse_client = get_client() if LANGFUSE_ENABLED else None

# Determine Model Name based on Provider
# If LLM_MODEL is set in env, it overrides everything.
DEFAULT_MODELS = {
    "ollama": "gpt-oss:120b-cloud",
    "openrouter": "google/gemini-2.0-flash-001",
    "openai": "gpt-4o",
}

MODEL_NAME = OVERRIDE_MODEL if OVERRIDE_MODEL else DEFAULT_MODELS.get(LLM_PROVIDER, "gpt-3.5-turbo")

# Base URLs for paid providers
PROVIDER_URLS = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": None  # Uses default OpenAI URL
}

REQUEST_TIMEOUT_SECONDS = MODEL_CONFIG["TIMEOUT_MS"] / 1000


class ModelErrorKind(str, enum.Enum):
    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    TIMEOUT = "timeout"
    FAILURE = "failure"


class ModelCallError(Exception):
    """Failure at the model boundary, tagged with a structured kind."""

    def __init__(self, message: str, kind: ModelErrorKind = ModelErrorKind.FAILURE):
        super().__init__(message)
        self.kind = kind


def classify_model_exception(exc: BaseException) -> ModelErrorKind:
    if isinstance(exc, ModelCallError):
        return exc.kind
    if isinstance(exc, (httpx.TimeoutException, APITimeoutError, TimeoutError)):
        return ModelErrorKind.TIMEOUT
    if getattr(exc, "code", None) == "insufficient_quota":
        return ModelErrorKind.QUOTA
    if isinstance(exc, RateLimitError) or getattr(exc, "status_code", None) == 429:
        return ModelErrorKind.RATE_LIMIT
    return ModelErrorKind.FAILURE


def get_llm(temperature: float = 0.7, max_tokens: int = 2000, json_mode: bool = False):
    """
    Factory function to get a configured LangChain Chat Model instance.
    Supports: Ollama (Local), OpenRouter, OpenAI
    """

    # 1. Ollama (Local)
    if LLM_PROVIDER == "ollama":
        return ChatOllama(
            base_url=OLLAMA_URL,
            model=MODEL_NAME,
            temperature=temperature,
            num_predict=max_tokens,
            format="json" if json_mode else "",
            client_kwargs={"timeout": REQUEST_TIMEOUT_SECONDS},
        )

    # 2. OpenAI Compatible (OpenRouter, OpenAI)
    elif LLM_PROVIDER in ["openrouter", "openai"]:
        if not LLM_API_KEY:
            logger.error(f"[LLM Service] Missing API Key for provider {LLM_PROVIDER}")

        model_kwargs = {}
        if json_mode:
            model_kwargs["response_format"] = {"type": "json_object"}

        return ChatOpenAI(
            model=MODEL_NAME,
            api_key=LLM_API_KEY,
            base_url=PROVIDER_URLS.get(LLM_PROVIDER),
            temperature=temperature,
            max_tokens=max_tokens,
            model_kwargs=model_kwargs,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )

    # 3. Fallback / Unknown
    else:
        logger.warning(f"[LLM Service] Unknown provider '{LLM_PROVIDER}'. Defaulting to Ollama.")
        return ChatOllama(
            base_url=OLLAMA_URL,
            model=MODEL_NAME,
            temperature=temperature,
            num_predict=max_tokens,
            client_kwargs={"timeout": REQUEST_TIMEOUT_SECONDS},
        )


@observe(name="call_llm_json", as_type="generation")
def call_llm_json(
    system_prompt: str,
    user_prompt: str,
    temperature: float = MODEL_CONFIG["TEMPERATURE"],
    max_tokens: int = MODEL_CONFIG["MAX_TOKENS"]
) -> Dict[str, Any]:
    """
    Executes a structured JSON request.
    Raises ModelCallError (with its kind set) on any provider failure or unparseable reply.
    """
    logger.info(f"[LLM Service] Calling Model (JSON): {MODEL_NAME}")

    try:
        llm = get_llm(temperature=temperature, max_tokens=max_tokens, json_mode=True)
        response = llm.invoke([
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt)
        ])
    except Exception as e:
        kind = classify_model_exception(e)
        logger.error(f"[LLM Service] JSON Call Error ({kind.value}): {e}")
        raise ModelCallError(str(e), kind) from e

    _log_token_usage(response.response_metadata, temperature, max_tokens)

    if not response.content:
        raise ModelCallError("Empty content received from model")

    parsed = _parse_json_from_text(response.content)
    if parsed is None:
        raise ModelCallError("Model reply is not valid JSON")
    return parsed


def _log_token_usage(
    metadata: Optional[Dict[str, Any]],
    temperature: float = MODEL_CONFIG["TEMPERATURE"],
    max_tokens: int = MODEL_CONFIG["MAX_TOKENS"]
) -> None:
    if not metadata:
        return

    # Ollama reports prompt_eval_count / eval_count directly
    input_tokens = metadata.get("prompt_eval_count") or 0
    output_tokens = metadata.get("eval_count") or 0

    # OpenAI-compatible providers nest it under token_usage / usage
    if input_tokens == 0 and output_tokens == 0:
        usage = metadata.get("token_usage") or metadata.get("usage") or {}
        input_tokens = usage.get("prompt_tokens") or usage.get("input_tokens") or 0
        output_tokens = usage.get("completion_tokens") or usage.get("output_tokens") or 0

    total_tokens = input_tokens + output_tokens
    logger.info(f"[LLM Stats] Input: {input_tokens}, Output: {output_tokens}, Total: {total_tokens}")

    if langfuse_client is None:
        return
    try:
        langfuse_client.update_current_generation(
            model=MODEL_NAME,
            usage_details={"input": input_tokens, "output": output_tokens, "total": total_tokens},
            model_parameters={"temperature": temperature, "max_tokens": max_tokens},
            metadata={"mode": "json"},
        )
    except Exception as e:
        logger.warning(f"[Langfuse] Failed to update generation: {e}")


def _parse_json_from_text(text: str) -> Optional[Dict]:
    """Tolerant JSON parser: strips markdown fences and repairs trailing commas."""
    cleaned_text = text.strip()

    # 1. Strip Markdown Code Blocks
    if "```json" in cleaned_text:
        parts = cleaned_text.split("```json")
        if len(parts) > 1:
            cleaned_text = parts[1].split("```")[0].strip()
    elif "```" in cleaned_text:
        cleaned_text = cleaned_text.replace("```", "").strip()

    start_idx = cleaned_text.find('{')
    end_idx = cleaned_text.rfind('}')

    if start_idx != -1 and end_idx != -1:
        cleaned_text = cleaned_text[start_idx:end_idx + 1]

    try:
        return json.loads(cleaned_text)
    except json.JSONDecodeError as e:
        logger.warning(f"[LLM Service] Initial JSON parse failed: {e}. Attempting repair...")

    repaired_text = cleaned_text
    repaired_text = re.sub(r',\s*}', '}', repaired_text)
    repaired_text = re.sub(r',\s*]', ']', repaired_text)
    # Single-quoted keys
    repaired_text = re.sub(r"(?<=[{,\[])\s*'([^']+)'\s*:", r'"\1":', repaired_text)

    try:
        return json.loads(repaired_text)
    except json.JSONDecodeError as e:
        logger.error(f"[LLM Service] JSON repair failed: {e}")
        return None

"""
Gemini text model used by the generation engine.
"""

from google import genai
from google.genai import types

from itinerary_pipeline.config import EngineConfig, config
from itinerary_pipeline.utils.error_handling import (
    GenerationFailure,
    classify_error,
    is_retryable,
    with_retry,
)
from itinerary_pipeline.utils.logging import AgentLogger, get_logger

logger = get_logger(__name__)

JSON_SYSTEM_INSTRUCTION = (
    "You are a travel itinerary generator for Baguio City, Philippines. "
    "You respond with a single valid JSON object and nothing else."
)


class GeminiTextModel:
    """
    Text generation over the Gemini API in JSON response mode.

    Transient failures (rate limits, unavailability, timeouts) are retried
    with back-off; everything else surfaces as GenerationFailure.
    """

    def __init__(
        self,
        engine_config: EngineConfig | None = None,
        client: genai.Client | None = None,
        api_key: str | None = None,
    ):
        """
        Initialize the model.

        Args:
            engine_config: Engine settings (defaults to the global configuration)
            client: Pre-built Gemini client, mainly for tests
            api_key: API key used to build a client when none is given
        """
        self.config = engine_config or config.engine
        key = api_key if api_key is not None else config.api.gemini_api_key
        if client is None and key:
            client = genai.Client(api_key=key)
        self.client = client
        self.logger = AgentLogger("gemini-text-model")

    @property
    def model_name(self) -> str:
        return self.config.model

    def is_configured(self) -> bool:
        """Return True if a client is available for generation."""
        return self.client is not None

    async def generate(self, prompt: str, *, temperature: float) -> str:
        """
        Generate a JSON text response for a prompt.

        Args:
            prompt: Full prompt text
            temperature: Sampling temperature for this call

        Returns:
            The model's text output

        Raises:
            GenerationFailure: If no client is configured, the response is
                empty, or the call fails after retries
        """
        if self.client is None:
            raise GenerationFailure("GEMINI_API_KEY is not configured", retryable=False)

        generation_config = types.GenerateContentConfig(
            temperature=temperature,
            top_p=0.8,
            top_k=1,
            candidate_count=1,
            max_output_tokens=self.config.max_output_tokens,
            response_mime_type="application/json",
            system_instruction=JSON_SYSTEM_INSTRUCTION,
        )
        contents = [
            types.Content(role="user", parts=[types.Part.from_text(text=prompt)])
        ]

        self.logger.log_llm_input(self.config.model, prompt, temperature)

        async def call() -> str:
            response = await self.client.aio.models.generate_content(
                model=self.config.model,
                contents=contents,
                config=generation_config,
            )
            text = response.text
            self.logger.log_llm_output(self.config.model, text)
            if not text or not text.strip():
                raise GenerationFailure("Empty response from Gemini", retryable=True)
            return text

        try:
            return await with_retry(
                call,
                max_attempts=self.config.model_retries + 1,
                base_delay_ms=self.config.retry_base_delay_ms,
                retry_if=is_retryable,
            )
        except GenerationFailure:
            raise
        except Exception as e:
            details = classify_error(e)
            logger.warning(
                f"Gemini call failed ({details.type}, retryable={details.retryable}): {e!s}"
            )
            raise GenerationFailure(
                f"Gemini {details.type} error",
                retryable=details.retryable,
                original_error=e,
            ) from e

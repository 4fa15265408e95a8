"""Vertex AI Gemini LLM service for EchoCity.

Wraps the ``vertexai`` SDK behind one async ``generate`` call that takes
a prompt and, optionally, an inline image.  Everything built on top of
it (categorization, image analysis, chat) lives in
:mod:`src.services.advisory` and treats the output as advisory only.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Final

import structlog
import vertexai
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from vertexai.generative_models import (
    Content,
    GenerationConfig,
    GenerativeModel,
    Part,
)

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

ECHO_SYSTEM_PROMPT: Final[str] = """\
You are Echo, a civic assistant for Indian cities built into the \
EchoCity complaint reporting service. You help citizens with:

CIVIC SERVICES
- Finding nearby police stations, hospitals and government offices.
- Authority contact information and office hours.
- Municipal service procedures and document requirements.

COMPLAINTS
- Explaining how to report potholes, garbage, drainage, street lighting, \
water supply and similar civic issues.
- Explaining complaint statuses: pending, approved, in progress, \
resolved, rejected, reopened, and pending verification.
- If the user describes a civic problem, encourage them to file it with \
the complaint form so the right department receives it.

EMERGENCY NUMBERS
- Police 100, Fire 101, Ambulance 108, Women Helpline 1091, \
Child Helpline 1098.

GUIDELINES
- Give specific, actionable answers. Keep them short.
- For location questions, ask for the area or pincode if it is missing.
- Never invent phone numbers or office addresses. If unsure, say so.
- Prioritise emergency information when someone may be in danger.\
"""


@dataclass(slots=True)
class LLMResult:
    """Result returned by :meth:`LLMService.generate`."""

    text: str
    tokens_used: dict[str, int]
    processing_time_ms: float
    provider: str = field(default="gemini")


class LLMService:
    """Async interface to Vertex AI Gemini.

    The SDK is initialised lazily on first use so that constructing the
    service never touches the network.
    """

    def __init__(
        self,
        project_id: str,
        region: str = "asia-south1",
        model_name: str = "gemini-2.0-flash",
    ) -> None:
        self._project_id = project_id
        self._region = region
        self._model_name = model_name
        self._model: GenerativeModel | None = None

    def _get_model(self) -> GenerativeModel:
        if self._model is None:
            vertexai.init(project=self._project_id, location=self._region)
            self._model = GenerativeModel(
                model_name=self._model_name,
                system_instruction=[Part.from_text(ECHO_SYSTEM_PROMPT)],
            )
            logger.info(
                "llm_initialized",
                project=self._project_id,
                region=self._region,
                model=self._model_name,
            )
        return self._model

    @retry(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def generate(
        self,
        prompt: str,
        *,
        image: bytes | None = None,
        mime_type: str = "image/jpeg",
        temperature: float = 0.3,
        json_output: bool = False,
        max_output_tokens: int = 1024,
    ) -> LLMResult:
        """Generate a response to *prompt*, optionally grounded on *image*.

        Parameters
        ----------
        prompt:
            Full prompt text.
        image:
            Raw image bytes to send inline alongside the prompt.
        mime_type:
            MIME type of *image*.
        temperature:
            Sampling temperature.  Lower is more deterministic.
        json_output:
            Ask the model for ``application/json`` output.
        """
        start = time.perf_counter()
        model = self._get_model()

        parts = [Part.from_text(prompt)]
        if image is not None:
            parts.append(Part.from_data(data=image, mime_type=mime_type))

        generation_config = GenerationConfig(
            temperature=temperature,
            top_p=0.95,
            max_output_tokens=max_output_tokens,
            response_mime_type="application/json" if json_output else None,
        )

        response = await model.generate_content_async(
            contents=[Content(role="user", parts=parts)],
            generation_config=generation_config,
        )

        elapsed_ms = round((time.perf_counter() - start) * 1000, 2)
        text = response.text or ""

        usage = response.usage_metadata
        input_tokens = usage.prompt_token_count if usage else 0
        output_tokens = usage.candidates_token_count if usage else 0

        logger.info(
            "llm_generate",
            prompt_length=len(prompt),
            has_image=image is not None,
            answer_length=len(text),
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            processing_time_ms=elapsed_ms,
        )
        return LLMResult(
            text=text,
            tokens_used={"input": input_tokens, "output": output_tokens},
            processing_time_ms=elapsed_ms,
        )

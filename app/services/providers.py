"""
LLM provider adapters for quiz generation

Every provider family exposes the same call, generate_raw(topic, model),
and returns the raw completion text. Models are routed to a family by a
static name-prefix table; unknown names fall back to the default family.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Type

import anthropic
import google.generativeai as genai
import openai
from google.api_core import exceptions as google_exceptions

from app.config import settings
from app.exceptions import (
    EmptyProviderResponseError,
    ProviderConfigurationError,
    ProviderRequestError,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert quiz creator. Generate educational multiple-choice "
    "questions that are accurate and engaging."
)


def build_quiz_prompt(topic: str, num_questions: int = 5) -> str:
    """
    Create the quiz prompt

    The line markers here (Qn:, A) to D), Correct:, Explanation:) are the
    ones quiz_parser reads back; change both together.
    """
    return f"""Create {num_questions} multiple-choice questions about "{topic}".

Format each question exactly like this example:

Q1: What is the primary function of X?
A) Option A
B) Option B
C) Option C
D) Option D
Correct: A
Explanation: Brief explanation of why A is correct

Requirements:
- Each question should have exactly 4 options (A, B, C, D)
- Only one correct answer per question
- Make distractors plausible but clearly wrong
- Include a brief explanation for each correct answer
- Questions should test different aspects of the topic
- Use clear, concise language

Generate the quiz now:"""


class QuizProvider(ABC):
    """Base class for one LLM provider family"""

    family: str = ""
    display_name: str = ""
    # SDK exceptions translated into ProviderRequestError
    request_errors: Tuple[Type[BaseException], ...] = ()

    @property
    @abstractmethod
    def api_key(self) -> Optional[str]:
        """Credential for this family, None when not configured"""

    @abstractmethod
    def _complete(self, system_prompt: str, user_prompt: str, model: str) -> Optional[str]:
        """Run one completion and return its text"""

    def generate_raw(self, topic: str, model: str) -> str:
        """
        Ask the provider for a five-question quiz on topic

        Raises:
            ProviderConfigurationError: no API key for this family
            ProviderRequestError: transport, timeout or API error
            EmptyProviderResponseError: the provider returned no text
        """
        if not self.api_key:
            logger.error(f"{self.display_name} API key not configured")
            raise ProviderConfigurationError(
                f"{self.display_name} is not configured on this server. Please try again later "
                f"or choose another model."
            )

        prompt = build_quiz_prompt(topic, settings.QUIZ_QUESTION_COUNT)
        logger.info(f"Requesting quiz from {self.display_name} (model={model}, topic={topic!r})")

        try:
            text = self._complete(SYSTEM_PROMPT, prompt, model)
        except self.request_errors as e:
            logger.error(f"{self.display_name} request failed: {str(e)}")
            raise ProviderRequestError() from e

        if not text or not text.strip():
            logger.error(f"{self.display_name} returned an empty response for model {model}")
            raise EmptyProviderResponseError("No response from AI service. Please try again later.")

        return text


class OpenAIProvider(QuizProvider):
    family = "openai"
    display_name = "OpenAI"
    request_errors = (openai.OpenAIError,)

    @property
    def api_key(self) -> Optional[str]:
        return settings.OPENAI_API_KEY

    def _complete(self, system_prompt: str, user_prompt: str, model: str) -> Optional[str]:
        client = openai.OpenAI(
            api_key=self.api_key,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )
        completion = client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=settings.LLM_TEMPERATURE,
            max_tokens=settings.LLM_MAX_TOKENS,
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content


class AnthropicProvider(QuizProvider):
    family = "anthropic"
    display_name = "Anthropic"
    request_errors = (anthropic.AnthropicError,)

    @property
    def api_key(self) -> Optional[str]:
        return settings.ANTHROPIC_API_KEY

    def _complete(self, system_prompt: str, user_prompt: str, model: str) -> Optional[str]:
        client = anthropic.Anthropic(
            api_key=self.api_key,
            timeout=settings.LLM_TIMEOUT_SECONDS,
            max_retries=0,
        )
        message = client.messages.create(
            model=model,
            max_tokens=settings.LLM_MAX_TOKENS,
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
            temperature=settings.LLM_TEMPERATURE,
        )
        return "".join(block.text for block in message.content if block.type == "text")


class GeminiProvider(QuizProvider):
    family = "gemini"
    display_name = "Gemini"
    # response.text raises ValueError when the candidate was blocked
    request_errors = (google_exceptions.GoogleAPIError, ValueError)

    @property
    def api_key(self) -> Optional[str]:
        return settings.GEMINI_API_KEY

    def _complete(self, system_prompt: str, user_prompt: str, model: str) -> Optional[str]:
        genai.configure(api_key=self.api_key)
        generative_model = genai.GenerativeModel(model, system_instruction=system_prompt)
        response = generative_model.generate_content(
            user_prompt,
            generation_config=genai.types.GenerationConfig(
                temperature=settings.LLM_TEMPERATURE,
                max_output_tokens=settings.LLM_MAX_TOKENS,
            ),
            request_options={"timeout": settings.LLM_TIMEOUT_SECONDS},
        )
        return response.text


# Model name prefix -> provider family. First match wins.
MODEL_ROUTES: Tuple[Tuple[str, str], ...] = (
    ("gpt-", "openai"),
    ("o1", "openai"),
    ("o3", "openai"),
    ("claude-", "anthropic"),
    ("gemini-", "gemini"),
)
DEFAULT_FAMILY = "openai"

PROVIDERS: Dict[str, QuizProvider] = {
    provider.family: provider
    for provider in (OpenAIProvider(), AnthropicProvider(), GeminiProvider())
}


def resolve_family(model: str) -> str:
    """Map a model name to its provider family"""
    for prefix, family in MODEL_ROUTES:
        if model.startswith(prefix):
            return family
    return DEFAULT_FAMILY


def get_provider(model: str) -> QuizProvider:
    return PROVIDERS[resolve_family(model)]


def generate_raw(topic: str, model: str) -> str:
    """Generate raw quiz text for topic with the provider that serves model"""
    return get_provider(model).generate_raw(topic, model)

import json
import re
import requests
from typing import List, Optional, Tuple

from upsc_pyq.config import Settings, get_settings
from upsc_pyq.core.exceptions import AIIntegrationError, AIResponseParseError
from upsc_pyq.core.logging_config import logger
from upsc_pyq.services.prompts import PromptTemplates

SCORE_PATTERN = re.compile(r"Score:\s*(\d+\.?\d*)")


def extract_json(text: str):
    """Parse JSON from an LLM reply that may wrap it in prose or code fences."""
    if not text or not isinstance(text, str):
        return None
    text = text.strip()
    if text.startswith("{") or text.startswith("["):
        try:
            return json.loads(text)
        except ValueError:
            pass

    first = min(
        [idx for idx in (text.find("{"), text.find("[")) if idx != -1],
        default=-1,
    )
    if first == -1:
        return None

    closing = "}" if text[first] == "{" else "]"
    last = text.rfind(closing)
    if last <= first:
        return None

    try:
        return json.loads(text[first:last + 1])
    except ValueError:
        return None


def parse_score(text: str) -> float:
    """Numeric score from a 'Score: <n>' line; 0 when there is none."""
    match = SCORE_PATTERN.search(text or "")
    if not match:
        return 0.0
    try:
        return float(match.group(1))
    except ValueError:
        return 0.0


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class AIClient:
    """Chat-completion client that tries each configured provider in order."""

    def __init__(self, settings: Settings = None, providers: Optional[List[str]] = None):
        self.settings = settings or get_settings()
        self.providers = [p.lower() for p in (providers or self.settings.AI_PROVIDER_PRIORITY)]
        self.session = requests.Session()

    def generate_content(self, prompt: str, system_prompt: Optional[str] = None, max_tokens: int = 1024) -> str:
        """Return the text of the first provider that answers.

        Raises AIIntegrationError when every provider is unconfigured or fails.
        """
        errors = []
        for provider in self.providers:
            try:
                if provider == "openai" and self.settings.OPENAI_API_KEY:
                    text = self._call_openai(prompt, system_prompt, max_tokens)
                elif provider == "gemini" and self.settings.GEMINI_API_KEY:
                    text = self._call_gemini(prompt, system_prompt, max_tokens)
                else:
                    errors.append((provider, "Provider not configured"))
                    continue

                if not text or not text.strip():
                    raise AIIntegrationError(f"{provider} returned empty text")
                logger.debug("AIClient: provider answered", provider=provider)
                return text.strip()
            except (requests.RequestException, AIIntegrationError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"Provider {provider} failed: {e}")
                errors.append((provider, str(e)))

        err_msg = "; ".join(f"{p}: {m}" for p, m in errors)
        logger.error(f"AIClient: all providers failed. Details: {err_msg}")
        raise AIIntegrationError(f"All AI providers failed: {err_msg}")

    def generate_model_answer(self, subject: str, question_prompt: str) -> str:
        """Model answer (or MCQ key, for an MCQ key prompt) for a question."""
        prompt = PromptTemplates.model_answer_prompt(subject, question_prompt)
        return self.generate_content(prompt, system_prompt=PromptTemplates.MODEL_ANSWER_SYSTEM)

    def semantic_similarity(self, user_answer: str, correct_answer: str, max_marks: float) -> Tuple[float, float]:
        """Return (similarity_score, awarded_marks) judged by the LLM.

        Accepts a JSON reply, or falls back to a 'Score: <n>' line.
        """
        prompt = PromptTemplates.similarity_prompt(user_answer, correct_answer, max_marks)
        raw = self.generate_content(prompt, system_prompt=PromptTemplates.SIMILARITY_SYSTEM, max_tokens=256)

        data = extract_json(raw)
        if isinstance(data, dict) and "similarity_score" in data:
            try:
                similarity = _clamp(float(data["similarity_score"]), 0.0, 1.0)
                awarded = float(data.get("awarded_marks", similarity * max_marks))
            except (TypeError, ValueError):
                logger.warning("Unparseable similarity reply", raw_response=raw)
                raise AIResponseParseError("Failed to parse similarity response")
            return similarity, _clamp(awarded, 0.0, float(max_marks))

        if SCORE_PATTERN.search(raw) and max_marks:
            awarded = _clamp(parse_score(raw), 0.0, float(max_marks))
            return awarded / max_marks, awarded

        logger.warning("Unparseable similarity reply", raw_response=raw)
        raise AIResponseParseError("Failed to parse similarity response")

    def _call_openai(self, prompt: str, system_prompt: Optional[str], max_tokens: int) -> str:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        resp = self.session.post(
            self.settings.OPENAI_API_URL,
            headers={
                "Authorization": f"Bearer {self.settings.OPENAI_API_KEY}",
                "Content-Type": "application/json",
            },
            json={
                "model": self.settings.OPENAI_MODEL,
                "messages": messages,
                "max_tokens": max_tokens,
                "temperature": 0.7,
            },
            timeout=self.settings.AI_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        return resp.json()["choices"][0]["message"]["content"]

    def _call_gemini(self, prompt: str, system_prompt: Optional[str], max_tokens: int) -> str:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"maxOutputTokens": max_tokens},
        }
        if system_prompt:
            payload["systemInstruction"] = {"parts": [{"text": system_prompt}]}

        resp = self.session.post(
            self.settings.GEMINI_API_URL,
            params={"key": self.settings.GEMINI_API_KEY},
            headers={"Content-Type": "application/json"},
            json=payload,
            timeout=self.settings.AI_TIMEOUT_SECONDS,
        )
        resp.raise_for_status()
        parts = resp.json()["candidates"][0]["content"]["parts"]
        return "".join(p.get("text", "") for p in parts)


_ai_client: Optional[AIClient] = None


def get_ai_client() -> AIClient:
    global _ai_client
    if _ai_client is None:
        _ai_client = AIClient()
    return _ai_client

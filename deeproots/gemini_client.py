from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional

import google.generativeai as genai

from .config import Settings

DEFAULT_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_ONLY_HIGH"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_ONLY_HIGH"},
]

SYSTEM_PROMPT_FILE = "system_prompt.txt"


class GeminiAssistant:
    """Last-tier assistant: answers operational questions the tables could not."""

    def __init__(self, settings: Settings, temperature: float = 0.7, max_output_tokens: int = 500) -> None:
        """Purpose: Configure the Gemini SDK and load the operations system prompt.
        Inputs/Outputs: Input is Settings plus generation limits; no return value.
        Side Effects / State: Configures the SDK API key and caches model instances.
        Dependencies: Uses google.generativeai and the prompts directory.
        Failure Modes: Raises ValueError if the API key or model name is missing.
        If Removed: Unanswered questions end with the "nothing found" message.
        Testing Notes: Validate that a missing key raises ValueError.
        """
        # Configure API key and prepare the default model.
        if not settings.gemini_api_key:
            raise ValueError("GEMINI_API_KEY is required")
        genai.configure(api_key=settings.gemini_api_key)
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._system_prompt = load_prompt(settings.prompts_dir / SYSTEM_PROMPT_FILE)
        self._models: Dict[str, genai.GenerativeModel] = {}
        self._default_model = _normalize_model_name(settings.gemini_model)
        if not self._default_model:
            raise ValueError("Gemini model name is required")

    def ask(self, prompt: str, context: Optional[str] = None) -> str:
        """Purpose: Generate a single answer for a free-text question.
        Inputs/Outputs: Inputs are the user question and optional context text;
            output is the stripped answer text.
        Side Effects / State: Calls the Gemini API; may add a model to the cache.
        Dependencies: Uses genai.GenerativeModel.generate_content.
        Failure Modes: SDK and network errors propagate; the orchestrator handles them.
        If Removed: The AI tier cannot run.
        Testing Notes: Replace with a stub in tests; no network calls.
        """
        # Resolve the cached model and send the system prompt with the question.
        model_name = self._default_model
        if model_name not in self._models:
            self._models[model_name] = genai.GenerativeModel(
                model_name,
                system_instruction=self._system_prompt or None,
            )
        content = prompt if not context else f"{context}\n\nQuestion: {prompt}"
        response = self._models[model_name].generate_content(
            content,
            generation_config={
                "temperature": self._temperature,
                "max_output_tokens": self._max_output_tokens,
            },
            safety_settings=DEFAULT_SAFETY_SETTINGS,
        )
        text: Optional[str] = getattr(response, "text", None)
        return (text or "").strip()


def load_prompt(prompt_path: Path) -> str:
    """Read a prompt file as UTF-8, dropping a BOM; a missing file yields ""."""
    if not prompt_path.exists():
        return ""
    try:
        return prompt_path.read_text(encoding="utf-8").lstrip("﻿")
    except UnicodeDecodeError:
        return prompt_path.read_bytes().decode("utf-8", errors="ignore").lstrip("﻿")


def _normalize_model_name(name: Optional[str]) -> str:
    # "models/gemini-2.5-flash" -> "gemini-2.5-flash"
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned

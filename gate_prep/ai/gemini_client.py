# gate_prep/ai/gemini_client.py
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from gate_prep.domain.errors import TransportError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


@dataclass(frozen=True)
class GeminiConfig:
    api_key: str
    model: str = "gemini-2.0-flash"
    temperature: float = 0.7
    # un set da 10+ domande in JSON supera facilmente i 4k token
    max_output_tokens: int = 8192


class GeminiClient:
    """
    Wrapper async sul SDK google.genai (pacchetto: google-genai).

    Le capability (generazione, analisi, spiegazioni) passano tutte da qui:
    - errori di rete / quota / modello -> TransportError
    - risposta vuota o senza JSON valido -> ValueError
    """

    def __init__(self, cfg: GeminiConfig):
        if not cfg.api_key:
            raise ValueError("GeminiConfig.api_key is empty (set GEMINI_API_KEY).")
        self.cfg = cfg

        from google import genai  # type: ignore
        from google.genai import types  # type: ignore

        self._types = types
        self._client = genai.Client(
            api_key=cfg.api_key,
            http_options=types.HttpOptions(api_version="v1beta"),
        )

    def _content_config(self, json_mode: bool):
        mime: Optional[str] = "application/json" if json_mode else None
        return self._types.GenerateContentConfig(
            temperature=self.cfg.temperature,
            max_output_tokens=self.cfg.max_output_tokens,
            response_mime_type=mime,
        )

    async def generate_text(self, prompt: str, json_mode: bool = False) -> str:
        try:
            resp = await self._client.aio.models.generate_content(
                model=self.cfg.model,
                contents=prompt,
                config=self._content_config(json_mode),
            )
        except Exception as e:
            logger.error("[GEMINI] %s call failed: %s", self.cfg.model, e)
            raise TransportError(f"Could not reach the AI service ({self.cfg.model}): {e}") from e

        # risposta vuota o bloccata dai filtri: il servizio ha risposto, l'output è inutilizzabile
        text = (resp.text or "").strip()
        if not text:
            raise ValueError(f"Empty response from {self.cfg.model}.")
        logger.debug("[GEMINI] %s replied with %d chars", self.cfg.model, len(text))
        return text

    async def generate_json(self, prompt: str) -> Any:
        """Oggetto o lista JSON. Il mime type JSON non basta: a volte arriva comunque un blocco ```json."""
        raw = await self.generate_text(prompt, json_mode=True)
        body = _extract_json_text(raw)
        try:
            return json.loads(body)
        except ValueError as e:
            raise ValueError(f"Invalid JSON from {self.cfg.model}: {e}. Reply starts with: {raw[:300]!r}") from e


def _extract_json_text(raw: str) -> str:
    """Toglie il blocco markdown e l'eventuale testo intorno al primo oggetto/lista JSON."""
    s = raw.strip()
    fenced = _FENCE.match(s)
    if fenced:
        s = fenced.group(1).strip()

    if s[:1] in "{[" and s[-1:] in "}]":
        return s

    # prende la coppia di parentesi più esterna che compare per prima
    starts = [i for i in (s.find("{"), s.find("[")) if i != -1]
    if not starts:
        return s
    first = min(starts)
    closer = "}" if s[first] == "{" else "]"
    last = s.rfind(closer)
    return s[first : last + 1] if last > first else s

# gate_prep/ai/capabilities.py
"""
Implementazioni Gemini delle capability esterne usate dall'engine:
generazione del set di domande, analisi della prestazione, spiegazioni.
"""
from __future__ import annotations

from typing import List

from gate_prep.ai.gemini_client import GeminiClient
from gate_prep.ai.prompt_builder import (
    PromptBuildConfig,
    build_analysis_prompt,
    build_explanation_prompt,
    build_generation_prompt,
)
from gate_prep.ai.response_parser import (
    ResponseParseError,
    parse_analysis_from_llm_json,
    parse_explanation_from_llm_json,
    parse_question_set_from_llm_json,
)
from gate_prep.domain.models import AnalysisRequest, AnalysisResponse, ExplanationRequest, GenerationRequest, Question


async def _ask_json(gemini: GeminiClient, prompt: str):
    try:
        return await gemini.generate_json(prompt)
    except ValueError as e:
        raise ResponseParseError(str(e)) from e


class GeminiQuestionSource:
    def __init__(self, gemini: GeminiClient, cfg: PromptBuildConfig = PromptBuildConfig()):
        self.gemini = gemini
        self.cfg = cfg

    async def generate(self, request: GenerationRequest) -> List[Question]:
        data = await _ask_json(self.gemini, build_generation_prompt(request, self.cfg))
        return parse_question_set_from_llm_json(data)


class GeminiPerformanceCoach:
    def __init__(self, gemini: GeminiClient, cfg: PromptBuildConfig = PromptBuildConfig()):
        self.gemini = gemini
        self.cfg = cfg

    async def analyze(self, request: AnalysisRequest) -> AnalysisResponse:
        data = await _ask_json(self.gemini, build_analysis_prompt(request, self.cfg))
        return parse_analysis_from_llm_json(data)


class GeminiExplainer:
    def __init__(self, gemini: GeminiClient):
        self.gemini = gemini

    async def explain(self, request: ExplanationRequest) -> str:
        data = await _ask_json(self.gemini, build_explanation_prompt(request))
        return parse_explanation_from_llm_json(data)

# gate_prep/ai/prompt_builder.py
from __future__ import annotations

import json
from dataclasses import dataclass

from gate_prep.domain.models import AnalysisRequest, ExplanationRequest, GenerationRequest


@dataclass(frozen=True)
class PromptBuildConfig:
    # quante domande già viste passiamo al modello (le più recenti in coda)
    max_excluded_in_prompt: int = 300
    strict_json_only: bool = True


QUESTION_SCHEMA = {
    "questions": [
        {
            "question": "string",
            "type": "MCQ | MSQ | NTQ",
            "options": ["4 strings, only for MCQ/MSQ"],
            "correctAnswer": "string (MCQ) | array of 2-3 option strings (MSQ) | number (NTQ)",
            "numericRange": {"min": "number", "max": "number"},
            "difficulty": "Easy | Medium | Hard",
            "topic": "string",
        }
    ]
}

ANALYSIS_SCHEMA = {
    "overallFeedback": "string",
    "weakestTopics": ["string"],
    "errorAnalysis": [
        {"question": "exact question text", "errorType": "Conceptual | Careless Slip | Question Misinterpretation"}
    ],
}


def _bullets(items, empty: str = "None") -> str:
    items = list(items)
    if not items:
        return empty
    return "\n".join(f"- {x}" for x in items)


def build_generation_prompt(request: GenerationRequest, cfg: PromptBuildConfig = PromptBuildConfig()) -> str:
    excluded = list(request.exclusion_list)[-cfg.max_excluded_in_prompt:]
    json_rule = "Return ONLY the JSON object, no markdown, no commentary." if cfg.strict_json_only else ""

    prompt = f"""
You are an expert Question Crafter AI for the {request.stream} stream of the {request.exam} exam.

Your goal is to create a diverse set of high-quality questions based on the provided syllabus topics.

Overall Difficulty Level: {request.difficulty.value}
Number of Questions to Generate: {request.desired_count}

Question Types Distribution:
- MCQ (Single Correct): ~40% of questions
- MSQ (Multiple Correct): ~30% of questions
- NTQ (Numerical Type): ~30% of questions

Syllabus:
<SYLLABUS>
{request.syllabus}
</SYLLABUS>

Previously Asked Questions (DO NOT REPEAT):
{_bullets(excluded)}

Mandatory Instructions:
1. Generate EXACTLY {request.desired_count} unique questions with a mix of types (MCQ, MSQ, NTQ).
2. MCQ: exactly 4 distinct options, one correct answer, correctAnswer is a string equal to one option.
3. MSQ: exactly 4 distinct options, 2-3 correct answers, correctAnswer is an array of option strings.
4. NTQ: no options, correctAnswer is a number, include numericRange with min/max acceptable values.
5. No question may appear in the previously asked list, and no two questions may share the same text.
6. Tag every question with its syllabus topic.

OUTPUT (JSON ONLY):
{json.dumps(QUESTION_SCHEMA, ensure_ascii=False, indent=2)}
{json_rule}
""".strip()

    return prompt


def build_analysis_prompt(request: AnalysisRequest, cfg: PromptBuildConfig = PromptBuildConfig()) -> str:
    blocks = []
    for i, r in enumerate(request.results, start=1):
        blocks.append(
            f"---\nQuestion {i}: {r.question_text}\n"
            f"Topic: {r.topic or 'General'}\n"
            f"Difficulty: {r.difficulty.value}\n"
            f"Time Taken: {r.time_taken_seconds:.0f} seconds\n"
            f"User's Answer: {r.user_answer}\n"
            f"Correct Answer: {r.correct_answer}\n"
            f"Result: {'Correct' if r.is_correct else 'Incorrect'}"
        )
    style = request.learning_style_hint or "not known"
    json_rule = "Return ONLY the JSON object." if cfg.strict_json_only else ""

    prompt = f"""
You are an expert AI Exam Coach for a student preparing for the {request.exam} in the {request.stream} stream.
The user has just completed a quiz. Provide a deep, personalized analysis of their performance.

User's Inferred Learning Style: {style}
(For 'visual' learners suggest diagrams, for 'code-first' practical examples, for 'needs-confidence' be extra encouraging.)

Quiz results:
{chr(10).join(blocks)}
---

Tasks:
1. For each INCORRECT answer classify the mistake as one of:
   - Conceptual: the user does not understand the underlying concept or formula.
   - Careless Slip: concept understood, but a calculation or simple error (e.g. close answer, very little time on a hard question).
   - Question Misinterpretation: concept understood, but the question was misread.
   Copy the question text EXACTLY in errorAnalysis.
2. Identify the 2-3 weakest topics.
3. Write concise, encouraging, actionable feedback with strategy on error patterns and time management.

OUTPUT (JSON ONLY):
{json.dumps(ANALYSIS_SCHEMA, ensure_ascii=False, indent=2)}
{json_rule}
""".strip()

    return prompt


def build_explanation_prompt(request: ExplanationRequest) -> str:
    return f"""
You are an expert tutor for the {request.stream} stream.
Explain step by step why the correct answer to this question is right and why each other option is wrong.

Question: {request.question_text}
Correct answer: {request.correct_answer}
Incorrect answers:
{_bullets(request.incorrect_answers)}

OUTPUT (JSON ONLY): {{"explanation": "string"}}
""".strip()

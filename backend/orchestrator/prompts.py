"""Prompt templates for the judge and the generation backends.

This module contains:
- ANALYSIS_PROMPT: Used by the requirement analyzer to classify a request
- EVALUATOR_PROMPT: Used by the evaluator to score competing submissions
- GENERATION_PROMPT: Base instructions sent to every generation backend
- STYLE_HINTS: Per-backend style nudges appended to the generation prompt
"""

from orchestrator.types import GenerationRequest

ANALYSIS_PROMPT = """\
Analyze this request and determine requirements:
"{prompt}"

Identify:
1. Framework needed (React, Next.js, Vue, etc.)
2. Key features required
3. UI/UX complexity level

Respond in JSON format only:
{{
  "framework": "react",
  "requirements": ["responsive design", "modern UI"],
  "complexity": "medium"
}}
"""

EVALUATOR_PROMPT = """\
Evaluate these {count} code solutions for: "{prompt}"

Score each (0-10) based on:
- Code quality (30%)
- Functionality (25%)
- UI/UX design (20%)
- Performance (15%)
- Innovation (10%)

{solutions}

Respond in JSON only, identifying solutions by their backend id:
{{
  "scores": [
    {{"backend": "{example_id}", "score": 8.5}}
  ],
  "winner": "{example_id}",
  "winnerScore": 8.5
}}
"""

GENERATION_PROMPT = """\
Build a complete, production-ready solution for: "{prompt}"

Requirements: {requirements}
Framework: {framework}

Generate clean, modern code with:
- Responsive design
- Proper TypeScript types
- Best practices and optimization
- Beautiful UI with modern CSS
- Complete functionality

{style_hint}

Return only the complete code ready for deployment.
"""

STYLE_HINTS: dict[str, str] = {
    "openai": "Optimize for clarity, reliability and best practices.",
    "claude": "Focus on exceptional UI/UX design and component structure.",
    "grok": "Be creative and think outside the box for innovative solutions.",
    "llama": "Emphasize robust architecture and efficient algorithms.",
    "deepseek": "Generate clean, optimized code with excellent performance.",
    "gemini": "Focus on complex logic and seamless user interactions.",
    "mistral": "Provide a well-balanced solution covering all aspects.",
}


def get_generation_prompt(request: GenerationRequest, backend_id: str) -> str:
    """Build the prompt sent to one generation backend.

    Args:
        request: The analyzed request shared by all backends
        backend_id: Backend identity used to look up the style hint

    Returns:
        The complete prompt text. Unknown backends get no style hint.
    """
    return GENERATION_PROMPT.format(
        prompt=request.prompt,
        requirements=", ".join(request.requirements),
        framework=request.framework or "React",
        style_hint=STYLE_HINTS.get(backend_id, ""),
    )

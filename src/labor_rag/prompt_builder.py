"""Utilities for constructing grounded prompts for the labor-law assistant."""
from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from labor_rag.vectorstore.similarity import ScoredChunk

_PROMPTS_DIR = Path(__file__).resolve().parent / "prompts" / "ar"
_SYSTEM_PROMPT_PATH = _PROMPTS_DIR / "system.txt"

QUESTION_HEADER = "سؤال:"
CONTEXT_HEADER = "السياق:"
CONTRACT_EXCERPT_HEADER = "【مقتطفات من العقد】"


def _load_template(path: Path) -> str:
    """Read and trim the contents of a template file."""
    return path.read_text(encoding="utf-8").strip()


SYSTEM_PROMPT = _load_template(_SYSTEM_PROMPT_PATH)


def reference_label(index: int) -> str:
    """Citation label shared by the prompt and the returned sources (1-based)."""

    return f"#{index}"


def format_context(results: Sequence[ScoredChunk]) -> str:
    sections = []
    for index, item in enumerate(results, start=1):
        metadata = item.chunk.metadata
        header = f"[{reference_label(index)}] ({metadata.document_type.value} | {metadata.file_name})"
        sections.append(f"{header}\n{item.chunk.content}")
    return "\n\n".join(sections)


def build_prompt(
    question: str,
    results: Sequence[ScoredChunk],
    *,
    contract_text: Optional[str] = None,
    system_prompt: str = SYSTEM_PROMPT,
) -> str:
    """Compose the system instruction, the ranked context and the question.

    Context blocks keep the ranking order of *results* and are labelled
    ``[#1]``, ``[#2]`` ... so the model's citations can be resolved against
    the sources returned to the caller.
    """

    if question is None:
        raise ValueError("question must not be None")

    sections = [system_prompt, f"{CONTEXT_HEADER}\n{format_context(results)}"]
    if contract_text and contract_text.strip():
        sections.append(f"{CONTRACT_EXCERPT_HEADER}\n{contract_text.strip()}")
    sections.append(f"{QUESTION_HEADER}\n{question.strip()}")
    return "\n\n".join(sections)


__all__ = ["SYSTEM_PROMPT", "build_prompt", "format_context", "reference_label"]

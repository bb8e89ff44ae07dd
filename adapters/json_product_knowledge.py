"""
Local JSON-file adapter for ProductKnowledgePort.

Reads curated product documentation once and serves it as prompt-ready text.
A missing path means "no verified knowledge": authoritative contracts then
refuse instead of answering from model memory.

File shape::

    {"product": "PitCrew", "sections": [{"title": ..., "content": ...}],
     "faqs": [{"question": ..., "answer": ...}]}
"""

from __future__ import annotations

import json
import os
from typing import Optional

from shared_utils.constants import LogScope
from shared_utils.error_handler import ExternalServiceError
from shared_utils.logging_utils import ContextualLogger


logger = ContextualLogger(scope=LogScope.ADAPTER)


class JsonProductKnowledgeAdapter:
    def __init__(self, path: str = "") -> None:
        self._path = path
        self._text: Optional[str] = None
        self._loaded = False

    async def get_product_knowledge(self) -> Optional[str]:
        if not self._loaded:
            self._text = self._load()
            self._loaded = True
        return self._text

    def _load(self) -> Optional[str]:
        if not self._path or not os.path.exists(self._path):
            logger.warning("product_knowledge_missing", path=self._path)
            return None
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise ExternalServiceError(
                "ProductKnowledge", f"Failed to read {self._path}: {exc}"
            ) from exc

        text = self.render(data)
        logger.info("product_knowledge_loaded", path=self._path, characters=len(text))
        return text or None

    @staticmethod
    def render(data: dict) -> str:
        parts = []
        product = data.get("product")
        if product:
            parts.append(f"# {product}")
        for section in data.get("sections", []):
            title = section.get("title", "").strip()
            content = section.get("content", "").strip()
            if content:
                parts.append(f"## {title}\n{content}" if title else content)
        faqs = data.get("faqs", [])
        if faqs:
            parts.append(
                "## FAQ\n"
                + "\n".join(f"Q: {f.get('question', '')}\nA: {f.get('answer', '')}" for f in faqs)
            )
        return "\n\n".join(parts)

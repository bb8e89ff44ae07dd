"""
Port interface for verified product knowledge (the product source of truth).

Implementations: JsonProductKnowledgeAdapter (adapters/)
"""

from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class ProductKnowledgePort(Protocol):
    """Read-only access to curated product documentation."""

    async def get_product_knowledge(self) -> Optional[str]:
        """Return the product knowledge as prompt-ready text.

        Returns:
            Formatted text, or None when no verified knowledge is loaded.
            Authoritative contracts refuse to answer when this is None.
        """
        ...

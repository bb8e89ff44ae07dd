"""Port interface for the list of known customer company names."""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable


@runtime_checkable
class CompanyDirectoryPort(Protocol):
    """Source of company names used for entity detection."""

    async def list_company_names(self) -> List[str]:
        """Return every known company name.

        Raises:
            ExternalServiceError: If the backing store is unreachable.
        """
        ...

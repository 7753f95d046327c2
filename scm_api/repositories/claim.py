"""Claim repository — adds per-year sequence lookup for claim numbering."""


from sqlalchemy import func, select

from scm_api.domain.claim import Claim
from scm_api.repositories.base import BaseRepository


class ClaimRepository(BaseRepository[Claim]):
    model = Claim

    async def last_sequence(self, year: int) -> int:
        """Highest claim sequence issued for ``year`` (0 when none)."""
        result = await self._session.execute(
            select(func.max(Claim.claim_sequence)).where(Claim.claim_year == year)
        )
        return result.scalar_one() or 0

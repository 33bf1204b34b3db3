"""Per-contributor submission counts."""

from fastapi import APIRouter

from app.controllers.dependencies import RepositoryDep
from app.views import ContributorStatsResponse

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/{contributor_id}", response_model=ContributorStatsResponse)
async def contributor_stats(
    contributor_id: str,
    repository: RepositoryDep,
) -> ContributorStatsResponse:
    count = await repository.count_submissions_by_contributor(contributor_id)
    return ContributorStatsResponse(count=count)

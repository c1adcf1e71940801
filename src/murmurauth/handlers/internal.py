"""Handlers for internal routes not exposed to guests."""

from fastapi import APIRouter
from safir.metadata import Metadata, get_metadata

router = APIRouter()

__all__ = ["router"]


@router.get(
    "/",
    description=(
        "Return metadata about the running application. This route should"
        " not be exposed outside the local network."
    ),
    response_model=Metadata,
    response_model_exclude_none=True,
    summary="Application metadata",
    tags=["internal"],
)
async def get_index() -> Metadata:
    return get_metadata(
        package_name="murmurauth", application_name="murmurauth"
    )

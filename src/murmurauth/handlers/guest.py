"""Handlers for guest access (``/guest-sessions`` and ``/guest-claims``)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Form, status
from fastapi.responses import HTMLResponse, RedirectResponse, Response

from ..dependencies.context import RequestContext, context_dependency
from ..exceptions import GuestLoginError
from ..templates import templates

router = APIRouter()

__all__ = ["router"]


@router.get(
    "/guest-sessions",
    description=(
        "Show the form administrators use to create a guest link. Access to"
        " this route must be restricted by the proxy in front of the"
        " application."
    ),
    response_class=HTMLResponse,
    summary="Guest link form",
    tags=["admin"],
)
async def get_guest_sessions(
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    return templates.TemplateResponse(context.request, "create.html")


@router.post(
    "/guest-sessions",
    description=(
        "Create a new guest session and redirect to the guest link that"
        " should be shared with guests. Access to this route must be"
        " restricted by the proxy in front of the application."
    ),
    responses={
        303: {
            "description": "Redirect to the new guest link",
            "headers": {
                "Location": {
                    "description": "Guest link",
                    "schema": {"type": "string"},
                }
            },
        },
    },
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Create guest link",
    tags=["admin"],
)
async def post_guest_sessions(
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> RedirectResponse:
    creator = context.request.headers.get(context.config.remote_user_header)
    if creator:
        context.rebind_logger(creator=creator)
    guest_service = context.factory.create_guest_service()
    session = await guest_service.issue_session(creator)
    url = context.request.url_for("get_guest_claim", session=session.token)
    return RedirectResponse(str(url), status_code=status.HTTP_303_SEE_OTHER)


@router.get(
    "/guest-claims/{session}",
    description=(
        "Show the form guests use to choose a username. The session token in"
        " the path is not checked until the form is submitted."
    ),
    response_class=HTMLResponse,
    summary="Guest login form",
    tags=["guest"],
)
async def get_guest_claim(
    session: str,
    *,
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    return templates.TemplateResponse(
        context.request,
        "visit.html",
        context={"session": session},
        headers={"Cache-Control": "no-cache, no-store"},
    )


@router.post(
    "/guest-claims",
    description=(
        "Create a guest login with the chosen username and show its password"
        " and a link that opens the Mumble client. The password is shown only"
        " once."
    ),
    response_class=HTMLResponse,
    responses={
        403: {
            "content": {"text/html": {}},
            "description": "Guest link is invalid or has expired",
        },
        409: {
            "content": {"text/html": {}},
            "description": "Username already taken",
        },
    },
    summary="Claim guest login",
    tags=["guest"],
)
async def post_guest_claim(
    *,
    session: Annotated[
        str,
        Form(
            title="Guest session",
            description="Token of the guest session from the guest link",
            min_length=1,
        ),
    ],
    username: Annotated[
        str,
        Form(
            title="Username",
            description="Username the guest wants to use in Mumble",
            min_length=1,
        ),
    ],
    context: Annotated[RequestContext, Depends(context_dependency)],
) -> Response:
    context.rebind_logger(user=username)
    guest_service = context.factory.create_guest_service()
    try:
        login = await guest_service.claim_guest(session, username)
    except GuestLoginError as e:
        return templates.TemplateResponse(
            context.request,
            "visit.html",
            context={"session": session, "error": str(e)},
            headers={"Cache-Control": "no-cache, no-store"},
            status_code=e.status_code,
        )
    return templates.TemplateResponse(
        context.request,
        "success.html",
        context={"login": login},
        headers={"Cache-Control": "no-cache, no-store"},
    )

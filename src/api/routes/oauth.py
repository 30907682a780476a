"""
WorkflowMax authorization-code flow.

Visiting /oauth/login sends the operator to WorkflowMax; the callback
exchanges the code and writes the token file the polling loop refreshes from.
"""

import html

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from src.api.dependencies import OAuthStateStore, get_oauth_states, get_token_manager
from src.config.settings import get_settings
from src.tracking.errors import AuthError
from src.tracking.tokens import TokenManager

router = APIRouter()
logger = structlog.get_logger(__name__)

LANDING_PAGE = """<!DOCTYPE html>
<html>
  <head><title>Job folder sync</title></head>
  <body>
    <h1>Job folder sync</h1>
    <p>Creates a Dropbox folder for every new WorkflowMax job.</p>
    <p><a href="/oauth/login">Connect WorkflowMax</a></p>
  </body>
</html>
"""


def _redirect_uri(request: Request) -> str:
    settings = get_settings()
    return settings.callback_url or str(request.url_for("oauth_callback"))


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def landing_page() -> HTMLResponse:
    return HTMLResponse(LANDING_PAGE)


@router.get("/oauth/login", summary="Start WorkflowMax authorization")
async def oauth_login(
    request: Request,
    token_manager: TokenManager = Depends(get_token_manager),
    states: OAuthStateStore = Depends(get_oauth_states),
) -> RedirectResponse:
    state = states.issue()
    url = token_manager.build_authorization_url(_redirect_uri(request), state)
    logger.info("Redirecting to WorkflowMax authorization")
    return RedirectResponse(url)


@router.get("/oauth/callback", name="oauth_callback", summary="WorkflowMax authorization callback")
async def oauth_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    error_description: str | None = None,
    token_manager: TokenManager = Depends(get_token_manager),
    states: OAuthStateStore = Depends(get_oauth_states),
) -> PlainTextResponse:
    if error:
        logger.warning("Authorization denied", error=error, description=error_description)
        return PlainTextResponse(
            f"Authorization failed: {html.escape(error_description or error)}",
            status_code=400,
        )

    if not states.redeem(state):
        logger.warning("Callback with unknown state")
        return PlainTextResponse("Invalid or expired state", status_code=400)

    if not code:
        return PlainTextResponse("Missing authorization code", status_code=400)

    try:
        await token_manager.exchange_authorization_code(code, _redirect_uri(request))
    except AuthError as e:
        logger.error("Authorization code exchange failed", error=str(e))
        return PlainTextResponse("Token exchange failed", status_code=500)

    logger.info("Authorization complete, tokens saved")
    return PlainTextResponse("Authorization successful. The sync will use the saved tokens.")

# amo_notes/routers/amo.py

from typing import Optional

from fastapi import APIRouter, Depends, Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import RedirectResponse

from amo_notes.core.logger import logger
from amo_notes.routers.deps import get_dispatcher, get_oauth_manager
from amo_notes.services.oauth import OAuthManager
from amo_notes.services.webhook_dispatcher import WebhookDispatcher
from amo_notes.utils.errors import BadRequestError
from amo_notes.utils.forms import parse_bracket_form
from amo_notes.utils.responses import format_response

router = APIRouter(prefix="/amo", tags=["amocrm"])


@router.get("/auth", summary="Redirect to the amoCRM consent screen")
def auth(oauth: OAuthManager = Depends(get_oauth_manager)):
    return RedirectResponse(oauth.build_authorization_url())


@router.get("/callback", summary="OAuth callback: exchange the code for tokens")
def callback(code: Optional[str] = None, oauth: OAuthManager = Depends(get_oauth_manager)):
    if not code:
        raise BadRequestError("No code provided")
    oauth.exchange_code(code)
    return format_response(True, message="Authorization successful")


@router.api_route("/refresh-token", methods=["GET", "POST"], summary="Refresh the stored token pair")
def refresh_token(oauth: OAuthManager = Depends(get_oauth_manager)):
    oauth.refresh()
    return format_response(True, message="Refresh token successful")


@router.post("/webhook", summary="amoCRM webhook receiver")
async def webhook(request: Request, dispatcher: WebhookDispatcher = Depends(get_dispatcher)):
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            payload = await request.json()
        except ValueError:
            raise BadRequestError("Invalid JSON body")
    else:
        form = await request.form()
        payload = parse_bracket_form(form.multi_items())

    if not isinstance(payload, dict):
        raise BadRequestError("Webhook payload must be an object")

    logger.info(f"Webhook received: {', '.join(payload) or 'empty'}")
    result = await run_in_threadpool(dispatcher.handle_webhook, payload)
    return format_response(True, data=result.model_dump())

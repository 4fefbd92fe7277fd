"""
MediCamp Backend - Session Routes

POST /jwt signs a session token for the email the identity provider has
just verified on the frontend and stores it in an HTTP-only cookie.
GET /logout clears the cookie.
"""

import logging

from fastapi import APIRouter, Response

from medicamp.schemas.common import SuccessResponse
from medicamp.schemas.user import TokenRequest
from medicamp.security.tokens import clear_session_cookie, issue_token, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


@router.post("/jwt", response_model=SuccessResponse, summary="Issue a session cookie")
async def create_session(body: TokenRequest, response: Response) -> SuccessResponse:
    set_session_cookie(response, issue_token(body.email))
    logger.info("Session issued for %s", body.email)
    return SuccessResponse()


@router.get("/logout", response_model=SuccessResponse, summary="Clear the session cookie")
async def logout(response: Response) -> SuccessResponse:
    clear_session_cookie(response)
    return SuccessResponse()

"""
User endpoints for the GlobalAuth API.

Maps HTTP methods on the /api/v1/users paths onto orchestrator operations.
PUT stands in for read operations that need a body (GET has none).
"""

from typing import Callable, Dict, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse

from globalauth.modules.session import SessionOrchestrator

from .models import (
    CredentialsRequest,
    OperationResult,
    ProfileRequest,
    TokenAuthRequest,
    TokensRequest,
)

# Methods each path answers besides OPTIONS
ALLOWED_METHODS: Dict[str, str] = {
    "/create": "POST",
    "/login": "POST",
    "/tokens": "POST,DELETE,PUT",
    "/devices": "PUT,DELETE",
    "/update": "PUT,DELETE",
    "/getdata": "PUT",
}


def get_orchestrator(request: Request) -> SessionOrchestrator:
    """Orchestrator built by the application lifespan."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(503, "Service not initialized")
    return orchestrator


def request_timeout(
    x_request_timeout: Optional[int] = Header(
        None, ge=1, le=60, description="Operation deadline in seconds"
    ),
) -> Optional[float]:
    return float(x_request_timeout) if x_request_timeout else None


def respond(result: OperationResult) -> JSONResponse:
    """Tagged result -> JSON envelope with the recommended status."""
    return JSONResponse(status_code=result.status, content=result.to_dict())


def _options_handler(methods: str) -> Callable:
    async def preflight() -> Response:
        return Response(status_code=200, headers={"Access-Control-Allow-Methods": methods})

    return preflight


def create_users_router() -> APIRouter:
    """
    Create the users router.

    Returns:
        FastAPI router with the account, token, device and profile endpoints
    """
    router = APIRouter(prefix="/api/v1/users", tags=["users"])

    @router.post("/create")
    async def create_user(
        body: CredentialsRequest,
        user_agent: Optional[str] = Header(None),
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """
        Sign up.

        Returns:
            200: {username, accountId, token}
            400: Missing fields
            409: Username taken
        """
        result = await orchestrator.signup(body.username, body.password, user_agent, timeout=timeout)
        return respond(result)

    @router.post("/login")
    async def login_user(
        body: CredentialsRequest,
        user_agent: Optional[str] = Header(None),
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """
        Log in and receive a new token.

        Returns:
            200: {username, token}
            401: Wrong password
            404: Unknown user
        """
        result = await orchestrator.login(body.username, body.password, user_agent, timeout=timeout)
        return respond(result)

    @router.post("/tokens")
    async def issue_token(
        body: TokensRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Issue an additional token (no device entry)."""
        result = await orchestrator.issue_token(body.username, body.active_token, timeout=timeout)
        return respond(result)

    @router.put("/tokens")
    async def validate_token(
        body: TokensRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Check whether tokenToValidate is currently valid."""
        result = await orchestrator.validate_token(
            body.username, body.active_token, body.token_to_validate, timeout=timeout
        )
        return respond(result)

    @router.delete("/tokens")
    async def revoke_token(
        body: TokensRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Revoke tokenToDelete."""
        result = await orchestrator.revoke_token(
            body.username, body.active_token, body.token_to_delete, timeout=timeout
        )
        return respond(result)

    @router.put("/devices")
    async def list_devices(
        body: TokenAuthRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """List devices."""
        result = await orchestrator.list_devices(body.username, body.active_token, timeout=timeout)
        return respond(result)

    @router.delete("/devices")
    async def remove_device(
        body: TokenAuthRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Remove the caller's own device and end its session."""
        result = await orchestrator.remove_device(body.username, body.active_token, timeout=timeout)
        return respond(result)

    @router.put("/update")
    async def update_profile(
        body: ProfileRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Merge data (an object) into the profile."""
        result = await orchestrator.update_profile(
            body.username, body.active_token, body.data, timeout=timeout
        )
        return respond(result)

    @router.delete("/update")
    async def prune_profile(
        body: ProfileRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Remove the keys listed in data (an array) from the profile."""
        result = await orchestrator.prune_profile(
            body.username, body.active_token, body.data, timeout=timeout
        )
        return respond(result)

    @router.put("/getdata")
    async def get_own_profile(
        body: TokenAuthRequest,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Return the caller's profile."""
        result = await orchestrator.get_own_profile(body.username, body.active_token, timeout=timeout)
        return respond(result)

    @router.get("/{username}/profile")
    async def get_public_profile(
        username: str,
        orchestrator: SessionOrchestrator = Depends(get_orchestrator),
        timeout: Optional[float] = Depends(request_timeout),
    ):
        """Public view of an account: accountId and profile only."""
        result = await orchestrator.get_public_profile(username, timeout=timeout)
        return respond(result)

    for path, methods in ALLOWED_METHODS.items():
        router.add_api_route(
            path,
            _options_handler(methods),
            methods=["OPTIONS"],
            include_in_schema=False,
        )

    return router

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from pydantic import ValidationError

from rps_interactions.api.deps import get_router, get_verifier
from rps_interactions.api.models import Interaction, InteractionResponse, InteractionType
from rps_interactions.discord_client import run_followups
from rps_interactions.errors import AuthenticationFailure
from rps_interactions.interactions import InteractionRouter
from rps_interactions.signature import SIGNATURE_HEADER, TIMESTAMP_HEADER, SignatureVerifier

logger = logging.getLogger(__name__)

router = APIRouter()


async def verified_interaction(request: Request, verifier: SignatureVerifier = Depends(get_verifier)) -> Interaction:
    """Check the signature over the raw body, then parse it.

    Nothing downstream runs for a request that fails verification.
    """

    body = await request.body()
    try:
        verifier.verify(
            signature=request.headers.get(SIGNATURE_HEADER),
            timestamp=request.headers.get(TIMESTAMP_HEADER),
            body=body,
        )
    except AuthenticationFailure as e:
        logger.warning("rejected interaction: %s", e)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid request signature") from e

    try:
        payload = json.loads(body)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="request body is not JSON") from e

    # A liveness ping is answered whatever else it carries.
    if isinstance(payload, dict) and payload.get("type") == InteractionType.ping:
        return Interaction(type=InteractionType.ping)

    try:
        return Interaction.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.errors(include_url=False, include_context=False, include_input=False)) from e


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.post("/interactions", response_model=InteractionResponse, response_model_exclude_none=True)
async def interactions_route(
    background_tasks: BackgroundTasks,
    interaction: Interaction = Depends(verified_interaction),
    interaction_router: InteractionRouter = Depends(get_router),
) -> InteractionResponse:
    try:
        result = interaction_router.dispatch(interaction)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e

    if result.followups:
        background_tasks.add_task(run_followups, result.followups)
    return result.response

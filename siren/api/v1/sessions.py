"""Safety session API endpoints."""

from fastapi import APIRouter, HTTPException, Query, status

from siren.dependencies import EngineDep, SessionServiceDep, TokenDep
from siren.schemas.sessions import (
    DetectionResponse,
    LogEntryResponse,
    MotionSamplesRequest,
    SessionCreate,
    SessionCreated,
    SessionList,
    SessionResponse,
    TriggerRequest,
    VoiceResultsRequest,
)
from siren.triggers import MotionSample

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post(
    "",
    response_model=SessionCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Arm a safety session",
)
async def create_session(
    request: SessionCreate,
    session_service: SessionServiceDep,
    token: TokenDep,
):
    """
    Arm a new safety session.

    - **mode**: `check_in`, `shake_watch` or `voice_watch`
    - **interval_seconds**: quiet period between check-ins (required for `check_in`)
    - **contacts**: emergency contacts; when omitted they are fetched from the
      contacts backend with the request's bearer token
    - **voice_phrase**: phrase that raises an alert (required for `voice_watch`)

    **Note**: A session without contacts is accepted with a warning.
    """
    try:
        created = await session_service.create_session(request, token=token)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return SessionCreated(
        session=SessionResponse.from_domain(created.session),
        warnings=created.warnings,
    )


@router.get("", response_model=SessionList, summary="List safety sessions")
async def list_sessions(
    engine: EngineDep,
    include_terminal: bool = Query(False, description="Include resolved and cancelled sessions"),
):
    sessions = await engine.list_sessions(include_terminal=include_terminal)
    return SessionList(
        sessions=[SessionResponse.from_domain(session) for session in sessions],
        total=len(sessions),
    )


@router.get("/{session_id}", response_model=SessionResponse, summary="Get a safety session")
async def get_session(session_id: str, engine: EngineDep):
    return SessionResponse.from_domain(await engine.get_session(session_id))


@router.get(
    "/{session_id}/log",
    response_model=list[LogEntryResponse],
    summary="Get session history",
)
async def get_session_log(
    session_id: str,
    engine: EngineDep,
    limit: int = Query(100, ge=1, le=1000, description="Most recent entries to return"),
):
    """History of a session, oldest entry first."""
    entries = await engine.get_log(session_id, limit=limit)
    return [LogEntryResponse.from_domain(entry) for entry in entries]


@router.post(
    "/{session_id}/acknowledge",
    response_model=SessionResponse,
    summary="Check in",
)
async def acknowledge(session_id: str, session_service: SessionServiceDep):
    """The user confirms they are safe. Stands down a running escalation."""
    return SessionResponse.from_domain(await session_service.check_in(session_id))


@router.post(
    "/{session_id}/trigger",
    response_model=SessionResponse,
    summary="Feed a raw trigger event",
)
async def trigger(session_id: str, request: TriggerRequest, session_service: SessionServiceDep):
    """
    Feed an already detected trigger into the session.

    `manual` acts as a check-in. `motion` and `voice` ask the user to confirm
    they are safe; repeated triggers inside the refractory window are ignored.
    """
    session = await session_service.trigger(
        session_id, request.kind, request.value, timestamp=request.timestamp
    )
    return SessionResponse.from_domain(session)


@router.post(
    "/{session_id}/motion",
    response_model=DetectionResponse,
    summary="Feed accelerometer samples",
)
async def feed_motion(
    session_id: str,
    request: MotionSamplesRequest,
    session_service: SessionServiceDep,
    engine: EngineDep,
):
    samples = [MotionSample(x=s.x, y=s.y, z=s.z) for s in request.samples]
    try:
        detected = await session_service.feed_motion(session_id, samples)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DetectionResponse(
        detected=detected,
        session=SessionResponse.from_domain(await engine.get_session(session_id)),
    )


@router.post(
    "/{session_id}/voice",
    response_model=DetectionResponse,
    summary="Feed speech recognition results",
)
async def feed_voice(
    session_id: str,
    request: VoiceResultsRequest,
    session_service: SessionServiceDep,
    engine: EngineDep,
):
    results = [(r.transcript, r.confidence) for r in request.results]
    try:
        detected = await session_service.feed_voice(session_id, results)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DetectionResponse(
        detected=detected,
        session=SessionResponse.from_domain(await engine.get_session(session_id)),
    )


@router.post(
    "/{session_id}/complete",
    response_model=SessionResponse,
    summary="Complete a session",
)
async def complete(session_id: str, session_service: SessionServiceDep):
    """End the session normally. Completing a finished session is a no-op."""
    return SessionResponse.from_domain(await session_service.complete(session_id))


@router.post(
    "/{session_id}/cancel",
    response_model=SessionResponse,
    summary="Cancel a session",
)
async def cancel(session_id: str, session_service: SessionServiceDep):
    """Stop the session and every pending countdown."""
    return SessionResponse.from_domain(await session_service.cancel(session_id))

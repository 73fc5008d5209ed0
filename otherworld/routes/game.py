"""Game endpoints: allocation, playing, ending and restart."""

from fastapi import APIRouter, HTTPException, Request

from otherworld.game import GameSession

from .models import AllocateBody, ChoiceBody, RecordBody, StepBody

router = APIRouter(prefix="/game")


def _session(request: Request) -> GameSession:
    return request.app.state.session


@router.get("")
async def get_game(request: Request):
    """Current phase, life state, allocation, scheduler and ending view."""
    return _session(request).snapshot()


@router.post("/allocate")
async def allocate(request: Request, body: AllocateBody):
    """Set one attribute. Overspending is ignored (accepted=false)."""
    session = _session(request)
    try:
        accepted = session.allocate(body.attribute, body.value)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"accepted": accepted, **session.snapshot()}


@router.post("/step")
async def step(request: Request, body: StepBody):
    """Increase or decrease one attribute by a single point."""
    session = _session(request)
    try:
        accepted = session.step(body.attribute, body.delta)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"accepted": accepted, **session.snapshot()}


@router.post("/start")
async def start(request: Request):
    """Begin a life with the allocated attributes."""
    session = _session(request)
    try:
        session.start_life()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return session.snapshot()


@router.post("/proceed")
async def proceed(request: Request):
    """Manually fetch the next batch of events (auto mode off)."""
    session = _session(request)
    try:
        fetched = await session.proceed()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"fetched": fetched, **session.snapshot()}


@router.post("/choice")
async def choice(request: Request, body: ChoiceBody):
    """Resolve the pending choice; turns auto mode on."""
    session = _session(request)
    try:
        fetched = await session.select_choice(body.option_id)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return {"fetched": fetched, **session.snapshot()}


@router.post("/auto")
async def toggle_auto(request: Request):
    """Toggle auto mode."""
    session = _session(request)
    try:
        session.toggle_auto()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return session.snapshot()


@router.post("/ending")
async def open_ending(request: Request):
    """Conclude the life: score it and produce the inheritance text (once)."""
    session = _session(request)
    try:
        summary = await session.open_ending()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return summary.model_dump(mode="json", by_alias=True)


@router.put("/record")
async def edit_record(request: Request, body: RecordBody):
    """Edit the awakened record text before committing it."""
    session = _session(request)
    try:
        summary = session.edit_record_text(body.text)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return summary.model_dump(mode="json", by_alias=True)


@router.post("/record/commit")
async def commit_record(request: Request):
    """Persist the edited record and start over."""
    session = _session(request)
    try:
        session.commit_record()
    except ValueError as e:
        raise HTTPException(400, str(e))
    return session.snapshot()


@router.post("/restart")
async def restart(request: Request):
    """Return to attribute allocation with the carried-over bonus."""
    session = _session(request)
    session.restart()
    return session.snapshot()

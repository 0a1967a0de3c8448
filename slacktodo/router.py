from fastapi import APIRouter, Depends, Request

from slacktodo.forms import SlashCommand, slash_command

router = APIRouter()


async def _run(request: Request, name: str, command: SlashCommand) -> dict:
    state = request.app.state
    outcome = await state.commands.dispatch(name, command, state.store)
    return outcome.to_response()


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.post("/add")
async def add(request: Request, command: SlashCommand = Depends(slash_command)):
    return await _run(request, "add", command)


@router.post("/done")
async def done(request: Request, command: SlashCommand = Depends(slash_command)):
    return await _run(request, "done", command)


@router.post("/list")
async def list_(request: Request, command: SlashCommand = Depends(slash_command)):
    return await _run(request, "list", command)


@router.post("/slack/commands")
async def slack_commands(request: Request, command: SlashCommand = Depends(slash_command)):
    # One request URL for every command; Slack sends the name in the form
    return await _run(request, command.command, command)

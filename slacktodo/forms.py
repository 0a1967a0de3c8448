from typing import Optional
from urllib.parse import parse_qs

from fastapi import Depends
from pydantic import BaseModel

from slacktodo.security import verify_slack_request


class SlashCommand(BaseModel):
    """Fields Slack posts for a slash command invocation."""
    command: str = ""
    text: str = ""
    user_id: str = ""
    user_name: Optional[str] = None
    team_id: Optional[str] = None
    channel_id: Optional[str] = None
    response_url: Optional[str] = None
    trigger_id: Optional[str] = None


def parse_form(raw_body: bytes) -> dict[str, str]:
    """
    Decode an application/x-www-form-urlencoded body into field -> value.
    Repeated fields keep their first value.
    """
    params = parse_qs(raw_body.decode("utf-8", errors="replace"), keep_blank_values=True)
    return {key: values[0] for key, values in params.items()}


async def slash_command(raw_body: bytes = Depends(verify_slack_request)) -> SlashCommand:
    # Only reachable with a verified body
    fields = parse_form(raw_body)
    return SlashCommand(**fields)

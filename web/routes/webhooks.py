"""
Demo service callbacks.

The demo service reports a finished download (demoReady) and a finished
parse (demoParsed). Payloads are validated before anything is stored.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from errors import ValidationError
from event_logger import log_event
from services.pipeline import MatchPipeline

router = APIRouter(prefix="/webhooks")


class DemoReadyData(BaseModel):
    share_code: str
    demo_path: str
    steam_ids: Optional[List[str]] = None


class DemoParsedData(BaseModel):
    share_code: str
    demo_path: str = ""
    stats: Any = None
    steam_ids: Optional[List[str]] = None


class DemoReadyPayload(BaseModel):
    success: bool
    message: str = ""
    data: DemoReadyData


class DemoParsedPayload(BaseModel):
    success: bool
    message: str = ""
    data: DemoParsedData


def _pipeline(request: Request) -> MatchPipeline:
    return request.app.state.pipeline


def _check_payload(event: str, success: bool, message: str, share_code: str) -> str:
    """
    Reject callbacks that report a failure or carry no share code.

    Returns:
        The stripped share code
    """
    if not success:
        print(f"⚠️ {event} webhook reported failure: {message}")
        log_event("webhook_rejected", webhook=event, reason="failure_reported", message=message)
        raise ValidationError(f"{event} reported failure: {message}")

    share_code = share_code.strip()
    if not share_code:
        log_event("webhook_rejected", webhook=event, reason="missing_share_code")
        raise ValidationError("share_code is required")
    return share_code


@router.post("/demoReady")
async def demo_ready(payload: DemoReadyPayload, request: Request) -> Dict[str, str]:
    """
    A demo was downloaded: persist its path and request parsing.
    """
    share_code = _check_payload(
        "demoReady", payload.success, payload.message, payload.data.share_code
    )
    demo_path = payload.data.demo_path.strip()
    if not demo_path:
        log_event("webhook_rejected", webhook="demoReady", reason="missing_demo_path")
        raise ValidationError("demo_path is required")

    print(f"📦 Demo ready for {share_code}: {demo_path}")
    log_event("webhook_demo_ready", share_code=share_code, demo_path=demo_path)
    game, parse_requested = await _pipeline(request).demo_ready(
        share_code, demo_path, steam_ids=payload.data.steam_ids
    )

    message = "Demo ready processed"
    if not game.is_parsed and not parse_requested:
        message += ", parse request pending"
    return {"status": "success", "message": message}


@router.post("/demoParsed")
async def demo_parsed(payload: DemoParsedPayload, request: Request) -> Dict[str, str]:
    """
    A demo was parsed: mark the game parsed and notify interested guilds.
    """
    share_code = _check_payload(
        "demoParsed", payload.success, payload.message, payload.data.share_code
    )

    print(f"📊 Demo parsed for {share_code}")
    log_event("webhook_demo_parsed", share_code=share_code)
    _, notified = await _pipeline(request).demo_parsed(
        share_code,
        demo_path=payload.data.demo_path.strip() or None,
        stats=payload.data.stats,
        steam_ids=payload.data.steam_ids,
    )
    return {
        "status": "success",
        "message": f"Demo parsed processed, {len(notified)} guild(s) notified",
    }

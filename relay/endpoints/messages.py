"""
Message relay endpoint.
"""
import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from dispatcher import Task
from errors import PreconditionViolation, TimeoutExceeded
from settings import TASK_TIMEOUT

from ..models import RelayErrorResponse, RelayMessageRequest, RelayMessageResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def _error_response(status_code: int, error: BaseException) -> JSONResponse:
    body = RelayErrorResponse(error=str(error), type=type(error).__name__)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post("/v1/messages", response_model=RelayMessageResponse)
async def relay_message(body: RelayMessageRequest, request: Request):
    """Queue a message for the user's conversation and wait for the reply

    Messages of the same user_id are answered in order; "!reset" starts a
    new conversation.
    """
    task_manager = request.app.state.task_manager
    loop = asyncio.get_running_loop()
    reply_future: asyncio.Future = loop.create_future()

    def on_reply(reply: str, error: Optional[BaseException]) -> None:
        if reply_future.done():
            return
        if error is not None:
            reply_future.set_exception(error)
        else:
            reply_future.set_result(reply)

    timeout = body.timeout if body.timeout is not None else TASK_TIMEOUT
    try:
        await task_manager.send_task(Task(body.user_id, body.content, timeout, on_reply))
    except PreconditionViolation as e:
        return _error_response(503, e)

    try:
        reply = await reply_future
    except TimeoutExceeded as e:
        logger.warning(f"Reply for {body.user_id} timed out: {e}")
        return _error_response(504, e)
    except Exception as e:
        logger.warning(f"Reply for {body.user_id} failed: {e}")
        return _error_response(502, e)

    return RelayMessageResponse(user_id=body.user_id, reply=reply)

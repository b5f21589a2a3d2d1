from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from server.dependencies.auth import get_caller
from server.models.requests import ChatRequest
from server.models.responses import ChatContent, ChatResponse
from shared.errors import QuotaExceededError
from shared.models.caller import Caller

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(
    request: Request,
    body: ChatRequest,
    caller: Caller = Depends(get_caller),
):
    """Answer the latest message of a support conversation.

    Args:
        request (Request): FastAPI request (provides app.state.chat_service).
        body (ChatRequest): The conversation so far, last message from the user.
        caller (Caller): The authenticated dashboard user.

    Returns:
        ChatResponse | JSONResponse: The reply, or an {"error": ...} body with 429/500.
    """
    chat_service = request.app.state.chat_service
    try:
        reply = await chat_service.do_chat(caller, [message.model_dump() for message in body.messages])
    except QuotaExceededError as exc:
        return JSONResponse(status_code=429, content={"error": str(exc)})
    except Exception as exc:
        request.app.state.logging.exception("Chat API error for user '%s': %s", caller.user_id, exc)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
    return ChatResponse(content=[ChatContent(text=reply)])

from fastapi import Depends, Header, HTTPException, Request

from shared.models.caller import Caller


async def verify_api_key(request: Request, x_api_key: str = Header(...)) -> None:
    """Verify the X-Api-Key header against the configured API key.

    Args:
        request (Request): The FastAPI request object (provides app.state).
        x_api_key (str): The value of the X-Api-Key header.

    Raises:
        HTTPException: 401 if the key is missing or does not match.
    """
    helper_config = request.app.state.helper_config
    expected_key = helper_config.get_string_val("API_SERVER_API_KEY")
    if x_api_key != expected_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


async def get_caller(
    _: None = Depends(verify_api_key),
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Caller:
    """Resolve the dashboard user forwarded by the gateway.

    The gateway authenticates the user and passes id and role as headers;
    they are trusted once the API key matched.

    Raises:
        HTTPException: 401 if no user id was forwarded.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Caller(user_id=x_user_id.strip(), role=x_user_role)


async def require_admin(caller: Caller = Depends(get_caller)) -> Caller:
    """
    Raises:
        HTTPException: 403 if the caller is not an admin.
    """
    if not caller.is_admin():
        raise HTTPException(status_code=403, detail="Only admins can upload documents")
    return caller

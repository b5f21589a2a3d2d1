from pydantic import BaseModel

ADMIN_ROLE = "admin"


class Caller(BaseModel):
    """The authenticated dashboard user behind a request."""

    user_id: str
    role: str | None = None

    def is_admin(self) -> bool:
        return (self.role or "").lower() == ADMIN_ROLE

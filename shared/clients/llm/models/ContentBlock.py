from pydantic import BaseModel, ConfigDict


class ContentBlock(BaseModel):
    """One block of a completion response. Only "text" blocks carry text."""

    model_config = ConfigDict(extra="allow")

    type: str
    text: str | None = None

    def is_text(self) -> bool:
        return self.type == "text" and self.text is not None

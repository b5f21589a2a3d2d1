from typing import Literal

from pydantic import BaseModel


class EnvConfig(BaseModel):
    """
    A single environment setting a client needs before it can boot.

    The full variable name is derived by the client as
    <CLIENT_TYPE>_<ENGINE>_<ENV_KEY>, e.g. "EMBED_VOYAGE_API_KEY".

    Attributes:
        env_key (str): The engine-relative key, e.g. "API_KEY".
        val_type (str): How to parse the value: "string", "number" or "bool".
        default (str | int | float | bool | None): Value used when unset. None marks the setting as required.
    """

    env_key: str
    val_type: Literal["string", "number", "bool"] = "string"
    default: str | int | float | bool | None = None

from typing import Optional

from pydantic import BaseModel


class Principal(BaseModel):
    """Authenticated caller, as asserted by the auth layer.

    Only the identifier and the subscription tier are consumed here; every
    service call receives ``user_id`` explicitly.
    """

    user_id: int
    tier: str = "free"


class TokenData(BaseModel):
    user_id: Optional[int] = None
    user_type: Optional[str] = None

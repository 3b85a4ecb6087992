from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class AccountResponse(BaseModel):
    id: int
    user_login: str
    role: str
    phone_number: Optional[str] = None
    created_at: datetime

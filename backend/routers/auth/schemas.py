from pydantic import BaseModel
from typing import Optional

# Response schemas
class CurrentUserResponse(BaseModel):
    user_id: str
    email: Optional[str] = None
    role: str

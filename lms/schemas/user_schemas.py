from pydantic import BaseModel
from typing import Optional

class User(BaseModel):
    id: int
    email: str
    full_name: Optional[str] = None
    is_admin: bool = False

from typing import Optional

from pydantic import BaseModel, ConfigDict

from storefront.models.profile import Role


class ProfileOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    email: str
    full_name: Optional[str] = None
    role: Role

from pydantic import BaseModel, ConfigDict, EmailStr

from storefront.models.email_setting import EmailSettingType


class EmailSettingIn(BaseModel):
    type: EmailSettingType
    email: EmailStr
    active: bool = True


class EmailSettingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: str
    type: EmailSettingType
    email: str
    active: bool

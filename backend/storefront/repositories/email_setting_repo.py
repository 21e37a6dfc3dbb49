from typing import List, Optional

from sqlalchemy.orm import Session

from storefront.models.email_setting import EmailSetting, EmailSettingType


class EmailSettingRepository:
    def __init__(self, db: Session):
        self.db = db

    def list(self) -> List[EmailSetting]:
        return self.db.query(EmailSetting).order_by(EmailSetting.type, EmailSetting.email).all()

    def active_addresses(self, setting_type: EmailSettingType) -> List[str]:
        rows = (
            self.db.query(EmailSetting.email)
            .filter(EmailSetting.type == setting_type, EmailSetting.active == True)  # noqa: E712
            .order_by(EmailSetting.email)
            .all()
        )
        return [r.email for r in rows]

    def get(self, setting_id: str) -> Optional[EmailSetting]:
        return self.db.get(EmailSetting, setting_id)

    def create(self, setting_type: EmailSettingType, email: str, active: bool = True) -> EmailSetting:
        s = EmailSetting(type=setting_type, email=email, active=active)
        self.db.add(s)
        self.db.flush()
        return s

    def update(self, setting: EmailSetting, **fields) -> EmailSetting:
        for key, value in fields.items():
            setattr(setting, key, value)
        self.db.flush()
        return setting

    def delete(self, setting: EmailSetting) -> None:
        self.db.delete(setting)
        self.db.flush()

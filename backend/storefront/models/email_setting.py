import enum
import uuid

from sqlalchemy import Boolean, Column, Enum, String

from storefront.db import Base


class EmailSettingType(str, enum.Enum):
    CUSTOMER_NOTIFICATION = "customer_notification"
    INTERNAL_NOTIFICATION = "internal_notification"


class EmailSetting(Base):
    __tablename__ = "email_settings"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(
        Enum(EmailSettingType, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        index=True,
    )
    email = Column(String(320), nullable=False)
    active = Column(Boolean, default=True, nullable=False)

import enum

from sqlalchemy import Column, DateTime, Enum, String, func

from storefront.db import Base


class Role(str, enum.Enum):
    CUSTOMER = "customer"
    SALES = "sales"
    ADMIN = "admin"

    @property
    def can_manage_store(self) -> bool:
        return self in (Role.SALES, Role.ADMIN)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(320), unique=True, index=True, nullable=False)
    full_name = Column(String(256), nullable=True)
    role = Column(
        Enum(Role, values_callable=lambda e: [m.value for m in e], native_enum=False),
        nullable=False,
        default=Role.CUSTOMER,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @property
    def display_name(self) -> str:
        return self.full_name or self.email

    def __repr__(self):
        return f"<Profile email={self.email} role={self.role}>"

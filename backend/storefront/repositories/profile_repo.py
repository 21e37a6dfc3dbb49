from typing import Optional

from sqlalchemy.orm import Session

from storefront.models.profile import Profile, Role


class ProfileRepository:
    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: str) -> Optional[Profile]:
        return self.db.get(Profile, user_id)

    def get_by_email(self, email: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.email == email).first()

    def create_or_update(
        self, user_id: str, email: str, full_name: Optional[str] = None, role: Role = Role.CUSTOMER
    ) -> Profile:
        p = self.get(user_id)
        if p:
            p.email = email
            p.full_name = full_name
            p.role = role
        else:
            p = Profile(id=user_id, email=email, full_name=full_name, role=role)
            self.db.add(p)
        self.db.flush()
        return p

from models.base_model import Base, BaseModel
from sqlalchemy import Column, String, JSON, Boolean, false


class User(BaseModel, Base):
    __tablename__ = "users"
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    # single-use value shared by the activation and password-reset flows
    secret_token = Column(String(36), nullable=False, unique=True, index=True)
    active = Column(Boolean, nullable=False, default=False, server_default=false())
    default_role = Column(String(64), nullable=False, default="user")
    roles = Column(JSON, nullable=False, default=lambda: [])

    def __repr__(self):
        return f"<User username={self.username} active={self.active}>"

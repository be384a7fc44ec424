from models.base_model import Base
from models.user import User
from models.refresh_token import RefreshToken
from models.db_storage import DBStorage
from models.credential_store import CredentialStore

__all__ = ["Base", "User", "RefreshToken", "DBStorage", "CredentialStore"]

from app.core.config import settings, auth_config, AuthConfig
from app.core.database import Base, engine, SessionLocal

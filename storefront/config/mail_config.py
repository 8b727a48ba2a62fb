from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    RESEND_API_KEY: Optional[str] = None    # unset -> mails are logged and skipped
    MAIL_FROM: str = "Forge & Bolt <no-reply@forgebolt.shop>"

    class Config:
        env_file = ".env"
        extra="ignore"

mail_settings = Settings()

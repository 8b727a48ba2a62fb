from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    MEDIA_TMP_DIR: str = "/tmp/storefront_uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    CLOUDINARY_CLOUD_NAME: str = ""
    CLOUDINARY_API_KEY: str = ""
    CLOUDINARY_API_SECRET: str = ""
    CLOUDINARY_FOLDER: str = "storefront"

    class Config:
        env_file = ".env"
        extra="ignore"

media_settings = Settings()

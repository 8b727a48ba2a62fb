import asyncio
from pathlib import Path
import cloudinary
import cloudinary.uploader
from fastapi import UploadFile
from storefront import logger
from storefront.common.custom_exceptions import BadRequest, GatewayError, PayloadTooLarge
from storefront.config.media_config import media_settings
from storefront.image_uploads.utils import FileUpload, UploadTooLarge

file_upload = FileUpload()


class CloudinaryImageStorage:
    """Pushes verified image files to Cloudinary and hands back the public https url."""

    def __init__(self, cloud_name: str = media_settings.CLOUDINARY_CLOUD_NAME,
                 api_key: str = media_settings.CLOUDINARY_API_KEY,
                 api_secret: str = media_settings.CLOUDINARY_API_SECRET,
                 base_folder: str = media_settings.CLOUDINARY_FOLDER):
        self.base_folder = base_folder
        cloudinary.config(cloud_name=cloud_name, api_key=api_key, api_secret=api_secret, secure=True)

    def _upload_sync(self, path: Path, folder: str) -> str:
        result = cloudinary.uploader.upload(
            str(path),
            folder=f"{self.base_folder}/{folder}",
            resource_type="image",
        )
        return result["secure_url"]

    async def upload(self, path: Path, folder: str) -> str:
        try:
            return await asyncio.to_thread(self._upload_sync, path, folder)
        except Exception as e:
            logger.error("image.upload.failed", extra={"folder": folder, "error": str(e)})
            raise GatewayError("Image storage unavailable")


async def store_image_upload(file: UploadFile, storage, folder: str) -> str:
    """Stream the upload to a temp file, verify it is an image, push it to storage, always clean up."""
    if not file.content_type or file.content_type.split("/")[0] not in FileUpload.ALLOWED_TOP_LEVEL:
        raise BadRequest("Only image uploads allowed")

    tmp_path = file_upload.make_tmp_path()
    try:
        try:
            size = await asyncio.to_thread(file_upload.stream_save_to_disk_sync, file.file, tmp_path)
        except UploadTooLarge as e:
            raise PayloadTooLarge(str(e))

        try:
            await asyncio.to_thread(file_upload.verify_image_sync, tmp_path)
        except ValueError:
            logger.warning("image.upload.invalid", extra={"upload_name": file.filename, "size": size})
            raise BadRequest("Uploaded file is not a valid image")

        url = await storage.upload(tmp_path, folder)
        logger.info("image.upload.stored", extra={"folder": folder, "size": size})
        return url
    finally:
        tmp_path.unlink(missing_ok=True)

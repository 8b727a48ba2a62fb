from pathlib import Path
import uuid
from PIL import Image, UnidentifiedImageError
from storefront.config.media_config import media_settings


class UploadTooLarge(ValueError):
    pass


class FileUpload:
    MAX_UPLOAD_SIZE = media_settings.MAX_UPLOAD_BYTES
    TMP_ROOT = media_settings.MEDIA_TMP_DIR
    ALLOWED_TOP_LEVEL = ("image",)      # Content-Type header quick check
    CHUNK_SIZE = 1024 * 1024            # 1MB chunk reads

    def make_tmp_path(self) -> Path:
        tmp_dir = Path(FileUpload.TMP_ROOT)
        tmp_dir.mkdir(parents=True, exist_ok=True)
        return tmp_dir / f"upload_{uuid.uuid4().hex}.tmp"

    def stream_save_to_disk_sync(self, src_file, tmp_path: Path) -> int:
        total = 0
        max_size = FileUpload.MAX_UPLOAD_SIZE

        with open(tmp_path, "wb") as w:
            while True:
                chunk = src_file.read(FileUpload.CHUNK_SIZE)
                if not chunk:
                    break
                total += len(chunk)
                if max_size and total > max_size:
                    raise UploadTooLarge(f"file too large (max {max_size} bytes)")
                w.write(chunk)
        return total

    def verify_image_sync(self, tmp_path: Path) -> str:
        """Raises ValueError when the file is not a decodable image; returns the detected format."""
        try:
            with Image.open(tmp_path) as img:
                img.verify()
                return (img.format or "").lower()
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValueError(f"not a valid image: {e}")

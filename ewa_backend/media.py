import os
from datetime import datetime
from typing import Dict, List, Optional
from urllib.parse import urljoin
from uuid import uuid4

from flask import request
from werkzeug.utils import secure_filename

from .errors import NotFoundError, ValidationError

MEDIA_FOLDERS = {
    "product": "products",
    "category": "category",
    "brand": "brands",
    "poster": "posters",
    "users": "users",
    "general": "media",
}
ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
ALLOWED_MIMETYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
MAX_FILES_PER_UPLOAD = 10


class MediaStorage:

    def __init__(self, upload_root: str, public_base_url: str = "", max_file_bytes: int = 5 * 1024 * 1024):
        self.upload_root = os.path.abspath(upload_root)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_file_bytes = max_file_bytes

    def ensure_folders(self):
        for folder in MEDIA_FOLDERS.values():
            os.makedirs(os.path.join(self.upload_root, folder), exist_ok=True)

    def folder_for(self, media_type: Optional[str]) -> str:
        media_type = media_type or "general"
        if media_type not in MEDIA_FOLDERS:
            raise ValidationError(
                "Invalid media type. Allowed types: " + ", ".join(MEDIA_FOLDERS) + "."
            )
        return MEDIA_FOLDERS[media_type]

    def directory_for(self, media_type: Optional[str]) -> str:
        return os.path.join(self.upload_root, self.folder_for(media_type))

    def directory_for_folder(self, folder: str) -> Optional[str]:
        if folder not in MEDIA_FOLDERS.values():
            return None
        return os.path.join(self.upload_root, folder)

    def build_url(self, media_type: Optional[str], filename: str) -> str:
        base_url = self.public_base_url or request.host_url.rstrip("/")
        return urljoin(base_url + "/", f"image/{self.folder_for(media_type)}/{filename}")

    def _check_file(self, upload) -> str:
        if not upload or not getattr(upload, "filename", ""):
            raise ValidationError("No file uploaded.")

        original_filename = secure_filename(upload.filename)
        if not original_filename:
            raise ValidationError("Please choose a valid file name.")

        extension = os.path.splitext(original_filename)[1].lower().lstrip(".")
        mimetype = (upload.mimetype or "").lower()
        if extension not in ALLOWED_EXTENSIONS or (mimetype and mimetype not in ALLOWED_MIMETYPES):
            raise ValidationError("Only image files (JPEG, PNG, GIF, WebP) are allowed!")
        return original_filename

    def _file_size(self, upload) -> int:
        stream = upload.stream
        position = stream.tell()
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(position)
        return size

    def save(self, upload, media_type: Optional[str] = None) -> Dict:
        directory = self.directory_for(media_type)
        original_filename = self._check_file(upload)
        size = self._file_size(upload)
        if size > self.max_file_bytes:
            raise ValidationError(
                f"File size is too large. Maximum filesize is {self.max_file_bytes // (1024 * 1024)}MB."
            )

        stem, extension = os.path.splitext(original_filename)
        unique_filename = f"{stem}_{uuid4().hex[:12]}{extension.lower()}"
        os.makedirs(directory, exist_ok=True)
        upload.save(os.path.join(directory, unique_filename))

        return {
            "filename": unique_filename,
            "originalname": upload.filename,
            "mimetype": upload.mimetype,
            "size": size,
            "url": self.build_url(media_type, unique_filename),
            "mediaType": media_type or "general",
            "uploadDate": datetime.utcnow(),
        }

    def save_many(self, uploads, media_type: Optional[str] = None) -> List[Dict]:
        uploads = [item for item in uploads if item and getattr(item, "filename", "")]
        if not uploads:
            raise ValidationError("No files uploaded.")
        if len(uploads) > MAX_FILES_PER_UPLOAD:
            raise ValidationError(f"Too many files. Maximum {MAX_FILES_PER_UPLOAD} files allowed.")

        saved: List[Dict] = []
        try:
            for upload in uploads:
                saved.append(self.save(upload, media_type))
        except ValidationError:
            for item in saved:
                self.remove(item["filename"], media_type)
            raise
        return saved

    def remove(self, filename: str, media_type: Optional[str] = None):
        target = os.path.join(self.directory_for(media_type), filename)
        try:
            os.remove(target)
        except FileNotFoundError:
            return

    def delete(self, filename: str, media_type: Optional[str] = None):
        directory = self.directory_for(media_type)
        if not filename or ".." in filename or "/" in filename or "\\" in filename:
            raise ValidationError("Invalid filename.")

        target = os.path.join(directory, filename)
        if not os.path.isfile(target):
            raise NotFoundError("File not found.")
        os.remove(target)

    def list_files(self, media_type: Optional[str] = None, search: str = "") -> List[Dict]:
        directory = self.directory_for(media_type)
        if not os.path.isdir(directory):
            return []

        search = (search or "").lower()
        files = []
        for filename in os.listdir(directory):
            extension = os.path.splitext(filename)[1].lower().lstrip(".")
            if extension not in ALLOWED_EXTENSIONS:
                continue
            original_name = filename.split("_")[0]
            if search and search not in filename.lower() and search not in original_name.lower():
                continue
            stats = os.stat(os.path.join(directory, filename))
            files.append(
                {
                    "filename": filename,
                    "originalName": original_name,
                    "url": self.build_url(media_type, filename),
                    "size": stats.st_size,
                    "mediaType": media_type or "general",
                    "uploadDate": datetime.utcfromtimestamp(stats.st_mtime),
                    "mimeType": f"image/{extension}",
                }
            )
        return files

"""
File management utilities
"""
import os
import re
from typing import Optional
from pathlib import Path
import aiofiles
import logging
from datetime import datetime

from config.settings import settings
from core.input_handler import SUPPORTED_VIDEO_FORMATS
from utils.exceptions import FileManagerError, ValidationError

logger = logging.getLogger(__name__)

SUBJECT_CODE_PATTERN = re.compile(r"[A-Za-z0-9_-]{1,10}")

def validate_subject_code(code: Optional[str]) -> str:
    """
    Check an operator-supplied subject code

    Args:
        code: 1-10 letters, digits, '_' or '-'

    Returns:
        The code unchanged

    Raises:
        ValidationError: the code does not match
    """
    if code is None or not SUBJECT_CODE_PATTERN.fullmatch(code):
        raise ValidationError("Subject code must be 1-10 characters (letters, digits, '_' or '-')")
    return code

def build_export_filename(subject_id: Optional[str], now: Optional[datetime] = None) -> str:
    """
    File name for a JSON export, e.g. pose_data_P01_2024-05-01T10-20-30-123456.json
    """
    stamp = (now or datetime.now()).isoformat()
    stamp = stamp.replace(":", "-").replace(".", "-")
    return f"pose_data_{subject_id or 'anon'}_{stamp}.json"

class FileManager:
    """File manager"""

    def __init__(self):
        self.supported_formats = SUPPORTED_VIDEO_FORMATS
        self.temp_dir = Path(settings.TEMP_DIR)
        self.json_dir = Path(settings.JSON_OUTPUT_DIR)

    def validate_file(self, filename: str) -> bool:
        """
        Check the extension of an uploaded video
        """
        return Path(filename).suffix.lower() in self.supported_formats

    def export_path(self, subject_id: Optional[str], suffix: str = ".json") -> Path:
        name = build_export_filename(subject_id)
        return self.json_dir / (Path(name).stem + suffix)

    async def save_upload_file(self, file, task_id: str) -> str:
        """
        Save an uploaded file to the temp directory

        Args:
            file: uploaded file object
            task_id: unique prefix

        Returns:
            Saved file path
        """
        try:
            filename = f"{task_id}_{Path(file.filename).name}"
            file_path = os.path.join(self.temp_dir, filename)

            async with aiofiles.open(file_path, 'wb') as f:
                content = await file.read()
                await f.write(content)

            logger.info(f"File saved: {file_path}")
            return file_path

        except OSError as e:
            logger.error(f"Failed to save file: {str(e)}")
            raise FileManagerError(f"Failed to save file: {str(e)}")

    def cleanup_temp_files(self, max_age_hours: int = 24):
        """
        Remove old uploads

        Args:
            max_age_hours: maximum age in hours
        """
        current_time = datetime.now()
        for file_path in self.temp_dir.iterdir():
            if not file_path.is_file():
                continue
            file_age = current_time - datetime.fromtimestamp(file_path.stat().st_mtime)
            if file_age.total_seconds() > max_age_hours * 3600:
                try:
                    file_path.unlink()
                    logger.info(f"Removed temp file: {file_path}")
                except OSError as e:
                    logger.error(f"Failed to remove temp file {file_path}: {str(e)}")

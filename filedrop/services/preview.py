"""
Preview Service - Single Responsibility: render staging previews.

- images: JPEG thumbnail embedded as a data URL (nothing to release)
- PDFs: temporary copy exposed as a file URL, deleted on release
- anything else: no preview
"""
import base64
import io
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from PIL import Image, UnidentifiedImageError

from ..models import FileSource, Preview, UploadConfig
from ..protocols import IPreviewRenderer

logger = logging.getLogger(__name__)


def is_image(source: FileSource) -> bool:
    return source.mime_type.startswith("image/")


def is_pdf(source: FileSource) -> bool:
    return source.mime_type == "application/pdf"


class PreviewService(IPreviewRenderer):
    """
    Service for rendering previews of staged files.

    Uses Pillow for image thumbnails.
    """

    def __init__(self, config: Optional[UploadConfig] = None, preview_dir: Optional[Path] = None):
        self._config = config or UploadConfig()
        self._preview_dir = Path(preview_dir) if preview_dir else None

    def render(self, source: FileSource) -> Optional[Preview]:
        """
        Render preview for a staged file.

        Args:
            source: Staged file

        Returns:
            Preview or None when the type is unsupported or unreadable
        """
        if is_image(source):
            return self._render_image(source)
        if is_pdf(source):
            return self._render_pdf(source)
        return None

    def release(self, preview: Preview) -> None:
        """Delete the temp file backing a preview, if any."""
        if preview.path is None:
            return
        try:
            preview.path.unlink(missing_ok=True)
            if preview.path.parent.name.startswith("preview_"):
                shutil.rmtree(preview.path.parent, ignore_errors=True)
        except OSError as e:
            logger.warning(f"[preview] Could not release {preview.path}: {e}")

    def _render_image(self, source: FileSource) -> Optional[Preview]:
        max_size = self._config.preview_max_size
        try:
            with Image.open(source.path) as img:
                img.thumbnail((max_size, max_size))
                if img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                buffer = io.BytesIO()
                img.save(buffer, format="JPEG", quality=85)
        except (OSError, UnidentifiedImageError) as e:
            logger.warning(f"[preview] Could not render image preview for {source.name}: {e}")
            return None

        encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
        return Preview(kind="image", url=f"data:image/jpeg;base64,{encoded}")

    def _render_pdf(self, source: FileSource) -> Optional[Preview]:
        tmp_dir = None
        try:
            if self._preview_dir is not None:
                self._preview_dir.mkdir(parents=True, exist_ok=True)
            tmp_dir = Path(tempfile.mkdtemp(prefix="preview_", dir=self._preview_dir))
            target = tmp_dir / Path(source.name).name
            shutil.copyfile(source.path, target)
        except OSError as e:
            logger.warning(f"[preview] Could not render PDF preview for {source.name}: {e}")
            if tmp_dir is not None:
                shutil.rmtree(tmp_dir, ignore_errors=True)
            return None

        logger.debug(f"[preview] PDF preview for {source.name} at {target}")
        return Preview(kind="pdf", url=target.resolve().as_uri(), path=target)

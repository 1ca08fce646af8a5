"""
Text extraction for uploaded medical documents.

Images are recognised with Tesseract through pytesseract, one frame at a time
so multi-page TIFFs report progress. PDFs are read through their text layer
with PyPDF2; scanned PDFs without one yield ``PDF_PLACEHOLDER_TEXT``.
"""

import asyncio
import io
from typing import Callable, Optional

import pytesseract
from PIL import Image, ImageSequence, UnidentifiedImageError
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from ..config.settings import get_settings
from ..utils.exceptions import OcrError, UnsupportedMediaType
from ..utils.logging import get_logger

logger = get_logger(__name__, prefix="OCR")

PDF_PLACEHOLDER_TEXT = "PDF document uploaded - text extraction not available"

ProgressCallback = Callable[[float], None]


def is_supported_media_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    return content_type.startswith("image/") or content_type == "application/pdf"


class TextExtractor:
    """Turns uploaded file bytes into plain text."""

    def __init__(self, language: str = "eng", tesseract_cmd: Optional[str] = None):
        self.language = language
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    async def extract(
        self,
        data: bytes,
        content_type: Optional[str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Extract text from a file.

        Recognition runs in a worker thread; ``on_progress`` is invoked from
        that thread with values in [0, 1].

        Raises:
            UnsupportedMediaType: If the file is neither an image nor a PDF
            OcrError: If the file cannot be read or recognition fails
        """
        if not is_supported_media_type(content_type):
            raise UnsupportedMediaType(
                f"Unsupported file type: {content_type}. Upload an image or PDF."
            )

        if content_type == "application/pdf":
            return await asyncio.to_thread(self._extract_pdf, data, on_progress)
        return await asyncio.to_thread(self._extract_image, data, on_progress)

    def _extract_image(self, data: bytes, on_progress: Optional[ProgressCallback]) -> str:
        _report(on_progress, 0.0)
        try:
            image = Image.open(io.BytesIO(data))
            frames = [frame.copy() for frame in ImageSequence.Iterator(image)]
        except (UnidentifiedImageError, OSError) as e:
            raise OcrError(f"Could not read image: {e}") from e

        texts = []
        for index, frame in enumerate(frames, start=1):
            try:
                text = pytesseract.image_to_string(frame.convert("RGB"), lang=self.language)
            except (pytesseract.TesseractError, pytesseract.TesseractNotFoundError) as e:
                logger.error(f"Tesseract failed on frame {index}/{len(frames)}: {e}")
                raise OcrError(f"Text recognition failed: {e}") from e
            texts.append(text.strip())
            _report(on_progress, index / len(frames))

        logger.info(f"Recognised {len(frames)} frame(s)")
        _report(on_progress, 1.0)
        return "\n".join(t for t in texts if t)

    def _extract_pdf(self, data: bytes, on_progress: Optional[ProgressCallback]) -> str:
        _report(on_progress, 0.0)
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = []
            for pg in reader.pages:
                txt = pg.extract_text()
                if txt and txt.strip():
                    pages.append(txt.strip())
        except (PdfReadError, ValueError, KeyError, TypeError) as e:
            raise OcrError(f"Could not read PDF: {e}") from e
        _report(on_progress, 1.0)

        if not pages:
            logger.info("PDF has no text layer")
            return PDF_PLACEHOLDER_TEXT
        return "\n".join(pages)


def _report(on_progress: Optional[ProgressCallback], value: float) -> None:
    if on_progress is not None:
        on_progress(min(max(value, 0.0), 1.0))


_text_extractor: Optional[TextExtractor] = None


def get_text_extractor() -> TextExtractor:
    """Get the shared text extractor."""
    global _text_extractor
    if _text_extractor is None:
        settings = get_settings()
        _text_extractor = TextExtractor(
            language=settings.OCR_LANGUAGE,
            tesseract_cmd=settings.TESSERACT_CMD,
        )
    return _text_extractor

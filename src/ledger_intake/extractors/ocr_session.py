"""
Session-scoped OCR handle.

The OCR engine is acquired lazily on the first recognition and must be
released by the owner when the session ends (``close()`` or a ``with``
block). Recognition calls against one session are serialized; callers that
want parallel OCR open one session per worker.
"""

import io
import logging
import threading
from typing import Callable, Optional, Protocol

import pytesseract
from PIL import Image

from ..config import OCRConfig

logger = logging.getLogger(__name__)


class OCRError(Exception):
    """Raised when the OCR engine fails or a released session is used."""

    pass


class OCREngine(Protocol):
    """Black-box OCR engine: image bytes -> recognized text."""

    def recognize(self, data: bytes, languages: str) -> str: ...

    def release(self) -> None: ...


class TesseractEngine:
    """OCR engine backed by the tesseract binary via pytesseract."""

    def __init__(self, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd

    def recognize(self, data: bytes, languages: str) -> str:
        with Image.open(io.BytesIO(data)) as image:
            return pytesseract.image_to_string(image, lang=languages)

    def release(self) -> None:
        # tesseract runs one subprocess per call, nothing is held open
        pass


class OCRSession:
    """
    Explicit open/close handle around an OCR engine.

    Usage:
        with OCRSession(config.ocr) as ocr:
            text = ocr.recognize(image_bytes)
    """

    def __init__(
        self,
        config: Optional[OCRConfig] = None,
        engine_factory: Optional[Callable[[], OCREngine]] = None,
    ):
        self.config = config or OCRConfig()
        self._engine_factory = engine_factory or (
            lambda: TesseractEngine(self.config.tesseract_cmd)
        )
        self._engine: Optional[OCREngine] = None
        self._lock = threading.Lock()
        self._closed = False

    @property
    def is_open(self) -> bool:
        """True once the engine has been acquired and not yet released."""
        return self._engine is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def open(self) -> "OCRSession":
        """Acquire the engine now instead of on first use."""
        with self._lock:
            self._ensure_engine()
        return self

    def _ensure_engine(self) -> OCREngine:
        if self._closed:
            raise OCRError("OCR session has been released")
        if self._engine is None:
            logger.debug("Acquiring OCR engine (languages=%s)", self.config.languages)
            self._engine = self._engine_factory()
        return self._engine

    def recognize(self, data: bytes, languages: Optional[str] = None) -> str:
        """
        Recognize text in an image.

        Raises:
            OCRError: on engine failure or if the session was closed
        """
        with self._lock:
            engine = self._ensure_engine()
            try:
                text = engine.recognize(data, languages or self.config.languages)
            except Exception as e:
                raise OCRError(f"OCR recognition failed: {e}") from e
        logger.debug("OCR recognized %d characters", len(text))
        return text

    def close(self) -> None:
        """Release the engine. Safe to call more than once."""
        with self._lock:
            if self._engine is not None:
                try:
                    self._engine.release()
                finally:
                    self._engine = None
                    logger.debug("OCR engine released")
            self._closed = True

    def __enter__(self) -> "OCRSession":
        return self

    def __exit__(self, *args) -> None:
        self.close()

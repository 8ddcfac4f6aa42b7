"""Pool of reusable OCR engines."""

import queue
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from .base import OcrEngine
from ..exceptions import EnginePoolError
from ..logging import get_logger


logger = get_logger(__name__)


class EnginePool:
    """
    Hands out OCR engines to one thread at a time.

    Engines are created lazily by ``factory`` up to ``size``. When all of
    them are checked out, callers wait up to ``checkout_timeout`` seconds
    (forever when None).

    Usage:
        pool = EnginePool(TesseractEngine, size=2)
        with pool.engine() as engine:
            lines = engine.recognize(image_bytes)
        pool.shutdown()
    """

    def __init__(
        self,
        factory: Callable[[], OcrEngine],
        size: int = 1,
        checkout_timeout: Optional[float] = None,
    ):
        if size < 1:
            raise ValueError("Engine pool size must be >= 1")
        self.factory = factory
        self.size = size
        self.checkout_timeout = checkout_timeout
        self._idle: "queue.Queue[OcrEngine]" = queue.Queue()
        self._lock = threading.Lock()
        self._created = 0
        self._closed = False
        self.engine_name: Optional[str] = None

    @property
    def created(self) -> int:
        """Number of engines created so far."""
        return self._created

    @property
    def closed(self) -> bool:
        return self._closed

    def _checkout(self, timeout: Optional[float]) -> OcrEngine:
        if self._closed:
            raise EnginePoolError("Engine pool is shut down", self.size)

        try:
            return self._idle.get_nowait()
        except queue.Empty:
            pass

        with self._lock:
            if self._created < self.size:
                engine = self.factory()
                self._created += 1
                self.engine_name = engine.name
                logger.debug("ocr_engine_created", engine=engine.name, created=self._created)
                return engine

        try:
            return self._idle.get(timeout=timeout)
        except queue.Empty:
            raise EnginePoolError(
                f"No OCR engine became available within {timeout:g}s", self.size
            )

    def _checkin(self, engine: OcrEngine) -> None:
        if self._closed:
            engine.close()
            return
        self._idle.put(engine)

    @contextmanager
    def engine(self, timeout: Optional[float] = None) -> Iterator[OcrEngine]:
        """Check an engine out for the duration of the ``with`` block."""
        wait = timeout if timeout is not None else self.checkout_timeout
        engine = self._checkout(wait)
        try:
            yield engine
        finally:
            self._checkin(engine)

    def shutdown(self) -> None:
        """Close idle engines. Checked-out engines close when returned."""
        self._closed = True
        while True:
            try:
                engine = self._idle.get_nowait()
            except queue.Empty:
                break
            engine.close()

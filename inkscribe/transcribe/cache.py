"""
inkscribe.transcribe.cache - Single-slot engine cache and engine worker.

Model loads take seconds and gigabytes, so at most one engine is resident.
Each engine is confined to its own worker thread; callers hand it samples
and wait for the result instead of touching the engine directly.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Protocol

import numpy as np

from inkscribe.config import InkscribeConfig
from inkscribe.exceptions import EngineError
from inkscribe.logging import get_logger
from inkscribe.transcribe.engine import TranscriptionEngine

logger = get_logger(__name__)


class Engine(Protocol):
    def detect_language(self, samples: np.ndarray) -> str: ...

    def transcribe(
        self,
        samples: np.ndarray,
        language: str | None = None,
        include_timestamps: bool = False,
        time_offset_ms: int = 0,
    ) -> str: ...


EngineFactory = Callable[[str], Engine]


class EngineWorker:
    """Runs one engine on a dedicated thread.

    The engine is built on the worker thread and never leaves it. Public
    methods block until the worker has finished the call.
    """

    def __init__(self, model: str, factory: EngineFactory) -> None:
        """Start the worker and load the engine on it.

        Raises:
            Whatever the factory raises (ModelNotFoundError, EngineError)
        """
        self.model = model
        self._engine: Engine | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"engine-{model}")
        try:
            self._executor.submit(self._load, factory).result()
        except BaseException:
            self._executor.shutdown(wait=False)
            raise

    def _load(self, factory: EngineFactory) -> None:
        self._engine = factory(self.model)

    def _call(self, method: str, *args: Any, **kwargs: Any) -> Any:
        def run() -> Any:
            return getattr(self._engine, method)(*args, **kwargs)

        try:
            future = self._executor.submit(run)
        except RuntimeError as e:
            raise EngineError(f"Engine for model '{self.model}' has been unloaded") from e
        return future.result()

    def detect_language(self, samples: np.ndarray) -> str:
        return self._call("detect_language", samples)

    def transcribe(
        self,
        samples: np.ndarray,
        language: str | None = None,
        include_timestamps: bool = False,
        time_offset_ms: int = 0,
    ) -> str:
        return self._call(
            "transcribe",
            samples,
            language=language,
            include_timestamps=include_timestamps,
            time_offset_ms=time_offset_ms,
        )

    def retire(self) -> None:
        """Stop accepting work. Calls already queued still complete.

        The engine reference is released on the worker thread once the
        queue drains, so a caller still holding this worker does not keep
        the model in memory.
        """
        try:
            self._executor.submit(self._release_engine)
        except RuntimeError:
            return
        self._executor.shutdown(wait=False)

    def _release_engine(self) -> None:
        self._engine = None
        logger.debug(f"Released engine for '{self.model}'")


def default_engine_factory(config: InkscribeConfig) -> EngineFactory:
    """Factory that loads faster-whisper engines from the configured models_dir."""

    def build(model: str) -> Engine:
        return TranscriptionEngine(
            model,
            config.models_dir,
            device=config.device,
            compute_type=config.compute_type,
        )

    return build


class EngineCache:
    """Holds at most one engine worker, keyed by model identity."""

    def __init__(self, factory: EngineFactory) -> None:
        self._factory = factory
        self._lock = threading.Lock()
        self._slot: tuple[str, EngineWorker] | None = None

    @property
    def loaded_model(self) -> str | None:
        with self._lock:
            return self._slot[0] if self._slot else None

    def get_or_create(self, model: str) -> EngineWorker:
        """Return the worker for a model, loading it if it is not resident.

        A same-model request never reloads. A different model replaces the
        resident one; if that load fails the previous engine stays.
        """
        with self._lock:
            if self._slot is not None and self._slot[0] == model:
                logger.debug(f"Engine cache hit for '{model}'")
                return self._slot[1]

            logger.debug(f"Engine cache miss for '{model}'")
            worker = EngineWorker(model, self._factory)
            previous, self._slot = self._slot, (model, worker)

        if previous is not None:
            logger.info(f"Unloading '{previous[0]}' in favour of '{model}'")
            previous[1].retire()
        return worker

    def clear(self) -> None:
        with self._lock:
            previous, self._slot = self._slot, None
        if previous is not None:
            previous[1].retire()

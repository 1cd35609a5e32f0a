"""
Stream engine: pulls frames from a source, annotates them, hands them to sinks.

Frames are handled one at a time on the calling thread. A frame whose
processing fails with a PipelineError is passed on unannotated and the
stream continues.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from inference.backend import InferenceEngine
from models.config import Config
from models.frame import FrameData
from observation import ObservationSource, create_source_from_config
from .errors import PipelineError
from .frame_pipeline import FramePipeline
from .sinks import VideoFileSink, WindowSink

FrameCallback = Callable[[FrameData, bool], None]

# Delay before retrying after the source returned no frame.
READ_RETRY_DELAY = 0.5
DEFAULT_RECORD_FPS = 30


@dataclass
class PipelineConfig:
    """
    Attributes:
        max_consecutive_failures: Missing frames in a row that end the stream.
        stats_log_interval: Seconds between progress log lines.
        display: Show annotated frames in a window.
        record: Write annotated frames to a video file.
        output_dir: Where recordings go.
        window_name: Title of the display window.
    """
    max_consecutive_failures: int = 10
    stats_log_interval: float = 60.0
    display: bool = False
    record: bool = False
    output_dir: str = "output/video"
    window_name: str = "Detector"

    @classmethod
    def from_dict(cls, d: Dict[str, Any], display: bool = False, record: bool = False) -> "PipelineConfig":
        """Adapter for the ``pipeline`` config section; display/record come from the CLI."""
        defaults = cls()
        return cls(
            max_consecutive_failures=d.get("max_consecutive_failures", defaults.max_consecutive_failures),
            stats_log_interval=d.get("stats_log_interval", defaults.stats_log_interval),
            display=display,
            record=record,
            output_dir=d.get("output_dir", defaults.output_dir),
            window_name=d.get("window_name", defaults.window_name),
        )


@dataclass
class PipelineStats:
    frames_read: int = 0
    frames_annotated: int = 0
    frames_skipped: int = 0
    read_failures: int = 0
    started_at: float = field(default_factory=time.time)
    last_report_at: float = field(default_factory=time.time)

    @property
    def fps(self) -> float:
        elapsed = time.time() - self.started_at
        return self.frames_read / elapsed if elapsed > 0 else 0.0

    def summary(self) -> str:
        return (
            f"frames={self.frames_read} annotated={self.frames_annotated} "
            f"skipped={self.frames_skipped} fps={self.fps:.1f}"
        )


class PipelineEngine:
    """
    Runs a FramePipeline over every frame of an ObservationSource.

    Example:
        source = OpenCVSource(OpenCVSourceConfig(device_id=0))
        engine = PipelineEngine(source, FramePipeline(dnn_engine), PipelineConfig(display=True))
        engine.run()
    """

    def __init__(
        self,
        source: ObservationSource,
        frame_pipeline: FramePipeline,
        config: Optional[PipelineConfig] = None,
    ):
        self.source = source
        self.frame_pipeline = frame_pipeline
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._callbacks: List[FrameCallback] = []
        self._sinks: list = []
        self._running = False

    def add_callback(self, callback: FrameCallback) -> None:
        """
        Register ``callback(frame_data, annotated)``, called after each frame.

        ``annotated`` is False when the frame was passed on unannotated
        because of a PipelineError. Callback exceptions are logged and
        otherwise ignored.
        """
        self._callbacks.append(callback)

    def run(self) -> None:
        """Stream until the source ends or keeps failing, stop() is called or a sink quits."""
        self.stats = PipelineStats()
        self._running = True
        try:
            self.source.open()
            self._sinks = self._open_sinks()
            logging.info(f"Streaming from {self.source.source_id}")
            while self._running and self._step():
                pass
        except KeyboardInterrupt:
            logging.info("Interrupted, shutting down")
        finally:
            self._shutdown()

    def stop(self) -> None:
        """Finish the current frame, then end run()."""
        self._running = False

    def _open_sinks(self) -> list:
        sinks = []
        if self.config.record:
            fps = self.source.config.fps or DEFAULT_RECORD_FPS
            sinks.append(VideoFileSink(self.config.output_dir, fps))
        if self.config.display:
            sinks.append(WindowSink(self.config.window_name))
        return sinks

    def _step(self) -> bool:
        """Handle one read. Returns False when the stream should end."""
        frame_data = self.source.read()
        if frame_data is None:
            if self.source.exhausted:
                logging.info(f"{self.source.source_id} has no more frames")
                return False
            return self._on_missing_frame()

        self.stats.read_failures = 0
        annotated = self._annotate(frame_data)
        self._notify(frame_data, annotated)

        for sink in self._sinks:
            if not sink.write(frame_data):
                logging.info("Quit requested from the display window")
                return False

        self._report_progress()
        return True

    def _on_missing_frame(self) -> bool:
        self.stats.read_failures += 1
        limit = self.config.max_consecutive_failures
        if self.stats.read_failures >= limit:
            logging.error(f"No frame from {self.source.source_id} {self.stats.read_failures} times in a row, stopping")
            return False
        logging.warning(f"No frame from {self.source.source_id} ({self.stats.read_failures}/{limit})")
        time.sleep(READ_RETRY_DELAY)
        return True

    def _annotate(self, frame_data: FrameData) -> bool:
        self.stats.frames_read += 1
        try:
            self.frame_pipeline.process(frame_data.frame)
        except PipelineError as e:
            self.stats.frames_skipped += 1
            logging.warning(f"Frame {frame_data.frame_index} passed through unannotated: {e}")
            return False
        self.stats.frames_annotated += 1
        return True

    def _notify(self, frame_data: FrameData, annotated: bool) -> None:
        for callback in self._callbacks:
            try:
                callback(frame_data, annotated)
            except Exception as e:
                logging.warning(f"Frame callback {callback!r} failed: {e}")

    def _report_progress(self) -> None:
        now = time.time()
        if now - self.stats.last_report_at < self.config.stats_log_interval:
            return
        logging.info(f"Progress: {self.stats.summary()}")
        self.stats.last_report_at = now

    def _shutdown(self) -> None:
        self._running = False
        for sink in self._sinks:
            sink.close()
        self._sinks = []
        try:
            self.source.close()
        except Exception as e:
            logging.warning(f"Closing {self.source.source_id} failed: {e}")
        logging.info(f"Stream ended: {self.stats.summary()}")


def create_engine_from_config(
    config: Dict[str, Any],
    display: bool = False,
    record: bool = False,
    engine: Optional[InferenceEngine] = None,
) -> PipelineEngine:
    """
    Wire source, inference engine and frame pipeline from the config dict.

    Args:
        config: Full application config (as returned by load_config).
        display: Show annotated frames in a window.
        record: Record annotated frames to a video file.
        engine: Inference engine to use; an OpenCvDnnEngine is built from
            ``config['model']`` when omitted.

    Raises:
        FileNotFoundError: If a model file is missing.
        RuntimeError: If the network cannot be loaded.
    """
    typed = Config.from_dict(config)

    if engine is None:
        from inference.opencv_dnn import OpenCvDnnEngine

        engine = OpenCvDnnEngine.from_files(
            typed.model.framework, typed.model.weights, typed.model.config
        )

    return PipelineEngine(
        create_source_from_config(config.get("camera") or {}, source_id="main-camera"),
        FramePipeline.from_config(typed, engine),
        PipelineConfig.from_dict(config.get("pipeline") or {}, display=display, record=record),
    )

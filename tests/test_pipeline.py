"""
Stream engine: frames in, annotated frames out to callbacks and sinks.
"""

import logging

import pytest
import numpy as np
from unittest.mock import MagicMock, patch

from pipeline.engine import PipelineConfig, PipelineEngine, create_engine_from_config
from pipeline.frame_pipeline import FramePipeline
from pipeline.sinks import VideoFileSink, WindowSink
from models.frame import FrameData

PERSON = np.array([[[[0, 15, 0.9, 0.1, 0.1, 0.5, 0.5]]]], dtype=np.float32)
BAD_CLASS = np.array([0, 999, 0.9, 0.1, 0.1, 0.5, 0.5], dtype=np.float32)
NAN_BOX = np.array([0, 15, 0.9, np.nan, 0.1, 0.5, 0.5], dtype=np.float32)
NAN_CONFIDENCE = np.array([0, 15, np.nan, 0.1, 0.1, 0.5, 0.5], dtype=np.float32)
HUGE_BOX = np.array([0, 15, 0.9, 0.1, 0.1, 1e9, 0.5], dtype=np.float32)


@pytest.fixture
def build_engine(stub_engine_factory, list_source_factory):
    def build(frames, output=None, finite=False, **config):
        config.setdefault("max_consecutive_failures", 2)
        return PipelineEngine(
            list_source_factory(frames, finite=finite),
            FramePipeline(stub_engine_factory(output)),
            PipelineConfig(**config),
        )
    return build


def run_quietly(engine):
    # The source running dry counts as missed reads, each followed by a sleep
    with patch("time.sleep"):
        engine.run()


def test_pipeline_config_from_dict():
    cfg = PipelineConfig.from_dict({"max_consecutive_failures": 4, "output_dir": "/tmp/out"}, display=True)

    assert cfg.max_consecutive_failures == 4
    assert cfg.output_dir == "/tmp/out"
    assert cfg.stats_log_interval == PipelineConfig().stats_log_interval
    assert cfg.display is True
    assert cfg.record is False


class TestRun:
    def test_every_frame_goes_through_the_pipeline(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(3), output=PERSON)
        run_quietly(engine)

        assert engine.stats.frames_read == 3
        assert engine.stats.frames_annotated == 3
        assert engine.stats.frames_skipped == 0
        assert len(engine.frame_pipeline.engine.inputs) == 3
        assert engine.source.closed

    def test_frames_are_annotated_in_place(self, build_engine, blank_frames):
        frames = blank_frames(1)
        run_quietly(build_engine(frames, output=PERSON))

        assert frames[0][200, 64].tolist() == [0, 255, 0]

    def test_pipeline_error_passes_frame_through(self, build_engine, blank_frames):
        frames = blank_frames(2)
        engine = build_engine(frames, output=BAD_CLASS)
        seen = []
        engine.add_callback(lambda fd, annotated: seen.append(annotated))
        run_quietly(engine)

        assert engine.stats.frames_read == 2
        assert engine.stats.frames_skipped == 2
        assert seen == [False, False]
        assert not any(f.any() for f in frames)

    @pytest.mark.parametrize("output", [NAN_BOX, NAN_CONFIDENCE])
    def test_non_finite_records_do_not_end_the_run(self, build_engine, blank_frames, output):
        frames = blank_frames(3)
        engine = build_engine(frames, output=output)
        run_quietly(engine)

        assert engine.stats.frames_read == 3
        assert engine.stats.frames_annotated == 3
        assert not any(f.any() for f in frames)

    def test_undrawable_box_skips_frames(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(3), output=HUGE_BOX)
        seen = []
        engine.add_callback(lambda fd, annotated: seen.append(annotated))
        run_quietly(engine)

        assert engine.stats.frames_read == 3
        assert engine.stats.frames_skipped == 3
        assert seen == [False, False, False]

    def test_finite_source_ends_without_retries(self, build_engine, blank_frames, caplog):
        engine = build_engine(blank_frames(2), finite=True, max_consecutive_failures=5)

        with caplog.at_level(logging.INFO), patch("time.sleep") as sleep:
            engine.run()

        assert engine.stats.frames_read == 2
        assert engine.stats.read_failures == 0
        sleep.assert_not_called()
        assert "has no more frames" in caplog.text
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert engine.source.closed

    def test_stops_after_consecutive_missing_frames(self, build_engine):
        engine = build_engine([], max_consecutive_failures=3)
        with patch("time.sleep") as sleep:
            engine.run()

        assert engine.stats.read_failures == 3
        assert sleep.call_count == 2
        assert engine.stats.frames_read == 0

    def test_callbacks_get_frame_and_status(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(2))
        calls = []
        engine.add_callback(lambda fd, annotated: calls.append((fd.frame_index, annotated)))
        run_quietly(engine)

        assert calls == [(1, True), (2, True)]

    def test_failing_callback_is_ignored(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(2))
        engine.add_callback(MagicMock(side_effect=ValueError("boom")))
        run_quietly(engine)

        assert engine.stats.frames_read == 2

    def test_stop_from_callback(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(5))
        engine.add_callback(lambda fd, annotated: engine.stop())
        run_quietly(engine)

        assert engine.stats.frames_read == 1

    def test_quit_key_in_window(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(5), display=True)

        with patch("cv2.imshow") as imshow, \
                patch("cv2.waitKey", return_value=ord("q")), \
                patch("cv2.destroyAllWindows") as destroy:
            run_quietly(engine)

        assert imshow.call_count == 1
        assert engine.stats.frames_read == 1
        destroy.assert_called_once()

    def test_other_errors_end_the_run(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(3))
        engine.frame_pipeline.process = MagicMock(side_effect=ZeroDivisionError)

        with pytest.raises(ZeroDivisionError):
            run_quietly(engine)
        assert engine.source.closed

    def test_keyboard_interrupt_closes_source(self, build_engine, blank_frames):
        engine = build_engine(blank_frames(3))
        engine.frame_pipeline.process = MagicMock(side_effect=KeyboardInterrupt)
        run_quietly(engine)

        assert engine.source.closed


class TestSinks:
    def test_recording_uses_source_fps(self, build_engine, blank_frames, tmp_path):
        engine = build_engine(blank_frames(2), output=PERSON, record=True, output_dir=str(tmp_path))
        engine.source.config.fps = 15

        with patch("cv2.VideoWriter") as writer_cls:
            run_quietly(engine)

        path, _, fps, size, is_color = writer_cls.call_args[0]
        assert path.startswith(str(tmp_path))
        assert path.endswith(".avi")
        assert fps == 15
        assert size == (640, 480)
        assert writer_cls.return_value.write.call_count == 2
        writer_cls.return_value.release.assert_called_once()

    def test_video_sink_drops_alpha(self, tmp_path):
        sink = VideoFileSink(str(tmp_path), fps=10)
        frame = FrameData.capture(np.zeros((4, 6, 4), dtype=np.uint8))

        with patch("cv2.VideoWriter") as writer_cls:
            assert sink.write(frame) is True
            sink.close()

        written = writer_cls.return_value.write.call_args[0][0]
        assert written.shape == (4, 6, 3)
        assert writer_cls.call_args[0][3] == (6, 4)

    def test_video_sink_close_without_frames(self, tmp_path):
        sink = VideoFileSink(str(tmp_path))
        sink.close()
        assert sink.path is None

    def test_window_sink_keeps_going_without_q(self):
        frame = FrameData.capture(np.zeros((4, 4, 3), dtype=np.uint8))
        with patch("cv2.imshow") as imshow, patch("cv2.waitKey", return_value=-1):
            assert WindowSink("w").write(frame) is True
        assert imshow.call_args[0][0] == "w"


class TestCreateEngineFromConfig:
    def test_wires_source_pipeline_and_engine(self, valid_config, stub_engine_factory):
        stub = stub_engine_factory()

        engine = create_engine_from_config(valid_config, display=True, engine=stub)

        assert engine.source.source_id == "main-camera"
        assert engine.source.device_id == 0
        assert engine.config.display is True
        assert engine.config.record is False
        assert engine.frame_pipeline.engine is stub

    def test_reads_pipeline_and_detection_sections(self, valid_config, stub_engine_factory):
        valid_config["pipeline"] = {"max_consecutive_failures": 4}
        valid_config["detection"] = {"confidence_threshold": 0.6}

        engine = create_engine_from_config(valid_config, engine=stub_engine_factory())

        assert engine.config.max_consecutive_failures == 4
        assert engine.frame_pipeline.decoder.confidence_threshold == 0.6

    def test_loads_opencv_engine_by_default(self, valid_config):
        with patch("inference.opencv_dnn.OpenCvDnnEngine.from_files") as from_files:
            engine = create_engine_from_config(valid_config)

        from_files.assert_called_once_with(
            "caffe",
            "models/mobilenet_iter_73000.caffemodel",
            "models/deploy.prototxt",
        )
        assert engine.frame_pipeline.engine is from_files.return_value

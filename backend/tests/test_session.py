"""
Tests for the live session driver, diagnostic capture and report scoring.
"""

import pytest


def _run(session, frames):
    return [session.process_frame(landmarks, ts) for ts, landmarks in frames]


def _entry(score=90, zone="middle", elbow=0.1, tension=0, confidence=0.9, t=0.0,
           shoulder_label="relaxed"):
    from core.report_generator import DiagnosticLogEntry
    return DiagnosticLogEntry(
        timestamp=t,
        straightness_score=score,
        straightness_status="good",
        bow_zone=zone,
        extension_ratio=0.6,
        elbow_relative_height=elbow,
        elbow_status="good",
        tension=tension,
        shoulder_status="good",
        shoulder_label=shoulder_label,
        pose_confidence=confidence,
    )


class TestSessionLifecycle:

    def test_frames_rejected_when_not_running(self, make_pose):
        from core.pipeline import BowingSession
        from exceptions import SessionNotRunning

        session = BowingSession("s1")
        with pytest.raises(SessionNotRunning):
            session.process_frame(make_pose(), 0.0)

    def test_duplicate_timestamp_skipped(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()

        assert session.process_frame(make_pose(), 100.0) is not None
        assert session.process_frame(make_pose(), 100.0) is None
        assert session.process_frame(make_pose(), 50.0) is None
        assert session.frames_processed == 1
        assert len(session.trail) == 1

    def test_non_finite_timestamp_rejected(self, make_pose):
        from core.pipeline import BowingSession
        from exceptions import ValidationError

        session = BowingSession()
        session.start()

        with pytest.raises(ValidationError):
            session.process_frame(make_pose(), float("nan"))

    def test_invalid_landmarks_do_not_advance_timestamp(self, make_pose):
        from core.pipeline import BowingSession
        from exceptions import InvalidLandmarks

        session = BowingSession()
        session.start()

        with pytest.raises(InvalidLandmarks):
            session.process_frame(make_pose(omit=("right_elbow",)), 100.0)

        assert session.process_frame(make_pose(), 100.0) is not None

    @pytest.mark.parametrize("bad_value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_wrist_leaves_state_untouched(self, bowing_frames, make_pose, bad_value):
        import math
        from core.pipeline import BowingSession
        from exceptions import InvalidLandmarks

        session = BowingSession()
        session.start()
        frames = bowing_frames(40, amplitude=0.15)
        _run(session, frames[:15])
        trail_before = session.trail.samples()
        smoothed_before = session.smooth_straightness

        with pytest.raises(InvalidLandmarks) as exc_info:
            session.process_frame(make_pose(right_wrist=(bad_value, 0.5)), frames[15][0])

        assert exc_info.value.details["missing"] == ["right_wrist"]
        assert session.trail.samples() == trail_before
        assert session.last_timestamp == frames[14][0]
        assert session.frames_processed == 15
        assert session.smooth_straightness == smoothed_before

        # The same timestamp is still accepted afterwards
        results = _run(session, frames[15:])
        assert all(
            math.isfinite(s.x) and math.isfinite(s.y) for s in session.trail.samples()
        )
        assert math.isfinite(results[-1].metrics.straightness.curvature)

    def test_non_finite_hip_falls_back_to_default_scale(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        result = session.process_frame(make_pose(right_hip=(0.42, float("nan"))), 0.0)

        assert result.metrics.elbow.status == "good"
        assert result.pose_confidence == pytest.approx(0.9)

    def test_restart_clears_all_rolling_state(self, bowing_frames):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        _run(session, bowing_frames(40))

        assert len(session.trail) == 40
        assert session.calibrator.baseline is not None

        session.start()

        assert len(session.trail) == 0
        assert sum(session.distribution.counts.values()) == 0
        assert session.calibrator.baseline is None
        assert session.calibrator.frames_seen == 0
        assert session.smooth_straightness is None
        assert session.smooth_elbow_height is None
        assert session.last_timestamp is None

        # Earlier timestamps are valid again after a restart
        result = session.process_frame(bowing_frames(1)[0][1], 0.0)
        assert result.metrics.shoulder.label == "calibration pending"
        assert result.metrics.straightness.score is None

    def test_stop_cancels_capture(self, make_pose, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        session.process_frame(make_pose(), 0.0)
        session.stop()

        assert not session.running
        assert not session.capture.is_active
        assert session.last_report is None


class TestFrameMetrics:

    def test_first_frame_is_calibration_pending(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()

        first = session.process_frame(make_pose(), 0.0)
        second = session.process_frame(make_pose(), 33.0)

        assert first.metrics.shoulder.label == "calibration pending"
        assert second.metrics.shoulder.label == "relaxed"
        assert second.metrics.shoulder.tension == 0

    def test_raised_shoulders_after_calibration(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        for i in range(30):
            session.process_frame(make_pose(), i * 33.0)

        raised = make_pose(left_ear=(0.58, 0.2), right_ear=(0.42, 0.2))
        result = session.process_frame(raised, 30 * 33.0)

        assert result.metrics.shoulder.status == "bad"
        assert "shoulders" in result.advice

    def test_straightness_needs_a_full_trail(self, bowing_frames):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        results = _run(session, bowing_frames(12))

        assert all(r.metrics.straightness.score is None for r in results[:9])
        assert results[9].metrics.straightness.score == 100
        assert results[-1].metrics.straightness.status == "good"

    def test_elbow_height_smoothed_with_raw_status(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        session.process_frame(make_pose(), 0.0)
        result = session.process_frame(make_pose(right_elbow=(0.35, 0.48)), 33.0)

        # 0.17 + 0.1 * (0.6 - 0.17)
        assert result.metrics.elbow.relative_height == pytest.approx(0.21)
        assert result.metrics.elbow.status == "bad"
        assert result.metrics.elbow.label == "too low"

    def test_frame_result_serializes(self, make_pose):
        from core.pipeline import BowingSession

        session = BowingSession()
        session.start()
        data = session.process_frame(make_pose(), 0.0).to_dict()

        assert set(data["metrics"]) == {"straightness", "distribution", "bow_zone", "elbow", "shoulder"}
        assert data["pose_confidence"] == pytest.approx(0.9)
        assert "report" not in data


class TestDiagnosticCapture:

    def test_expires_on_wall_clock(self, bowing_frames, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock, diagnostic_duration=15)
        session.start()
        session.start_capture()

        frames = bowing_frames(20)
        _run(session, frames[:19])
        assert session.capture.is_active

        clock.advance(15.0)
        result = session.process_frame(frames[19][1], frames[19][0])

        assert result.report is not None
        assert result.report.frames_analyzed == 20
        assert not session.capture.is_active
        assert session.last_report is result.report

    def test_report_produced_once(self, make_pose, clock):
        from core.pipeline import BowingSession
        from exceptions import CaptureNotActive

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        session.process_frame(make_pose(), 0.0)
        session.finish_capture()

        with pytest.raises(CaptureNotActive):
            session.finish_capture()
        assert session.poll_capture() is None

    def test_cancel_discards_log(self, make_pose, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        session.process_frame(make_pose(), 0.0)
        session.cancel_capture()

        clock.advance(20.0)
        assert session.poll_capture() is None
        assert session.last_report is None

    def test_double_start_rejected(self, clock):
        from core.pipeline import BowingSession
        from exceptions import CaptureAlreadyActive

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        clock.advance(5.0)

        with pytest.raises(CaptureAlreadyActive) as exc_info:
            session.start_capture()
        assert exc_info.value.details["remaining_sec"] == pytest.approx(10.0)

    def test_capture_needs_running_session(self, clock):
        from core.pipeline import BowingSession
        from exceptions import SessionNotRunning

        session = BowingSession(clock=clock)
        with pytest.raises(SessionNotRunning):
            session.start_capture()

    def test_empty_capture_reports_no_pose(self, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        clock.advance(15.0)
        report = session.poll_capture()

        assert report.pose_detected is False
        assert report.overall_status == "no_data"
        assert report.overall_score is None
        assert report.frames_analyzed == 0

    def test_status(self, clock):
        from core.diagnostic import DiagnosticCapture

        capture = DiagnosticCapture(duration_sec=10, clock=clock)
        assert capture.status()["active"] is False

        capture.start()
        clock.advance(4.0)
        status = capture.status()

        assert status["active"] is True
        assert status["remaining_sec"] == pytest.approx(6.0)


class TestReportScoring:

    def test_good_session(self):
        from core.advice import FULL_BOW_MESSAGE
        from core.report_generator import generate_report

        zones = ["tip", "middle", "frog"] * 10
        report = generate_report([_entry(zone=z) for z in zones], 15.0, "s1")

        # (90*3 + 90*2 + 95*2 + 90*1) / 8
        assert report.overall_score == 91
        assert report.overall_status == "good"
        assert report.commentary.startswith("Excellent")
        assert report.distribution["label"] == "full bow"
        assert report.advice == FULL_BOW_MESSAGE

    def test_straightness_weight_skipped_without_scores(self):
        from core.report_generator import generate_report

        zones = ["tip", "middle", "frog"] * 4
        report = generate_report([_entry(score=None, zone=z) for z in zones], 15.0)

        # (90*2 + 95*2 + 90*1) / 5
        assert report.overall_score == 92
        assert "straightness" not in report.channel_scores
        assert report.straightness["valid_frames"] == 0

    def test_poor_session(self):
        from core.report_generator import generate_report

        entries = [_entry(score=40, zone="tip", elbow=0.6, tension=30) for _ in range(20)]
        report = generate_report(entries, 15.0)

        # (40*3 + 30*2 + 30*2 + 35*1) / 8
        assert report.overall_score == 34
        assert report.overall_status == "bad"
        assert report.straightness["status"] == "bad"
        assert report.elbow["label"] == "too low"
        assert report.shoulder["status"] == "bad"
        assert report.distribution["status"] == "bad"
        assert "curving" in report.advice

    def test_tension_mean_ignores_relaxed_frames(self):
        from core.report_generator import generate_report

        entries = [_entry(tension=t) for t in (0, 0, 20, 40)]
        report = generate_report(entries, 15.0)

        assert report.shoulder["avg_tension"] == pytest.approx(30.0)
        assert report.shoulder["max_tension"] == 40
        assert report.shoulder["tension_frames"] == 2
        assert report.shoulder["status"] == "bad"

    def test_empty_log(self):
        from core.report_generator import generate_report, report_to_dict

        report = generate_report([], 15.0, "s1")

        assert report.pose_detected is False
        assert report.commentary.startswith("No pose detected")
        assert report.straightness is None
        assert report_to_dict(report)["overall_status"] == "no_data"

    def test_low_confidence_noted(self):
        from core.report_generator import generate_report

        report = generate_report([_entry(confidence=0.4) for _ in range(10)], 15.0)

        assert report.avg_pose_confidence == pytest.approx(0.4)
        assert len(report.confidence_notes) == 2

    def test_status_bands(self):
        from core.report_generator import commentary_for, overall_status

        assert overall_status(80) == "good"
        assert overall_status(79) == "warn"
        assert overall_status(59) == "bad"
        assert commentary_for(70).startswith("Good")
        assert commentary_for(50).startswith("Your bowing needs work")
        assert "significant" in commentary_for(49)


class TestEndToEnd:

    def test_arched_bowing_scores_poorly(self, bowing_frames, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        _run(session, bowing_frames(100, amplitude=0.15))
        report = session.finish_capture()

        assert report.frames_analyzed == 100
        assert report.straightness["status"] == "bad"
        assert report.overall_status in ("warn", "bad")
        assert report.elbow["status"] == "good"
        assert report.shoulder["status"] == "good"
        assert "curving" in report.advice

    def test_dropped_elbow_session(self, bowing_frames, clock):
        from core.pipeline import BowingSession

        session = BowingSession(clock=clock)
        session.start()
        session.start_capture()
        _run(session, bowing_frames(15, right_elbow=(0.35, 0.48)))
        report = session.finish_capture()

        assert report.frames_analyzed == 15
        assert report.elbow["avg_relative_height"] == pytest.approx(0.6)
        assert report.straightness["status"] == "good"
        assert report.elbow["status"] == "bad"
        assert report.elbow["label"] == "too low"
        assert "dropped" in report.advice


class TestSessionRegistry:

    def test_create_get_delete(self):
        from core.session_registry import SessionRegistry
        from exceptions import SessionNotFound

        registry = SessionRegistry(max_sessions=2)
        session = registry.create()

        assert registry.get(session.session_id) is session
        assert len(registry.list_sessions()) == 1

        registry.delete(session.session_id)
        with pytest.raises(SessionNotFound):
            registry.get(session.session_id)

    def test_capacity(self):
        from core.session_registry import SessionRegistry
        from exceptions import ResourceExhausted

        registry = SessionRegistry(max_sessions=1)
        registry.create()

        with pytest.raises(ResourceExhausted):
            registry.create()

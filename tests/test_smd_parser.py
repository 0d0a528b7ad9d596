"""SMD parser tests — sections, comments, radians → degrees, and error handling."""

from __future__ import annotations

import math

import pytest

from conftest import ZERO, make_smd
from smd_motion.errors import FormatError, LoadError
from smd_motion.smd.parser import DEFAULT_NAME, DEFAULT_VERSION, parse, parse_text
from smd_motion.smd.types import BoneDeclaration, BoneSample, Frame, MotionFile


# ---------------------------------------------------------------------------
# Sample file
# ---------------------------------------------------------------------------

class TestParseSampleFile:
    def test_returns_motion_file(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert isinstance(motion, MotionFile)

    def test_header(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert motion.name == "Wave"
        assert motion.version == 1

    def test_counts(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert motion.bone_count == 3
        assert motion.frame_count == 4
        for frame in motion.frames:
            assert len(frame.samples) <= motion.bone_count

    def test_quoted_name_with_space(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert motion.bones[2] == BoneDeclaration(id=2, name="upper arm", parent_id=1)

    def test_sparse_frames(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert [len(f.samples) for f in motion.frames] == [3, 2, 2, 3]
        assert motion.frames[1].sample_for(1) is None

    def test_rotation_stored_in_degrees(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        sample = motion.frames[2].sample_for(2)
        assert sample.rotation[0] == pytest.approx(30.0, abs=1e-4)


# ---------------------------------------------------------------------------
# Synthetic text
# ---------------------------------------------------------------------------

class TestParseSynthetic:
    def test_n_bones_m_frames(self):
        bones = [(i, f"b{i}", i - 1) for i in range(5)]
        frames = [(t, [(i, ZERO, ZERO) for i in range(t % 5 + 1)]) for t in range(7)]
        motion = parse_text(make_smd(bones, frames))
        assert len(motion.bones) == 5
        assert len(motion.frames) == 7
        assert all(len(f.samples) <= 5 for f in motion.frames)

    def test_bone_declarations(self, two_bone_smd):
        motion = parse_text(two_bone_smd)
        assert motion.bones == [
            BoneDeclaration(0, "root", -1),
            BoneDeclaration(1, "arm", 0),
        ]
        assert motion.bones[0].is_root
        assert not motion.bones[1].is_root

    def test_frame_times(self, two_bone_smd):
        motion = parse_text(two_bone_smd)
        assert [f.time for f in motion.frames] == [0, 1]

    def test_position_kept_as_is(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, (1.5, -2.0, 3.25), ZERO)])])
        sample = parse_text(text).frames[0].samples[0]
        assert sample == BoneSample(0, (1.5, -2.0, 3.25), (0.0, 0.0, 0.0))

    def test_radians_converted_to_degrees(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, (math.pi, -math.pi / 2, 0.5))])])
        rx, ry, rz = parse_text(text).frames[0].samples[0].rotation
        assert rx == pytest.approx(180.0, abs=1e-4)
        assert ry == pytest.approx(-90.0, abs=1e-4)
        assert rz == pytest.approx(math.degrees(0.5), abs=1e-4)

    def test_comments_skipped(self):
        text = (
            "version 1\n"
            "# exported\n"
            "; another comment\n"
            "nodes\n"
            "// inside nodes\n"
            '0 "root" -1\n'
            "end\n"
            "skeleton\n"
            "time 0\n"
            "# inside skeleton\n"
            "0 0 0 0 0 0 0\n"
            "end\n"
        )
        motion = parse_text(text)
        assert motion.bone_count == 1
        assert motion.frame_count == 1

    def test_blank_lines_and_indentation(self):
        text = "\n  version 1\n\n  nodes\n\t0 \"root\" -1\n  end\n\n skeleton\n time 0\n 0 0 0 0 0 0 0\n end\n"
        motion = parse_text(text)
        assert motion.bone_count == 1
        assert motion.frames[0].samples[0].bone_id == 0

    def test_windows_line_endings(self, two_bone_smd):
        motion = parse_text(two_bone_smd.replace("\n", "\r\n"))
        assert motion.frame_count == 2

    def test_unquoted_bone_name(self):
        text = "version 1\nnodes\n0 root -1\nend\nskeleton\ntime 0\n0 0 0 0 0 0 0\nend\n"
        assert parse_text(text).bones[0].name == "root"

    def test_triangles_section_skipped(self):
        text = (
            "version 1\nnodes\n0 \"root\" -1\nend\n"
            "skeleton\ntime 0\n0 0 0 0 0 0 0\nend\n"
            "triangles\nskin.bmp\n0 0 0 0 0 0 1 0 0\nend\n"
        )
        motion = parse_text(text)
        assert motion.frame_count == 1

    def test_unterminated_skeleton_keeps_frames(self):
        text = "version 1\nnodes\n0 \"root\" -1\nend\nskeleton\ntime 0\n0 0 0 0 0 0 0\n"
        assert parse_text(text).frame_count == 1

    def test_empty_skeleton_section(self):
        text = "version 1\nnodes\n0 \"root\" -1\nend\nskeleton\nend\n"
        assert parse_text(text).frames == []

    def test_undeclared_bone_samples_dropped(self):
        text = make_smd(
            [(0, "root", -1)],
            [(0, [(0, ZERO, ZERO), (9, ZERO, ZERO)]), (1, [(9, ZERO, ZERO), (0, ZERO, ZERO)])],
        )
        motion = parse_text(text)
        assert [[s.bone_id for s in f.samples] for f in motion.frames] == [[0], [0]]

    def test_samples_never_exceed_bone_count(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        assert all(len(f.samples) <= motion.bone_count for f in motion.frames)

    def test_unrecognized_top_level_line_skipped(self, two_bone_smd):
        motion = parse_text("exporter 2.1 build 7\n" + two_bone_smd)
        assert motion.bone_count == 2
        assert motion.frame_count == 2

    def test_frames_are_frame_objects(self, two_bone_smd):
        assert all(isinstance(f, Frame) for f in parse_text(two_bone_smd).frames)


# ---------------------------------------------------------------------------
# Name / version defaults
# ---------------------------------------------------------------------------

class TestHeaderDefaults:
    def test_missing_name(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, ZERO)])])
        assert parse_text(text).name == DEFAULT_NAME

    def test_missing_version(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, ZERO)])], version=None)
        assert parse_text(text).version == DEFAULT_VERSION

    def test_bad_version_is_not_fatal(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, ZERO)])], version=None)
        assert parse_text("version abc\n" + text).version == DEFAULT_VERSION

    def test_name_key_case_insensitive(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, ZERO)])])
        assert parse_text("// Name: Idle Loop\n" + text).name == "Idle Loop"

    def test_first_name_wins(self):
        text = make_smd([(0, "root", -1)], [(0, [(0, ZERO, ZERO)])], name="First")
        assert parse_text(text + "// name: Second\n").name == "First"


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------

class TestErrorHandling:
    def test_truncated_skeleton_line(self):
        text = "version 1\nnodes\n0 \"root\" -1\nend\nskeleton\ntime 0\n0 0 0 0 0 0\nend\n"
        with pytest.raises(FormatError, match="7 fields") as excinfo:
            parse_text(text)
        assert excinfo.value.line == 7

    def test_non_numeric_skeleton_line(self):
        text = "version 1\nnodes\n0 \"root\" -1\nend\nskeleton\ntime 0\n0 0 0 x 0 0 0\nend\n"
        with pytest.raises(FormatError, match="invalid skeleton line"):
            parse_text(text)

    def test_time_outside_skeleton(self):
        text = "version 1\ntime 0\nnodes\n0 \"root\" -1\nend\n"
        with pytest.raises(FormatError, match="outside of a skeleton") as excinfo:
            parse_text(text)
        assert excinfo.value.line == 2

    def test_time_inside_nodes(self):
        text = "version 1\nnodes\ntime 0\nend\nskeleton\nend\n"
        with pytest.raises(FormatError, match="outside of a skeleton"):
            parse_text(text)

    def test_sample_before_time(self):
        text = "version 1\nnodes\n0 \"root\" -1\nend\nskeleton\n0 0 0 0 0 0 0\nend\n"
        with pytest.raises(FormatError, match="before any 'time'"):
            parse_text(text)

    def test_duplicate_sample_in_frame(self):
        text = make_smd(
            [(0, "root", -1)],
            [(0, [(0, ZERO, ZERO), (0, (1.0, 0.0, 0.0), ZERO)]), (1, [(0, ZERO, ZERO)])],
        )
        with pytest.raises(FormatError, match="duplicate sample for bone 0") as excinfo:
            parse_text(text)
        assert excinfo.value.line == 8

    def test_same_bone_in_different_frames(self):
        text = make_smd(
            [(0, "root", -1)],
            [(0, [(0, ZERO, ZERO)]), (1, [(0, ZERO, ZERO)])],
        )
        assert parse_text(text).frame_count == 2

    def test_missing_nodes(self):
        with pytest.raises(FormatError, match="missing 'nodes'"):
            parse_text("version 1\nskeleton\ntime 0\nend\n")

    def test_missing_skeleton(self):
        with pytest.raises(FormatError, match="missing 'skeleton'"):
            parse_text("version 1\nnodes\n0 \"root\" -1\nend\n")

    def test_empty_text(self):
        with pytest.raises(FormatError):
            parse_text("")

    def test_short_node_line(self):
        with pytest.raises(FormatError, match="3 fields"):
            parse_text("version 1\nnodes\n0 root\nend\nskeleton\nend\n")

    def test_duplicate_bone_id(self):
        with pytest.raises(FormatError, match="duplicate bone id 0"):
            parse_text("version 1\nnodes\n0 \"a\" -1\n0 \"b\" -1\nend\nskeleton\nend\n")

    def test_frame_time_not_increasing(self):
        text = make_smd(
            [(0, "root", -1)],
            [(1, [(0, ZERO, ZERO)]), (1, [(0, ZERO, ZERO)])],
        )
        with pytest.raises(FormatError, match="does not follow"):
            parse_text(text)

    def test_format_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_text("garbage line here")

    def test_missing_file(self, tmp_path):
        with pytest.raises(LoadError, match="Cannot read"):
            parse(tmp_path / "nope.smd")

    def test_undecodable_file(self, tmp_path):
        path = tmp_path / "bad.smd"
        path.write_bytes(b"\xff\xfe\xfa version 1")
        with pytest.raises(LoadError):
            parse(path)

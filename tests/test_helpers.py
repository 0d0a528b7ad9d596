"""Introspection helper tests."""

from __future__ import annotations

import json

from conftest import ZERO, make_smd
from smd_motion.binder import bind_skeleton
from smd_motion.helpers import get_clip_info, get_motion_info, get_session_info, get_skeleton_info
from smd_motion.importer import MotionSession, build_animation
from smd_motion.smd.parser import parse, parse_text


class TestMotionInfo:
    def test_sample_file(self, sample_dir):
        info = get_motion_info(parse(sample_dir / "wave.smd"))
        assert info["name"] == "Wave"
        assert info["frame_count"] == 4
        assert info["first_frame"] == 0
        assert info["last_frame"] == 3
        assert info["unsampled_bones"] == []

    def test_unsampled_bones(self):
        text = make_smd(
            bones=[(0, "root", -1), (1, "prop", 0)],
            frames=[(0, [(0, ZERO, ZERO)])],
        )
        info = get_motion_info(parse_text(text))
        assert info["sampled_bones"] == ["root"]
        assert info["unsampled_bones"] == ["prop"]

    def test_json_serializable(self, sample_dir):
        json.dumps(get_motion_info(parse(sample_dir / "wave.smd")))


class TestClipInfo:
    def test_rotation_track_entries(self, sample_dir):
        motion = parse(sample_dir / "wave.smd")
        info = get_clip_info(build_animation(motion, motion.name))
        assert info["track_count"] == 6
        assert info["bone:upper arm"]["keys"] == 4
        assert info["bone:spine"]["keys"] == 2
        assert info["duration"] == 3 / 30


class TestSkeletonInfo:
    def test_existing_rig(self, two_bone_smd, skinned_asset):
        motion = parse_text(two_bone_smd)
        info = get_skeleton_info(bind_skeleton(skinned_asset, motion.bones))
        assert info["mesh"] == "skin"
        assert info["synthesized"] is False
        assert info["matched_count"] == 2
        assert [b["parent"] for b in info["bones"]] == [-1, 0, 0]
        assert [b["matched"] for b in info["bones"]] == [True, True, False]
        json.dumps(info)


class TestSessionInfo:
    def test_empty_session(self, static_asset):
        assert get_session_info(MotionSession(static_asset)) == {"loaded": False, "warnings": []}

    def test_loaded_session(self, two_bone_smd, static_asset):
        session = MotionSession(static_asset)
        session.load_text(two_bone_smd)
        info = get_session_info(session)
        assert info["loaded"] is True
        assert info["name"] == "Arm Raise"
        assert info["state"] == "playing"
        assert info["speed"] == 1.0
        assert len(info["warnings"]) == 1

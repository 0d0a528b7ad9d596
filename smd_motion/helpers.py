"""Introspection helpers returning plain dicts for UIs and scripts."""

from __future__ import annotations

from .binder import SkeletonBinding
from .importer import MotionSession
from .smd.types import MotionFile
from .tracks import AnimationClip, TrackKind


def get_motion_info(motion: MotionFile) -> dict:
    """Return summary info about a parsed SMD motion."""
    sampled = {s.bone_id for frame in motion.frames for s in frame.samples}
    return {
        "name": motion.name,
        "version": motion.version,
        "bone_count": motion.bone_count,
        "frame_count": motion.frame_count,
        "first_frame": motion.frames[0].time if motion.frames else None,
        "last_frame": motion.frames[-1].time if motion.frames else None,
        "sampled_bones": sorted(b.name for b in motion.bones if b.id in sampled),
        "unsampled_bones": sorted(b.name for b in motion.bones if b.id not in sampled),
    }


def get_clip_info(clip: AnimationClip) -> dict:
    info = {
        "name": clip.name,
        "duration": clip.duration,
        "track_count": len(clip.tracks),
    }
    for track in clip.tracks:
        if track.kind is TrackKind.ROTATION:
            info[f"bone:{track.bone_name}"] = {"keys": len(track), "end": track.end_time}
    return info


def get_skeleton_info(binding: SkeletonBinding) -> dict:
    """Return bone hierarchy and match status of a bound skeleton."""
    skeleton = binding.skeleton
    matched = set(binding.bone_map.values())
    parents = skeleton.parent_indices()
    return {
        "mesh": binding.skinned_mesh.name,
        "synthesized": binding.synthesized,
        "bone_count": len(skeleton),
        "matched_count": len(binding.bone_map),
        "bones": [
            {
                "index": i,
                "name": bone.name,
                "parent": parents[i],
                "matched": bone in matched,
                "location": list(bone.location),
                "rotation": list(bone.rotation),
            }
            for i, bone in enumerate(skeleton.bones)
        ],
        "warnings": list(binding.all_warnings),
    }


def get_session_info(session: MotionSession) -> dict:
    if session.info is None:
        return {"loaded": False, "warnings": list(session.warnings)}

    state = session.playback_state
    return {
        "loaded": True,
        "name": session.info.name,
        "duration_seconds": session.info.duration_seconds,
        "frame_count": session.info.frame_count,
        "bone_count": session.info.bone_count,
        "state": state.state.value if state else None,
        "speed": state.speed if state else None,
        "current_time": state.current_time if state else None,
        "warnings": list(session.warnings),
    }

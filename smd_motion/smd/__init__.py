from .parser import parse, parse_text
from .types import BoneDeclaration, BoneSample, Frame, MotionFile

__all__ = ["BoneDeclaration", "BoneSample", "Frame", "MotionFile", "parse", "parse_text"]

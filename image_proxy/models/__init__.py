from .caller import Caller
from .image import ImagePublic, ImageRecord
from .requests import ImageCreate, ImagePatch, ImageReplace

__all__ = [
    "Caller",
    "ImageRecord",
    "ImagePublic",
    "ImageCreate",
    "ImageReplace",
    "ImagePatch",
]

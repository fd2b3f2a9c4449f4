from pathlib import Path
from typing import Literal, Union
import cv2
import numpy as np

from photomosaic.config import IMAGE_EXTS, VIDEO_EXTS

DecodeReason = Literal["not_found", "stream_not_found", "invalid_data"]


class DecodeError(Exception):
    """Raised when a file cannot be turned into an RGB pixel buffer."""

    def __init__(self, path: Union[str, Path], reason: DecodeReason):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Could not decode {self.path}: {reason}")


def first_frame(path: Union[str, Path]) -> np.ndarray:
    """
    Decode the first video frame of a container as RGB uint8 (H, W, 3).
    """
    path = Path(path)
    if not path.is_file():
        raise DecodeError(path, "not_found")
    cap = cv2.VideoCapture(str(path))
    try:
        if not cap.isOpened():
            raise DecodeError(path, "stream_not_found")
        ok, frame_bgr = cap.read()
    finally:
        cap.release()
    if not ok or frame_bgr is None:
        raise DecodeError(path, "invalid_data")
    return cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)


# cv2 loads BGR; convert to RGB to keep consistency across the codebase.
def load_image(path: Union[str, Path]) -> np.ndarray:
    path = Path(path)
    if path.suffix.lower() in VIDEO_EXTS:
        return first_frame(path)
    if not path.is_file():
        raise DecodeError(path, "not_found")
    img_bgr = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img_bgr is None:
        raise DecodeError(path, "invalid_data")
    img_rgb = cv2.cvtColor(img_bgr, cv2.COLOR_BGR2RGB)
    return img_rgb


def save_image_rgb(path: Union[str, Path], img_rgb: np.ndarray, quality: int = 92) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    ext = path.suffix.lower()
    img_bgr = cv2.cvtColor(img_rgb, cv2.COLOR_RGB2BGR)
    if ext in [".jpg", ".jpeg"]:
        cv2.imwrite(str(path), img_bgr, [int(cv2.IMWRITE_JPEG_QUALITY), int(quality)])
    elif ext == ".png":
        cv2.imwrite(str(path), img_bgr)  # use default compression
    else:
        # fallback to PNG
        path = path.with_suffix(".png")
        cv2.imwrite(str(path), img_bgr)
    return path


def list_images(folder: Union[str, Path], include_video: bool = False) -> list[Path]:
    folder = Path(folder)
    exts = IMAGE_EXTS + VIDEO_EXTS if include_video else IMAGE_EXTS
    return sorted([p for p in folder.iterdir() if p.is_file() and p.suffix.lower() in exts])

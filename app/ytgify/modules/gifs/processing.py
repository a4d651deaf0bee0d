"""
Post-upload processing: read the stored file back and fill in dimensions, frame rate,
duration and size on the Gif row.
"""
from __future__ import annotations

import io
import logging
from dataclasses import dataclass

from PIL import Image, ImageSequence, UnidentifiedImageError
from sqlalchemy.orm import Session

from app.ytgify.modules.gifs.models import Gif
from app.ytgify.storage import Storage

logger = logging.getLogger(__name__)

# Frame delays are in centiseconds (1/100 s). 10cs = 10fps.
DEFAULT_DELAY_CS = 10.0
MAX_FPS = 60

ANIMATED_IMAGE_TYPES = ("image/gif", "image/webp")


@dataclass(frozen=True)
class GifMetadata:
    width: int
    height: int
    frame_count: int
    fps: int
    duration: float


def extract_metadata(data: bytes) -> GifMetadata:
    """
    Raises PIL.UnidentifiedImageError when the bytes are not an image Pillow can read.
    """
    with Image.open(io.BytesIO(data)) as im:
        width, height = im.size
        frame_count = max(int(getattr(im, "n_frames", 1) or 1), 1)
        # Pillow reports per-frame delay in milliseconds.
        delays_cs = [float(frame.info.get("duration") or 0) / 10.0 for frame in ImageSequence.Iterator(im)]

    avg_delay_cs = sum(delays_cs) / len(delays_cs) if delays_cs else 0.0
    if avg_delay_cs <= 0:
        avg_delay_cs = DEFAULT_DELAY_CS

    fps = min(max(round(100.0 / avg_delay_cs), 1), MAX_FPS)
    duration = round(frame_count * avg_delay_cs / 100.0, 2)
    return GifMetadata(width=width, height=height, frame_count=frame_count, fps=fps, duration=duration)


def process_gif(s: Session, storage: Storage, gif: Gif) -> bool:
    """
    Extract metadata for an uploaded GIF. Returns False (and logs) when there is nothing to
    analyse or the file cannot be decoded; the row keeps whatever it already had.
    """
    if not gif.file_key:
        logger.info("Gif %s has no file; skipping processing", gif.id)
        return False
    try:
        data = storage.read_bytes(gif.file_key)
    except (OSError, RuntimeError) as e:
        logger.error("Failed to read file for Gif %s (%s): %s", gif.id, gif.file_key, e)
        return False

    gif.file_size = len(data)
    if gif.content_type and gif.content_type not in ANIMATED_IMAGE_TYPES:
        # Video uploads keep the client-supplied metadata.
        s.flush()
        return True

    try:
        meta = extract_metadata(data)
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.error("Failed to analyze Gif %s: %s", gif.id, e)
        s.flush()
        return False

    gif.resolution_width = meta.width
    gif.resolution_height = meta.height
    gif.fps = meta.fps
    gif.duration = meta.duration
    s.flush()
    logger.info(
        "Gif %s metadata: %sx%s, %s frames, %s fps, %ss",
        gif.id,
        meta.width,
        meta.height,
        meta.frame_count,
        meta.fps,
        meta.duration,
    )
    return True


def process_remix(s: Session, remix: Gif, source: Gif) -> None:
    """Remixes are rendered client-side at the source's geometry; copy it across."""
    remix.resolution_width = source.resolution_width
    remix.resolution_height = source.resolution_height
    remix.fps = source.fps
    remix.duration = source.duration
    s.flush()
    logger.info("Processed remix %s from source %s", remix.id, source.id)

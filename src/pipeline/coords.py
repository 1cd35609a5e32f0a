"""
Normalized box -> pixel box mapping.
"""

from __future__ import annotations

from models.detection import NormalizedBox, PixelBox


class CoordinateMapper:
    """
    Scales normalized coordinates by the frame size and rounds to pixels.

    No clamping: a box the network places partly outside [0, 1] maps to
    pixels outside the frame. Clamping is the renderer's decision.
    """

    def __call__(self, box: NormalizedBox, frame_width: int, frame_height: int) -> PixelBox:
        return self.to_pixel_box(box, frame_width, frame_height)

    @staticmethod
    def to_pixel_box(box: NormalizedBox, frame_width: int, frame_height: int) -> PixelBox:
        return PixelBox(
            left=int(round(box.left * frame_width)),
            top=int(round(box.top * frame_height)),
            right=int(round(box.right * frame_width)),
            bottom=int(round(box.bottom * frame_height)),
        )

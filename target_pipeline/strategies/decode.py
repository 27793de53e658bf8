import cv2
import numpy as np

from ..errors import DecodeFailure
from ..tp_types import Frame, ImageMessage

# encoding -> (channels, cvtColor code or None)
RAW_ENCODINGS = {
    "bgr8": (3, None),
    "rgb8": (3, cv2.COLOR_RGB2BGR),
    "bgra8": (4, cv2.COLOR_BGRA2BGR),
    "rgba8": (4, cv2.COLOR_RGBA2BGR),
    "mono8": (1, cv2.COLOR_GRAY2BGR),
}
COMPRESSED_ENCODINGS = {"jpeg", "jpg", "png"}


def _decode_raw(msg: ImageMessage, enc: str) -> np.ndarray:
    channels, code = RAW_ENCODINGS[enc]
    img = msg.data
    if not isinstance(img, np.ndarray):
        raise DecodeFailure(f"{enc} payload must be an ndarray, got {type(img).__name__}")
    if img.dtype != np.uint8:
        raise DecodeFailure(f"{enc} payload must be uint8, got {img.dtype}")
    if channels == 1 and img.ndim == 3 and img.shape[2] == 1:
        img = img[:, :, 0]
    expected_ndim = 2 if channels == 1 else 3
    if img.ndim != expected_ndim or (channels > 1 and img.shape[2] != channels):
        raise DecodeFailure(f"{enc} payload has shape {img.shape}")
    if img.size == 0:
        raise DecodeFailure("empty image")
    if code is None:
        return img.copy()
    return cv2.cvtColor(img, code)


def _decode_compressed(msg: ImageMessage) -> np.ndarray:
    buf = msg.data
    if isinstance(buf, (bytes, bytearray, memoryview)):
        buf = np.frombuffer(buf, dtype=np.uint8)
    if not isinstance(buf, np.ndarray) or buf.size == 0:
        raise DecodeFailure("empty compressed payload")
    img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
    if img is None:
        raise DecodeFailure(f"could not decode {msg.encoding} payload")
    return img


def decode_image(msg: ImageMessage) -> Frame:
    """Convert an incoming image message into an owned BGR8 frame.

    The returned image never aliases the message buffer, so drawing on it
    leaves the input untouched.
    """
    enc = (msg.encoding or "").strip().lower()
    if enc in RAW_ENCODINGS:
        img = _decode_raw(msg, enc)
    elif enc in COMPRESSED_ENCODINGS:
        img = _decode_compressed(msg)
    else:
        raise DecodeFailure(f"unsupported encoding: {msg.encoding!r}")
    return Frame(msg.header, img)

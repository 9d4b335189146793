"""Loading WAV files as 48kHz floating-point mono audio."""

from __future__ import annotations

import logging
import struct

import numpy as np

logger = logging.getLogger(__name__)

AUDIO_RATE = 48000

_FORMAT_PCM = 0x0001
_FORMAT_FLOAT = 0x0003
_FORMAT_EXTENSIBLE = 0xFFFE


def _fail(filename, reason: str) -> ValueError:
    return ValueError(f"Failed to load WAV file '{filename}'; {reason}")


def _chunks(raw: bytes, filename):
    """Yield (tag, payload) for each chunk of a RIFF/WAVE file."""
    if len(raw) < 12 or raw[:4] != b"RIFF" or raw[8:12] != b"WAVE":
        raise _fail(filename, "not a RIFF/WAVE file")
    offset = 12
    while offset + 8 <= len(raw):
        tag, size = struct.unpack_from("<4sI", raw, offset)
        start = offset + 8
        yield tag, raw[start:start + size]
        offset = start + size + (size & 1)


def _decode(payload: bytes, tag: int, sample_bytes: int, filename) -> np.ndarray:
    if tag == _FORMAT_PCM:
        if sample_bytes == 1:
            values = np.frombuffer(payload, dtype=np.uint8).astype(np.float64)
            return (values - 128.0) / 128.0
        if sample_bytes == 2:
            return np.frombuffer(payload, dtype="<i2").astype(np.float64) / 32768.0
        if sample_bytes == 3:
            raw = np.frombuffer(payload, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
            values = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
            values = values - ((values & 0x800000) << 1)
            return values.astype(np.float64) / 8388608.0
        if sample_bytes == 4:
            return np.frombuffer(payload, dtype="<i4").astype(np.float64) / 2147483648.0
    elif tag == _FORMAT_FLOAT:
        if sample_bytes == 4:
            return np.frombuffer(payload, dtype="<f4").astype(np.float64)
        if sample_bytes == 8:
            return np.frombuffer(payload, dtype="<f8").astype(np.float64)
    raise _fail(filename, f"unsupported sample format (tag {tag:#06x}, {sample_bytes * 8} bits)")


def _resample(mono: np.ndarray, rate: int) -> np.ndarray:
    if rate == AUDIO_RATE or len(mono) == 0:
        return mono
    count = len(mono) * AUDIO_RATE // rate
    positions = np.arange(count) * (rate / AUDIO_RATE)
    return np.interp(positions, np.arange(len(mono)), mono)


def load_wav(filename) -> np.ndarray:
    """Load ``filename`` as 48kHz mono float32 samples, converting if needed."""
    try:
        with open(filename, "rb") as stream:
            raw = stream.read()
    except OSError as error:
        raise _fail(filename, str(error)) from error

    fmt = None
    data = None
    for tag, payload in _chunks(raw, filename):
        if tag == b"fmt " and fmt is None:
            fmt = payload
        elif tag == b"data" and data is None:
            data = payload
    if fmt is None or len(fmt) < 16:
        raise _fail(filename, "missing or short 'fmt ' chunk")
    if data is None:
        raise _fail(filename, "missing 'data' chunk")

    tag, channels, rate, _byte_rate, block_align, bits = struct.unpack_from("<HHIIHH", fmt)
    if tag == _FORMAT_EXTENSIBLE:
        if len(fmt) < 26:
            raise _fail(filename, "short extensible 'fmt ' chunk")
        (tag,) = struct.unpack_from("<H", fmt, 24)
    if channels == 0 or rate == 0 or bits == 0 or bits % 8 != 0:
        raise _fail(filename, "invalid format description")
    sample_bytes = bits // 8
    if block_align != channels * sample_bytes:
        raise _fail(filename, "block alignment does not match channel layout")

    frames = len(data) // block_align
    samples = _decode(data[:frames * block_align], tag, sample_bytes, filename)
    mono = samples.reshape(frames, channels).mean(axis=1)

    if channels != 1 or rate != AUDIO_RATE or not (tag == _FORMAT_FLOAT and sample_bytes == 4):
        logger.info(
            "WAV file '%s' didn't load as %d Hz, float32, mono; converting.", filename, AUDIO_RATE
        )
    result = _resample(mono, rate).astype(np.float32)

    low = min(0.0, float(result.min())) if len(result) else 0.0
    high = max(0.0, float(result.max())) if len(result) else 0.0
    logger.info("Range: %g, %g", low, high)
    return result
"""Mono sample playback with volume ramps, stereo panning and simple 3D audio.

Audio is 48kHz mono floating point.  A :class:`Mixer` keeps the list of
playing samples and produces stereo blocks of :data:`MIX_SAMPLES` frames
each time :meth:`Mixer.mix` is called, as an audio callback would.
"""

from __future__ import annotations

import math
import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np

AUDIO_RATE = 48000
MIX_SAMPLES = 1024
RAMP_STEP = MIX_SAMPLES / AUDIO_RATE
DEFAULT_RAMP = 1.0 / 60.0

_HALF_PI = 0.5 * 3.1415926


def _coerce(value: Any) -> Any:
    """Scalars become floats; anything else becomes a fresh float array."""
    if np.ndim(value) == 0:
        return float(value)
    return np.array(value, dtype=float)


@dataclass
class Ramp:
    """A value that moves smoothly to ``target`` over ``ramp`` seconds."""

    value: Any
    target: Any = None
    ramp: float = 0.0

    def __post_init__(self) -> None:
        self.value = _coerce(self.value)
        self.target = _coerce(self.value if self.target is None else self.target)

    def set(self, value: Any, ramp: float) -> None:
        """Aim at ``value`` over ``ramp`` seconds; a ramp of zero or less jumps."""
        if ramp <= 0.0:
            self.value = _coerce(value)
            self.target = _coerce(value)
            self.ramp = 0.0
        else:
            self.target = _coerce(value)
            self.ramp = float(ramp)


@dataclass(eq=False)
class Sample:
    """Mono 48kHz floating-point audio."""

    data: np.ndarray

    def __post_init__(self) -> None:
        self.data = np.asarray(self.data, dtype=np.float32).reshape(-1)

    @classmethod
    def from_file(cls, filename) -> "Sample":
        """Load a sample from a ``.wav`` file."""
        name = str(filename)
        if name.endswith(".wav"):
            from .wav import load_wav

            return cls(load_wav(name))
        if name.endswith(".opus"):
            raise ValueError(f"Sample '{name}' is an Opus file, which cannot be decoded here.")
        raise ValueError(
            f"Sample '{name}' doesn't end in either \".wav\" or \".opus\" -- unsure how to load."
        )

    def __len__(self) -> int:
        return len(self.data)


class PlayingSample:
    """Book-keeping for one sample being played, in 2D (panned) or 3D mode."""

    def __init__(
        self,
        sample: Sample,
        volume: float = 1.0,
        *,
        pan: Optional[float] = None,
        position: Optional[Sequence[float]] = None,
        half_volume_radius: float = math.inf,
        loop: bool = False,
        lock: Optional[threading.RLock] = None,
    ) -> None:
        if len(sample.data) == 0:
            raise ValueError("cannot play an empty sample")
        if (pan is None) == (position is None):
            raise ValueError("give exactly one of pan (2D) or position (3D)")
        self.data = sample.data
        self.i = 0
        self.loop = loop
        self.stopping = False
        self.stopped = False
        self.volume = Ramp(volume)
        if pan is not None:
            self.pan = Ramp(pan)
            self.position = Ramp(np.full(3, math.nan))
            self.half_volume_radius = Ramp(math.nan)
        else:
            self.pan = Ramp(math.nan)
            self.position = Ramp(position)
            self.half_volume_radius = Ramp(half_volume_radius)
        self._lock = lock if lock is not None else threading.RLock()

    @property
    def is_3d(self) -> bool:
        return math.isnan(self.pan.value)

    def set_volume(self, new_volume: float, ramp: float = DEFAULT_RAMP) -> None:
        with self._lock:
            if not self.stopping:
                self.volume.set(new_volume, ramp)

    def set_pan(self, new_pan: float, ramp: float = DEFAULT_RAMP) -> None:
        """Change the pan of a 2D sample; ignored for 3D samples."""
        if self.is_3d:
            return
        with self._lock:
            self.pan.set(new_pan, ramp)

    def set_position(self, new_position, ramp: float = DEFAULT_RAMP) -> None:
        """Move a 3D sample; ignored for 2D samples."""
        if not self.is_3d:
            return
        with self._lock:
            self.position.set(new_position, ramp)

    def set_half_volume_radius(self, new_radius: float, ramp: float = DEFAULT_RAMP) -> None:
        """Change the distance at which a 3D sample is at half volume; ignored for 2D."""
        if not self.is_3d:
            return
        with self._lock:
            self.half_volume_radius.set(new_radius, ramp)

    def stop(self, ramp: float = DEFAULT_RAMP) -> None:
        """Fade out over ``ramp`` seconds, after which the sample is removed."""
        with self._lock:
            if not (self.stopping or self.stopped):
                self.stopping = True
                self.volume.target = 0.0
                self.volume.ramp = ramp
            else:
                self.volume.ramp = min(self.volume.ramp, ramp)


@dataclass
class Listener:
    """Position and right direction that 3D samples are panned against."""

    position: Ramp = field(default_factory=lambda: Ramp(np.zeros(3)))
    right: Ramp = field(default_factory=lambda: Ramp(np.array([1.0, 0.0, 0.0])))
    lock: Any = field(default_factory=threading.RLock, repr=False, compare=False)

    def set_position_right(self, new_position, new_right, ramp: float = DEFAULT_RAMP) -> None:
        """Move the listener; ``new_right`` is normalised (zero means +x)."""
        with self.lock:
            self.position.set(new_position, ramp)
            right = np.asarray(new_right, dtype=float)
            if not right.any():
                self.right.set(np.array([1.0, 0.0, 0.0]), ramp)
            else:
                self.right.set(right / np.linalg.norm(right), ramp)


def compute_pan_weights(pan: float) -> tuple[float, float]:
    """Equal-power (left, right) weights for ``pan`` in [-1, 1] (clamped)."""
    pan = max(-1.0, min(1.0, pan))
    ang = _HALF_PI * (0.5 * (pan + 1.0))
    return math.cos(ang), math.sin(ang)


def compute_pan_from_listener_and_position(
    listener_position, listener_right, source_position, source_half_radius: float
) -> tuple[float, float]:
    """(left, right) weights for a source, panned by direction and attenuated by distance."""
    to = np.asarray(source_position, dtype=float) - np.asarray(listener_position, dtype=float)
    distance = float(np.linalg.norm(to))
    if distance == 0.0:
        both = math.sqrt(2.0)
        return both, both
    amt = float(np.dot(np.asarray(listener_right, dtype=float), to)) / distance
    ang = _HALF_PI * (0.5 * (amt + 1.0))
    ratio = distance / source_half_radius if source_half_radius != 0.0 else math.inf
    att = 1.0 / (1.0 + ratio)
    return math.cos(ang) * att, math.sin(ang) * att


def step_value_ramp(ramp: Ramp) -> None:
    """Advance a scalar ramp by one mix block."""
    if ramp.ramp < RAMP_STEP:
        ramp.value = ramp.target
        ramp.ramp = 0.0
    else:
        ramp.value += (RAMP_STEP / ramp.ramp) * (ramp.target - ramp.value)
        ramp.ramp -= RAMP_STEP


def step_position_ramp(ramp: Ramp) -> None:
    """Advance a 3D position ramp by one mix block (linear interpolation)."""
    if ramp.ramp < RAMP_STEP:
        ramp.value = np.array(ramp.target, dtype=float)
        ramp.ramp = 0.0
    else:
        t = RAMP_STEP / ramp.ramp
        ramp.value = ramp.value * (1.0 - t) + ramp.target * t
        ramp.ramp -= RAMP_STEP


def step_direction_ramp(ramp: Ramp) -> None:
    """Advance a unit-direction ramp by one mix block, rotating toward the target."""
    if ramp.ramp < RAMP_STEP:
        ramp.value = np.array(ramp.target, dtype=float)
        ramp.ramp = 0.0
        return
    value = np.asarray(ramp.value, dtype=float)
    target = np.asarray(ramp.target, dtype=float)
    norm = np.cross(value, target)
    if not norm.any():
        if target[0] <= target[1] and target[0] <= target[2]:
            norm = np.array([1.0, 0.0, 0.0])
        elif target[1] <= target[2]:
            norm = np.array([0.0, 1.0, 0.0])
        else:
            norm = np.array([0.0, 0.0, 1.0])
        norm = norm - target * float(np.dot(target, norm))
    norm = norm / np.linalg.norm(norm)
    perp = np.cross(norm, target)

    angle = math.acos(max(-1.0, min(1.0, float(np.dot(value, target)))))
    angle *= (ramp.ramp - RAMP_STEP) / ramp.ramp

    ramp.value = target * math.cos(angle) + perp * math.sin(angle)
    ramp.ramp -= RAMP_STEP


class Mixer:
    """Owns the playing samples, the global volume and the listener."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.volume = Ramp(1.0)
        self.listener = Listener(lock=self._lock)
        self._playing: list[PlayingSample] = []

    @property
    def playing_samples(self) -> tuple[PlayingSample, ...]:
        with self._lock:
            return tuple(self._playing)

    def lock(self):
        """Context manager that keeps :meth:`mix` from running while held."""
        return self._lock

    def _start(self, playing: PlayingSample) -> PlayingSample:
        with self._lock:
            self._playing.append(playing)
        return playing

    def play(self, sample: Sample, volume: float = 1.0, pan: float = 0.0) -> PlayingSample:
        """Play ``sample`` once; pan -1 is hard left, 1 hard right."""
        return self._start(PlayingSample(sample, volume, pan=pan, lock=self._lock))

    def play_3d(
        self, sample: Sample, volume: float, position, half_volume_radius: float = math.inf
    ) -> PlayingSample:
        """Play ``sample`` once, panned by its position relative to the listener."""
        return self._start(
            PlayingSample(
                sample, volume, position=position,
                half_volume_radius=half_volume_radius, lock=self._lock,
            )
        )

    def loop(self, sample: Sample, volume: float = 1.0, pan: float = 0.0) -> PlayingSample:
        """Play ``sample`` repeatedly until stopped."""
        return self._start(PlayingSample(sample, volume, pan=pan, loop=True, lock=self._lock))

    def loop_3d(
        self, sample: Sample, volume: float, position, half_volume_radius: float = math.inf
    ) -> PlayingSample:
        """Loop ``sample`` in 3D mode until stopped."""
        return self._start(
            PlayingSample(
                sample, volume, position=position,
                half_volume_radius=half_volume_radius, loop=True, lock=self._lock,
            )
        )

    def stop_all_samples(self) -> None:
        with self._lock:
            for playing in self._playing:
                playing.stop()

    def set_volume(self, new_volume: float, ramp: float = DEFAULT_RAMP) -> None:
        with self._lock:
            self.volume.set(new_volume, ramp)

    def _pan_of(self, playing: PlayingSample, position, right) -> tuple[float, float]:
        if playing.is_3d:
            return compute_pan_from_listener_and_position(
                position, right, playing.position.value, playing.half_volume_radius.value
            )
        return compute_pan_weights(playing.pan.value)

    def mix(self) -> np.ndarray:
        """Mix the next block: a ``(MIX_SAMPLES, 2)`` array of left/right frames."""
        buffer = np.zeros((MIX_SAMPLES, 2), dtype=np.float32)
        with self._lock:
            start_volume = self.volume.value
            start_position = np.array(self.listener.position.value, dtype=float)
            start_right = np.array(self.listener.right.value, dtype=float)

            step_value_ramp(self.volume)
            step_position_ramp(self.listener.position)
            step_direction_ramp(self.listener.right)

            end_volume = self.volume.value
            end_position = np.array(self.listener.position.value, dtype=float)
            end_right = np.array(self.listener.right.value, dtype=float)

            survivors: list[PlayingSample] = []
            for playing in self._playing:
                start_l, start_r = self._pan_of(playing, start_position, start_right)
                if playing.is_3d:
                    step_position_ramp(playing.position)
                    step_value_ramp(playing.half_volume_radius)
                else:
                    step_value_ramp(playing.pan)
                gain = start_volume * playing.volume.value
                start_l, start_r = start_l * gain, start_r * gain

                step_value_ramp(playing.volume)

                end_l, end_r = self._pan_of(playing, end_position, end_right)
                gain = end_volume * playing.volume.value
                end_l, end_r = end_l * gain, end_r * gain

                size = len(playing.data)
                if playing.loop:
                    count = MIX_SAMPLES
                    indices = (playing.i + np.arange(count)) % size
                    playing.i = (playing.i + count) % size
                else:
                    count = min(MIX_SAMPLES, size - playing.i)
                    indices = playing.i + np.arange(count)
                    playing.i += count

                steps = np.arange(count)
                pan_l = start_l + steps * ((end_l - start_l) / MIX_SAMPLES)
                pan_r = start_r + steps * ((end_r - start_r) / MIX_SAMPLES)
                values = playing.data[indices]
                buffer[:count, 0] += pan_l * values
                buffer[:count, 1] += pan_r * values

                if playing.i >= size or (playing.stopping and playing.volume.value == 0.0):
                    playing.stopped = True
                else:
                    survivors.append(playing)
            self._playing = survivors
        return buffer
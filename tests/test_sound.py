import math

import numpy as np
import pytest

from hexascene.sound import (
    MIX_SAMPLES,
    RAMP_STEP,
    Listener,
    Mixer,
    PlayingSample,
    Ramp,
    Sample,
    compute_pan_from_listener_and_position,
    compute_pan_weights,
    step_direction_ramp,
    step_position_ramp,
    step_value_ramp,
)


def ones(n):
    return Sample(np.ones(n))


def test_ramp_set_immediate_and_ramped():
    r = Ramp(2.0)
    assert r.target == 2.0
    r.set(5.0, 0.0)
    assert (r.value, r.target, r.ramp) == (5.0, 5.0, 0.0)
    r.set(7.0, 0.5)
    assert (r.value, r.target, r.ramp) == (5.0, 7.0, 0.5)


def test_pan_weights_equal_power_and_clamped():
    left, right = compute_pan_weights(0.0)
    assert left == pytest.approx(right)
    assert left * left + right * right == pytest.approx(1.0)
    assert compute_pan_weights(5.0) == compute_pan_weights(1.0)
    hard_left = compute_pan_weights(-1.0)
    assert hard_left[0] == pytest.approx(1.0)
    assert hard_left[1] == pytest.approx(0.0)


def test_pan_from_position_at_listener():
    left, right = compute_pan_from_listener_and_position([0, 0, 0], [1, 0, 0], [0, 0, 0], 10.0)
    assert left == pytest.approx(math.sqrt(2.0))
    assert right == pytest.approx(math.sqrt(2.0))


def test_pan_from_position_half_volume_radius():
    left, right = compute_pan_from_listener_and_position([0, 0, 0], [1, 0, 0], [0, 4, 0], 4.0)
    assert math.hypot(left, right) == pytest.approx(0.5)
    assert left == pytest.approx(right)


def test_pan_from_position_right_side_louder_right():
    left, right = compute_pan_from_listener_and_position([0, 0, 0], [1, 0, 0], [3, 1, 0], math.inf)
    assert right > left
    assert math.hypot(left, right) == pytest.approx(1.0)


def test_step_value_ramp_moves_and_finishes():
    r = Ramp(0.0)
    r.set(1.0, 10 * RAMP_STEP)
    step_value_ramp(r)
    assert 0.0 < r.value < 1.0
    assert r.ramp == pytest.approx(9 * RAMP_STEP)
    for _ in range(20):
        step_value_ramp(r)
    assert r.value == pytest.approx(1.0)
    assert r.ramp == 0.0


def test_step_position_ramp_interpolates_on_segment():
    r = Ramp(np.zeros(3))
    r.set([2.0, 0.0, 0.0], 4 * RAMP_STEP)
    step_position_ramp(r)
    assert 0.0 < r.value[0] < 2.0
    assert r.value[1] == 0.0 and r.value[2] == 0.0
    r.ramp = 0.0
    step_position_ramp(r)
    np.testing.assert_allclose(r.value, r.target)


def test_step_direction_ramp_stays_unit_and_converges():
    r = Ramp(np.array([1.0, 0.0, 0.0]))
    r.set([0.0, 1.0, 0.0], 8 * RAMP_STEP)
    previous = math.acos(float(np.dot(r.value, r.target)))
    for _ in range(8):
        step_direction_ramp(r)
        assert np.linalg.norm(r.value) == pytest.approx(1.0)
        angle = math.acos(max(-1.0, min(1.0, float(np.dot(r.value, r.target)))))
        assert angle <= previous + 1e-9
        previous = angle
    step_direction_ramp(r)
    np.testing.assert_allclose(r.value, [0.0, 1.0, 0.0], atol=1e-6)


def test_step_direction_ramp_opposite_vectors():
    r = Ramp(np.array([1.0, 0.0, 0.0]))
    r.set([-1.0, 0.0, 0.0], 4 * RAMP_STEP)
    step_direction_ramp(r)
    assert np.linalg.norm(r.value) == pytest.approx(1.0)
    assert float(np.dot(r.value, r.target)) > -1.0


def test_listener_zero_right_defaults_to_x():
    listener = Listener()
    listener.set_position_right([1, 2, 3], [0, 0, 0], 0.0)
    np.testing.assert_allclose(listener.right.value, [1.0, 0.0, 0.0])
    np.testing.assert_allclose(listener.position.value, [1, 2, 3])
    listener.set_position_right([0, 0, 0], [0, 5, 0], 0.0)
    np.testing.assert_allclose(listener.right.value, [0.0, 1.0, 0.0])


def test_sample_from_file_rejects_unknown_extension():
    with pytest.raises(ValueError):
        Sample.from_file("sound.mp3")


def test_playing_empty_sample_raises():
    with pytest.raises(ValueError):
        Mixer().play(Sample([]))


def test_set_pan_ignored_for_3d_and_position_ignored_for_2d():
    mixer = Mixer()
    flat = mixer.play(ones(10), 1.0, 0.0)
    spatial = mixer.play_3d(ones(10), 1.0, [1.0, 0.0, 0.0])
    spatial.set_pan(0.5, 0.0)
    assert math.isnan(spatial.pan.value)
    flat.set_position([1.0, 2.0, 3.0], 0.0)
    assert np.isnan(flat.position.value).all()
    flat.set_pan(0.5, 0.0)
    assert flat.pan.value == 0.5
    spatial.set_half_volume_radius(3.0, 0.0)
    assert spatial.half_volume_radius.value == 3.0


def test_mix_constant_sample_centered():
    mixer = Mixer()
    mixer.loop(ones(MIX_SAMPLES * 2))
    out = mixer.mix()
    left, right = compute_pan_weights(0.0)
    assert out.shape == (MIX_SAMPLES, 2)
    np.testing.assert_allclose(out[:, 0], left, rtol=1e-5)
    np.testing.assert_allclose(out[:, 1], right, rtol=1e-5)


def test_mix_short_sample_finishes_and_is_removed():
    mixer = Mixer()
    playing = mixer.play(ones(100))
    out = mixer.mix()
    assert np.all(out[:100, 0] > 0)
    assert np.all(out[100:] == 0)
    assert playing.stopped
    assert mixer.playing_samples == ()


def test_mix_loop_wraps_and_keeps_playing():
    mixer = Mixer()
    playing = mixer.loop(ones(100))
    out = mixer.mix()
    assert np.all(out[:, 0] > 0)
    assert playing.i == MIX_SAMPLES % 100
    assert mixer.playing_samples == (playing,)


def test_stop_removes_after_fade():
    mixer = Mixer()
    playing = mixer.loop(ones(50))
    playing.stop(0.0)
    assert playing.stopping
    mixer.mix()
    assert playing.stopped
    assert mixer.playing_samples == ()


def test_stop_all_samples_and_set_volume_after_stop_ignored():
    mixer = Mixer()
    a = mixer.loop(ones(50))
    b = mixer.loop(ones(50))
    mixer.stop_all_samples()
    assert a.stopping and b.stopping
    a.set_volume(1.0, 0.0)
    assert a.volume.target == 0.0


def test_global_volume_zero_silences():
    mixer = Mixer()
    mixer.loop(ones(MIX_SAMPLES))
    mixer.set_volume(0.0, 0.0)
    out = mixer.mix()
    assert out.shape == (MIX_SAMPLES, 2)
    assert int(np.count_nonzero(out)) == 0


def test_3d_sample_on_right_is_louder_on_right():
    mixer = Mixer()
    mixer.loop_3d(ones(MIX_SAMPLES), 1.0, [5.0, 0.0, 0.0])
    out = mixer.mix()
    assert out.shape == (MIX_SAMPLES, 2)
    assert int(np.count_nonzero(out[:, 1] > out[:, 0])) == MIX_SAMPLES


def test_lock_is_reentrant_context_manager():
    mixer = Mixer()
    with mixer.lock():
        playing = mixer.play(ones(10))
    assert mixer.playing_samples == (playing,)
    assert isinstance(playing, PlayingSample)
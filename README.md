# hexascene

The non-rendering core of a small 3D game: a transform hierarchy loaded
from binary scene files, a software audio mixer with 2D panning and 3D
positional sound, WAV and PNG helpers, and a trackball-style viewer camera.

The pieces compute matrices, sample blocks and camera state on numpy
arrays; plug them into whatever display and audio output you use.

## Modules

- `hexascene.chunks`: `read_chunk` and `write_chunk` for the chunked binary
  format (four-byte magic, little-endian four-byte size, packed records
  described by a `struct` format). Pass no format to read or write raw
  bytes. Malformed input raises `ChunkError`.
- `hexascene.linalg`: quaternion and matrix helpers (`quat_to_mat3`,
  `quat_multiply`, `quat_inverse`, `angle_axis`, `rotate_vector`,
  `normalize`, `infinite_perspective`, `pad_mat4`). Quaternions are
  `(w, x, y, z)`; affine transforms are 3x4 arrays.
- `hexascene.scene`: `Scene` with its `Transform`, `Drawable`, `Pipeline`,
  `Camera`, `Light` and `LightType`. Scenes load from `.scene` files
  (`str0`, `xfh0`, `msh0`, `cam0`, `lmp0` chunks), and subclasses can list
  further chunks in `extra_chunks`. Inconsistent files raise
  `SceneFormatError`. `Scene.set` and `Scene.copy` duplicate a scene with
  every transform reference remapped to the copy.
- `hexascene.sound`: `Sample`, `PlayingSample`, `Ramp`, `Listener` and the
  `Mixer`, which mixes playing samples into stereo blocks of
  `MIX_SAMPLES` frames at 48 kHz with smoothly ramped volume, pan and
  position. The ramp and panning helpers (`compute_pan_weights`,
  `compute_pan_from_listener_and_position`, `step_value_ramp`,
  `step_position_ramp`, `step_direction_ramp`) are public too.
- `hexascene.wav`: `load_wav` reads 8/16/24/32-bit PCM or 32/64-bit float
  WAV files, downmixes to mono and resamples to 48 kHz float32.
- `hexascene.png`: `load_png` and `save_png` for RGBA images, with the row
  origin chosen by `OriginLocation`.
- `hexascene.trackball`: `TrackballCamera`, a z-up orbit/pan/dolly camera
  for inspecting scenes and meshes.

## Loading a scene

```python
from hexascene.scene import Scene

names = []

def on_drawable(scene, transform, mesh_name):
    names.append((transform.name, mesh_name))

scene = Scene.from_file("level.scene", on_drawable)
for transform in scene.transforms:
    world = transform.make_local_to_world()

camera = scene.cameras[0]
projection = camera.make_projection()
```

Only perspective cameras and point, hemisphere, spot and directional lamps
are kept; other entries are skipped with a log message.

## Mixing sound

```python
from hexascene.sound import Mixer, Sample

mixer = Mixer()
step = Sample.from_file("step.wav")

mixer.play(step, 1.0, -0.5)                   # once, panned left
hum = mixer.loop_3d(step, 1.0, (0.0, 5.0, 0.0), 10.0)

block = mixer.mix()                           # (MIX_SAMPLES, 2) float32 array
hum.set_position((1.0, 5.0, 0.0), 1.0 / 60.0)
hum.stop(0.5)                                 # fades out, then is removed
```

`with mixer.lock():` keeps `mix` from running while you change several
values at once.

## Viewer camera

```python
from hexascene.trackball import TrackballCamera

orbit = TrackballCamera()
orbit.begin_tumble()
orbit.drag(12, -4, (800, 800), False)   # tumble; pass True to pan
orbit.dolly(1)                          # wheel step in
orbit.apply_to(scene.cameras[0], (800, 800))
```

## What it does not do

- It opens no window and draws nothing: `Pipeline` only records program,
  vertex-array and uniform values for a renderer of your own.
- It plays no audio: `Mixer.mix` returns sample blocks, and sending them to
  a device is up to you.
- `Sample.from_file` loads only `.wav` files; `.opus` files are refused.
- There is no game loop, game mode or command-line program.

## Tests

The test suite uses pytest and is declared in the `test` extra.
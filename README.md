# toyrender

Building blocks for a small physically based renderer, written in Python
on top of NumPy and Pillow. The package provides bounding boxes and a
SAH-built bounding volume hierarchy, a pinhole or thin-lens camera, Fresnel
terms, reflection and transmission models combined into a BSDF, and
floating-point RGBA images that can be shaded per pixel, composed in layers,
loaded from and written to files.

## Installation

```
pip install .
```

With the test dependencies:

```
pip install ".[test]"
pytest
```

## Modules

### `toyrender.color`

- `ColorSpace` (`LINEAR`, `SRGB`); `ColorSpace.label` gives `"Linear"` or
  `"sRGB"`.
- `luminance(color)`: `0.299 r + 0.587 g + 0.114 b`; components past the
  third are ignored.

### `toyrender.fresnel`

- `fr_dielectric(cos_theta_i, eta_i, eta_t)`: unpolarised reflectance at a
  dielectric boundary; returns 1 on total internal reflection.
- `fr_conductor(cos_theta_i, eta_i, eta_t, k)`: per-channel reflectance of
  a conductor, as a NumPy array.
- `Fresnel` (abstract, `evaluate(cos_theta_i)`), `FresnelConductor`,
  `FresnelDielectric` and `FresnelNoOp` (always 1). `evaluate` returns an RGB
  array.

### `toyrender.intersect`

- `IntersectInfo`: a dataclass describing a surface hit (`wo`, `uv`,
  `coord`, `t`, `geometry_normal`, `shading_normal`, `material`,
  `primitive`, `time`). `surface_frame()` returns the 3×3 local-to-world
  rotation whose third column is the shading normal.
- `VolumeInteraction`: a scattering event in a medium (`wo`, `coord`,
  `valid`, `phase_func`).

### `toyrender.composition`

- `Image(width, height, fill=(0, 0, 0, 0))`: RGBA float pixels addressed as
  `image[x, y]`. Reading outside the image gives zeros; writing outside is
  ignored. `width`, `height` and `pixels` (the `(height, width, 4)` array)
  are properties.
  - `pixel_shade(shader)` sets each pixel to `shader(x, y)`.
  - `pixel_shade_ssaa(shader, x_sample, y_sample)` averages
    `shader(screen_coord)` over a grid of sub-pixel coordinates in [0, 1]².
  - `ray_trace(shader, x_sample, y_sample, spp, max_noise_tolerance)` takes
    RGB samples per pixel and stops a pixel early once, checked every 8
    samples, the 95 % confidence half-width of its luminance falls within
    `max_noise_tolerance` times the mean. Alpha is set to 1. Sample counts
    must be positive (`ValueError` otherwise).
  - `upscale(factor)` (nearest neighbour), `next_mipmap()` (every other
    pixel), `average()` (mean RGBA).
  - `export(filename, color_space=ColorSpace.SRGB)` writes 8-bit pixels,
    clipped to [0, 1]. JPEG and BMP files are written without alpha; PNG
    files carry the colour space in a `ColorSpace` text chunk.
- `MixMode`: `NORMAL`, `DIFF`, `MAX`, `NORMAL_CLAMP`, `DIFF_CLAMP`, `INVERT`.
- `Layer(image, position, mix_mode=MixMode.NORMAL)`.
- `Canvas(width, height)` with a `layers` list; `to_image()` flattens the
  layers in order onto a transparent black image.

### `toyrender.accelerate`

- `BBox(pmin, pmax)` with `intersect(origin, direction)` (returns
  `(hit distance, exit distance)` or `None`), `center()`, `union(other)`,
  `include(point)`, `longest_axis()`, `diagonal()`, `surface_area()`,
  `offset(point)` and `copy()`.
- `BVHNode`: one node of the hierarchy.
- `BVH(objects)`: `build()` constructs the hierarchy with a 24-bucket
  surface-area heuristic (reordering `objects`); `intersect(origin,
  direction, time=0.0)` returns the closest hit or `None`. Stored objects
  must provide `bounding_box()` returning a `BBox` and
  `intersect(origin, direction, time)` returning an `IntersectInfo` or
  `None`.

### `toyrender.camera`

- `Camera(origin, rotation, fov, aspect_ratio)` looks down its local −z
  axis; `rotation`'s columns are the camera's right, up and backward axes.
- `Camera.from_look_at(eye, center, up, fov, aspect_ratio)` and
  `look_at(eye, center, up)`.
- `spawn_ray(coord)` returns `(origin, unit direction)` for a screen
  coordinate in [0, 1]², with (0, 0) at the top-left. Setting
  `lens_radius` above 0 gives a thin lens focused at `focal_distance`
  (default 4); `reject_lens_sample`, if set, is a callable that rejects lens
  samples in [0, 1]² for which it returns true. `rng` is the NumPy generator
  used for lens samples.

### `toyrender.dotfont`

- `generate_text_image(lines, color, font_size=1)` draws lines of text in a
  5×8 dot-matrix font on a transparent image, each character cell one pixel
  wider and taller than its glyph. Characters outside codes 32–127 are drawn
  as a box. A `font_size` above 1 scales the image up.

### `toyrender.importer`

- `import_image(path)` loads an RGB or RGBA file as an `Image` (RGB gets
  alpha 1; 8- and 16-bit data are scaled to [0, 1]). It raises `OSError`
  when the file cannot be read and `ValueError` for other channel counts.

### `toyrender.bxdf`

- `BxDFType` flags (`REFLECTION`, `TRANSMISSION`, `DIFFUSE`, `GLOSSY`,
  `SPECULAR`, `ALL`) and `is_specular(bxdf_type)`.
- `BxDFSample`: the result of sampling (`f`, `wi`, `pdf`, `sampled_type`).
- `BxDF` with `matches_flags`, `f(wo, wi)`, `sample_f(wo)` and
  `pdf(wo, wi)`, in the local shading frame, and the models
  `LambertianReflection`, `OrenNayar` (sigma in degrees),
  `SpecularReflection`, `MicrofacetReflection`, `SpecularTransmission`,
  `MicrofacetTransmission`, `FresnelSpecular` and `LambertianTransmission`.
- `BSDF(intersect_info, eta=1.0)` holds up to eight weighted components
  (`add(bxdf, weight=1.0)`, `ValueError` past eight) and works in world
  space: `f`, `sample_f`, `pdf`, `num_components`, `is_transmissive`,
  `local_to_world` and `world_to_local`.

## Example

Shade a gradient, put a caption on it and save it:

```python
from toyrender.composition import Canvas, Image, Layer, MixMode
from toyrender.dotfont import generate_text_image

width, height = 64, 32
background = Image(width, height, (0.0, 0.0, 0.0, 1.0))
background.pixel_shade(lambda x, y: (x / width, y / height, 0.5, 1.0))

caption = generate_text_image(["hello"], (1.0, 1.0, 1.0, 1.0), 1)

canvas = Canvas(width, height)
canvas.layers.append(Layer(background, (0, 0)))
canvas.layers.append(Layer(caption, (2, 2), MixMode.NORMAL_CLAMP))
canvas.to_image().export("out.png")
```

Cast a ray through the centre of the screen:

```python
import math
from toyrender.camera import Camera

camera = Camera.from_look_at(
    (0.0, 1.0, 4.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0),
    math.radians(45.0), 16 / 9,
)
origin, direction = camera.spawn_ray((0.5, 0.5))
```

## What the package does not do

It is a set of parts, not a complete renderer. It has no geometry of its
own (no triangles, meshes or spheres) and no mesh file import, no scene,
materials, textures or lights, no microfacet distributions (the microfacet
models take a distribution object with `d`, `g`, `sample_wh` and `pdf`
methods that you supply), no integrator tying them together, no denoising
and no command-line tool. Rendering is single-threaded.
[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "toyrender"
version = "0.1.0"
description = "Building blocks for a small physically based renderer: BSDFs, Fresnel terms, a BVH, a camera and float RGBA image composition."
requires-python = ">=3.10"
keywords = ["rendering", "ray tracing", "bsdf", "brdf", "fresnel", "bvh", "graphics", "image compositing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
]
dependencies = [
    "numpy",
    "pillow",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["toyrender"]

[tool.pytest.ini_options]
addopts = "-ra"

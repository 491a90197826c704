"""Parts for a small physically based renderer: BSDFs, Fresnel terms, a BVH, a camera and RGBA image composition."""

__version__ = "0.1.0"
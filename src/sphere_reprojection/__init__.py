"""Sphere reprojection: spherical-to-pinhole image resampling.

A small geometric toolkit that converts between normalized image
coordinates, bearing vectors and longitude/latitude, and resamples
patches of equirectangular panoramas into perspective-correct pinhole
images for a downstream reconstruction pipeline.
"""

__version__ = "0.1.0"

"""imagedefs - Tag generation and build ordering for container image definitions.

This package reads per-definition manifests into a registry, derives image
tags from versioning rules, and computes a paginated, dependency-respecting
build order.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

"""artipack: dependency resolution and offline packaging for forensic collections."""

__version__ = "0.3.0"

"""Top-level package for cross-chain funding route optimization."""

from importlib import metadata


def __getattr__(name: str) -> str:
    """Expose the package version via ``routefinder.__version__``."""
    if name == "__version__":
        try:
            return metadata.version("routefinder")
        except metadata.PackageNotFoundError:
            return "0.0.0"
    raise AttributeError(name)


__all__ = ["__version__"]

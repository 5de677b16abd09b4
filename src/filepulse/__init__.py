"""Top-level package for the filepulse file activity analyzer."""

from importlib import metadata as _metadata

__all__ = ["__version__", "analyze"]


def __getattr__(name: str):
    if name == "__version__":
        return _metadata.version("filepulse")
    if name == "analyze":
        from filepulse.engine import analyze

        return analyze
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(list(globals().keys()) + ["__version__", "analyze"])

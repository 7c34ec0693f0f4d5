"""docsplice - splice generated doc comments above TypeScript declarations."""

try:
    from importlib.metadata import version

    __version__ = version("docsplice")
except Exception:
    __version__ = "0.0.0.dev0+local"  # Fallback for development

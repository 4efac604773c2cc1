from .media import DEFAULT_EXTENSIONS, MediaLibrary

__all__ = ["MediaLibrary", "DEFAULT_EXTENSIONS"]

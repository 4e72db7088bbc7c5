"""ScreenSync: locate phone screens with a camera and drive them as one display."""

__version__ = "0.1.0"

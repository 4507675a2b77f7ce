"""
Error types raised by the rendering engine.
"""


class MatrixError(Exception):
    """Base class for all matrix-hopper errors."""


class AssetLoadError(MatrixError):
    """A font, image or GIF could not be fetched or decoded."""


class FontLoadError(AssetLoadError):
    """The bitmap font file could not be read."""


class InvalidRequest(MatrixError):
    """A render request was rejected before touching any canvas."""


class TransportError(MatrixError):
    """A device sink failed to deliver a frame."""


class UnknownDeviceError(InvalidRequest):
    """A request named a device that is not connected."""

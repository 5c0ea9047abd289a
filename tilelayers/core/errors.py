"""Errors reported while building layers."""


class LayerBuilderError(Exception):
    """Base class for layer building failures."""


class ConfigurationError(LayerBuilderError, ValueError):
    """The builder is missing a required setting or names an unknown source.

    Raised synchronously from ``LayerBuilder.build``; never delivered through
    the callback.
    """


class CapacityExceeded(LayerBuilderError):
    """The background task service has no room for another task."""


class SourceUnreachable(LayerBuilderError):
    """A capability document could not be retrieved or parsed."""


class UnsupportedSource(LayerBuilderError):
    """The source holds nothing this library can display."""


class NegotiationFailed(LayerBuilderError):
    """The service and this library share no usable version, CRS, format or extent."""

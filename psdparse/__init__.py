"""Read PSD documents: header, color mode data, image resources, layers, masks and merged image data, plus a TGA writer."""

__version__ = "0.1.0"
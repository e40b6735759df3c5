# psdparse

Read Photoshop `.psd` documents from Python.

psdparse reads the file header and the location of each section. It then parses
these sections on request:

- the color mode data section, as raw bytes
- the image resources: alpha channel names and display colors, the ICC profile,
  EXIF and XMP data (raw bytes), the version info flag and the JPEG thumbnail
- the layer and mask section: layer records, their channels, layer and vector
  masks, and the group hierarchy (`Layer.parent`)
- the merged image data, stored raw or RLE-compressed

Layer pixel data is extracted one layer at a time. RAW, RLE, ZIP and
ZIP-with-prediction channel data are supported at 8, 16 and 32 bits per channel.
Pixel data comes back as numpy arrays of shape `(height, width)` in native byte
order. A small TGA writer is included for dumping 8-bit results to disk.

Malformed input raises `psdparse.document.PsdFormatError`, a subclass of
`ValueError`.

## Installation

```
pip install .
```

numpy is the only runtime dependency.

## Usage

```python
from psdparse.document import parse_document, PsdFormatError
from psdparse.image_resources import parse_image_resources_section
from psdparse.image_data import parse_image_data_section
from psdparse.layers import parse_layer_mask_section
from psdparse.layer_data import extract_layer
from psdparse.model import ChannelType

with open("Sample.psd", "rb") as file:
    document = parse_document(file)   # raises PsdFormatError on a bad header
    print(document.width, document.height, document.bits_per_channel)

    resources = parse_image_resources_section(document, file)
    if resources.xmp_metadata:
        print(resources.xmp_metadata.decode("utf-8", errors="replace"))
    for channel in resources.alpha_channels:
        print(channel.ascii_name, channel.color, channel.opacity)

    if document.layer_mask_info_section.length:
        section = parse_layer_mask_section(document, file)
        for layer in section.layers:
            extract_layer(document, file, layer)
            red = next(
                (c for c in layer.channels if c.type == ChannelType.R and c.data is not None),
                None,
            )
            name = layer.unicode_name or layer.name
            print(name, layer.width, layer.height, red is not None)
            if layer.layer_mask is not None:
                print("  mask", layer.layer_mask.width, layer.layer_mask.height)

    if document.image_data_section.length:
        merged = parse_image_data_section(document, file)  # None for an empty image
        if merged is not None:
            print(merged.image_count, merged.images[0].shape)
```

`parse_document` and the section parsers also accept the whole file as `bytes`.

Writing a grayscale image as TGA:

```python
from psdparse.tga import save_monochrome

save_monochrome("mask.tga", width, height, mask_bytes)
```

`save_rgb` and `save_rgba` take interleaved 8-bit RGBA data. `save_rgb` drops the
alpha channel.

Lower-level helpers are available too: `psdparse.reader.SyncFileReader` for
sequential big-endian reads, `psdparse.reader.key` for four-character codes,
`psdparse.image_data.decompress_rle` for PackBits data and
`psdparse.layer_data.apply_prediction` for delta-encoded ZIP data.

## What it does not do

- It does not write PSD files. `psdparse.model.ExportLayer` and
  `psdparse.reader.SyncFileWriter` are building blocks only; there is no
  document writer.
- It does not composite layers onto the canvas or interleave channels into one
  image; each channel and mask is returned as its own planar array.
- There is no command-line tool; it is a library.

## Running the tests

```
pip install .[test]
pytest
```
"""GUI adapter layer.

This package provides thin Qt-shaped adapters over engine services.

Notes
-----
Adapters exist to:
- keep GUI code free of file formats and engine internals,
- keep engine calls off the UI thread and run them one at a time,
- translate engine domain errors into user-visible messages.
"""

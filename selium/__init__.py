"""Publish/subscribe messaging: asyncio client, wire protocol, codecs, broker and benchmark."""

__version__ = "0.1.0"
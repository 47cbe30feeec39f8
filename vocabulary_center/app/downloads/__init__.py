"""Entitled-access gate for purchased assets."""

from .gate import AssetReference, DownloadGate, download_filename
from .streaming import AssetStreamer, StreamedAsset

__all__ = ["AssetReference", "AssetStreamer", "DownloadGate", "StreamedAsset", "download_filename"]

"""
Configuration management for the file store API.

Contains the pydantic settings shared by the HTTP API, the FTP gateway and the
thumbnail workers.
"""

from filestore_api.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]

"""FTP access to the shared file store."""

from ftp_gateway.server import FTPGateway, build_handler

__all__ = ["FTPGateway", "build_handler"]

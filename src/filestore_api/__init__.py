"""HTTP API for a file store that is shared with an FTP gateway."""

"""Directory API client package.

To build a client:
    from directory_client.config import load_settings
    from directory_client.core import DirectoryClient

To run from the shell:
    directory-client --config directory.yaml users
"""
__version__ = "1.0.0"

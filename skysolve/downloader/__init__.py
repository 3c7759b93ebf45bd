"""
Module for fetching remote inputs before they are solved
"""
from skysolve.downloader.retrieve import (
    download_reference,
    get_download_command,
    needs_retrieval,
)

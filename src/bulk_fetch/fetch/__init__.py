"""Single-file HTTP fetch."""

from bulk_fetch.fetch.http import download_file_at_url

__all__ = ["download_file_at_url"]

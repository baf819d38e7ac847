"""
bulk_fetch: bulk FTP retrieval with a bounded worker pool, plus parallel
gzip decompression.

    from bulk_fetch import ServerInfo, TransferJob, download, decompress_files

    job = TransferJob(
        server=ServerInfo(host="ftp.example.org"),
        max_concurrency=3,
        remote_base_directory="/pub",
        local_destination_directory=Path("downloads"),
        file_names=("a.gz", "b.gz"),
    )
    report = await download(job)
"""

from bulk_fetch.decompress import decompress_files
from bulk_fetch.schemas import BatchReport, ItemResult, ServerInfo, TransferJob
from bulk_fetch.transfer import download

__version__ = "0.1.0"

__all__ = [
    "ServerInfo",
    "TransferJob",
    "BatchReport",
    "ItemResult",
    "download",
    "decompress_files",
]
